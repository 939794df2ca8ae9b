# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockbook/routes/auth.py
"""
Authentication API routes

Each business registers itself and receives a bearer token. The token's
session pins the business_id that scopes every other API call.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import AuthenticationError, StockbookError
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _open_session(business):
    return session_service.create_session(
        business_id=business.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )


@auth_bp.post("/register")
def register_route():
    """
    Register a business and log it in.

    Body: {username, email, password, businessName}
    201 -> {"business": {...}, "token": "..."}
    409 -> username or email already registered
    """
    try:
        business = auth_service.register_business(request.get_json(silent=True))
        _session, token = _open_session(business)

        return jsonify({
            "message": "Business registered successfully",
            "business": business.to_dict(),
            "token": token,
        }), 201

    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register business")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by username or email and create a session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        login = data.get("login") or data.get("username") or data.get("email")
        password = data.get("password")

        if not login or not password:
            return jsonify({"error": "Username or email and password required"}), 400

        business = auth_service.authenticate(str(login), str(password))
        if not business:
            current_app.logger.info("Failed login for %s", login)
            raise AuthenticationError("Invalid credentials")

        session, token = _open_session(business)

        return jsonify({
            "message": "Login successful",
            "business": business.to_dict(),
            "token": token,
            "session": session.to_dict(),
        }), 200

    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login business")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/profile")
@require_auth
def profile_route():
    return jsonify({"business": g.business.to_dict()}), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            raise AuthenticationError("Invalid or expired token")

        return jsonify({"message": "Logout successful"}), 200

    except StockbookError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to logout business")
        return jsonify({"error": "Internal server error"}), 500
