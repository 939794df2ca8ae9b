# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Each business is its own tenant and logs in with its username or email.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, InvalidRequest
from ..extensions import db
from ..models import Business
from ..time_utils import utcnow
from ..validation import EMAIL_RE


USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")
MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(InvalidRequest):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def find_existing(username: str, email: str) -> Business | None:
    return db.session.query(Business).filter(
        db.or_(func.lower(Business.username) == username.lower(), Business.email == email)
    ).first()


def register_business(payload: dict) -> Business:
    """
    Create a new business account.

    Raises:
        InvalidRequest: If a field is missing or malformed
        PasswordValidationError: If password doesn't meet requirements
        Conflict: If username or email is already registered
    """
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")

    username = str(payload.get("username") or "").strip()
    email = str(payload.get("email") or "").strip().lower()
    password = payload.get("password")
    business_name = str(payload.get("businessName") or "").strip()

    if not USERNAME_RE.match(username):
        raise InvalidRequest("Username must be between 3 and 30 characters")
    if not EMAIL_RE.match(email):
        raise InvalidRequest("Please provide a valid email")
    if not business_name or len(business_name) > 100:
        raise InvalidRequest("Business name is required and cannot exceed 100 characters")

    password_hash = hash_password(password)

    if find_existing(username, email) is not None:
        raise Conflict("User with this username or email already exists")

    business = Business(
        username=username,
        email=email,
        password_hash=password_hash,
        business_name=business_name,
        is_active=True,
    )
    db.session.add(business)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same username or email
        db.session.rollback()
        raise Conflict("User with this username or email already exists")

    current_app.logger.info("Registered business %s (%s)", business.id, business.username)
    return business


def authenticate(login: str, password: str) -> Business | None:
    """
    Authenticate by username or email.

    Returns the Business on success, None otherwise (unknown login, wrong
    password, or deactivated account are indistinguishable to the caller).
    """
    if not login or not password:
        return None

    login = login.strip()
    business = db.session.query(Business).filter(
        db.or_(func.lower(Business.username) == login.lower(), Business.email == login.lower())
    ).first()

    if not business or not business.is_active:
        return None
    if not verify_password(password, business.password_hash):
        return None

    business.last_login_at = utcnow()
    db.session.commit()
    return business
