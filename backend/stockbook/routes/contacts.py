# Overview: Flask API routes for contacts; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..errors import StockbookError
from ..services import contacts_service
from ..decorators import require_auth

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")


@contacts_bp.get("")
@require_auth
def list_contacts():
    """
    Query params: search (name/email/phone), type (customer|vendor), page, limit
    """
    try:
        items, pagination = contacts_service.list_contacts(
            g.business_id,
            search=request.args.get("search"),
            role=request.args.get("type"),
            page=request.args.get("page"),
            limit=request.args.get("limit"),
        )
    except StockbookError as e:
        return e.to_dict(), e.status_code

    return {"contacts": [c.to_dict() for c in items], "pagination": pagination}, 200


@contacts_bp.get("/<int:contact_id>")
@require_auth
def get_contact_route(contact_id: int):
    try:
        contact = contacts_service.get_contact(g.business_id, contact_id)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    return {"contact": contact.to_dict()}, 200


@contacts_bp.post("")
@require_auth
def create_contact_route():
    payload = request.get_json(silent=True) or {}
    try:
        contact = contacts_service.create_contact(g.business_id, payload)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    return {"message": "Contact created successfully", "contact": contact.to_dict()}, 201


@contacts_bp.put("/<int:contact_id>")
@require_auth
def update_contact_route(contact_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        contact = contacts_service.update_contact(g.business_id, contact_id, payload)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    return {"message": "Contact updated successfully", "contact": contact.to_dict()}, 200


@contacts_bp.delete("/<int:contact_id>")
@require_auth
def delete_contact_route(contact_id: int):
    try:
        contacts_service.delete_contact(g.business_id, contact_id)
    except StockbookError as e:
        return e.to_dict(), e.status_code
    return {"message": "Contact deleted successfully"}, 200
