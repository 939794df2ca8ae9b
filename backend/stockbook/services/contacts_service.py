# backend/stockbook/services/contacts_service.py
"""
Contacts Service with Multi-Tenant Support

Customers and vendors of a business. A contact's role decides which side of
a transaction it may appear on, so once any transaction names the contact
its role is frozen, and the contact cannot be deleted.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..errors import Conflict, InvalidRequest
from ..extensions import db
from ..models import Contact, Transaction, CONTACT_ROLES
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_contact
from . import store
from .concurrency import run_atomic

CONTACT_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "phone": "phone",
        "email": "email",
        "address": "address",
        "type": "role",
    },
    required_on_create=frozenset({"name", "phone", "type"}),
)


def _is_referenced(contact: Contact) -> bool:
    return db.session.query(Transaction.id).filter(
        Transaction.business_id == contact.business_id,
        or_(Transaction.customer_id == contact.id, Transaction.vendor_id == contact.id),
    ).first() is not None


def list_contacts(
    business_id: int,
    *,
    search: str | None = None,
    role: str | None = None,
    page=None,
    limit=None,
) -> tuple[list[Contact], dict]:
    """search: case-insensitive substring of name, email or phone."""
    page, limit = store.parse_page_args(page, limit)

    criteria = []
    if search:
        pattern = f"%{search.strip()}%"
        criteria.append(or_(
            Contact.name.ilike(pattern),
            Contact.email.ilike(pattern),
            Contact.phone.ilike(pattern),
        ))
    if role:
        if role not in CONTACT_ROLES:
            raise InvalidRequest("Type must be customer or vendor")
        criteria.append(Contact.role == role)

    query = store.find_many(Contact, business_id, *criteria).order_by(
        Contact.created_at.desc(), Contact.id.desc()
    )
    return store.paginate(query, page, limit)


def get_contact(business_id: int, contact_id: int) -> Contact:
    return store.require_one(Contact, contact_id, business_id, label="Contact")


def create_contact(business_id: int, payload: dict) -> Contact:
    patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=False)
    enforce_rules_contact(patch)

    contact = Contact(business_id=business_id, **patch)
    db.session.add(contact)
    db.session.commit()
    return contact


def update_contact(business_id: int, contact_id: int, payload: dict) -> Contact:
    patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=True)
    enforce_rules_contact(patch)

    def _op():
        contact = store.require_one(Contact, contact_id, business_id, label="Contact", lock=True)
        if "role" in patch and patch["role"] != contact.role and _is_referenced(contact):
            raise Conflict("Contact type cannot change once transactions reference the contact")
        for key, value in patch.items():
            setattr(contact, key, value)
        return contact

    # Serialised with transaction commits, which re-check the contact's role
    return run_atomic(_op)


def delete_contact(business_id: int, contact_id: int) -> None:
    def _op():
        contact = store.require_one(Contact, contact_id, business_id, label="Contact", lock=True)
        if _is_referenced(contact):
            raise Conflict("Contact is referenced by transactions and cannot be deleted")
        db.session.delete(contact)

    run_atomic(_op)
