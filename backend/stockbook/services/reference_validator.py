# Overview: Resolves and checks the contact/product references of a transaction request.

"""
Reference Validator.

Pure read-and-check: confirms that every reference named by a transaction
request exists inside the caller's tenant and plays the right part, and
hands the resolved records back so the caller never fetches them twice.

- sale: customerRef resolves to a contact with role=customer; no vendorRef
- purchase: vendorRef resolves to a contact with role=vendor; no customerRef
- every distinct productRef resolves to one of the tenant's products

A contact of the wrong role is reported exactly like a missing one.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidRequest, NotFound
from ..models import Contact, Product
from ..validation import TransactionRequest
from . import store


ROLE_FOR_KIND = {"sale": "customer", "purchase": "vendor"}


@dataclass
class ResolvedReferences:
    contact: Contact
    products: dict[int, Product]


def _check_contact_slots(request: TransactionRequest) -> None:
    if request.kind == "sale":
        if request.customer_id is None:
            raise InvalidRequest("customerRef is required for sales")
        if request.vendor_id is not None:
            raise InvalidRequest("vendorRef is not allowed for sales")
    elif request.kind == "purchase":
        if request.vendor_id is None:
            raise InvalidRequest("vendorRef is required for purchases")
        if request.customer_id is not None:
            raise InvalidRequest("customerRef is not allowed for purchases")
    else:
        raise InvalidRequest("Kind must be either sale or purchase")


def resolve_contact(business_id: int, request: TransactionRequest, *, lock: bool = False) -> Contact:
    role = ROLE_FOR_KIND[request.kind]
    contact = store.find_one(Contact, request.contact_id, business_id, lock=lock)
    if contact is None or contact.role != role:
        raise NotFound(f"{role.capitalize()} not found", details={f"{role}Ref": request.contact_id})
    return contact


def resolve_products(business_id: int, product_ids: set[int]) -> dict[int, Product]:
    """Single batch fetch; every requested id must come back."""
    products = store.find_by_ids(Product, product_ids, business_id)
    if len(products) != len(product_ids):
        missing = sorted(product_ids - products.keys())
        raise NotFound("One or more products not found", details={"productRefs": missing})
    return products


def validate_references(business_id: int, request: TransactionRequest) -> ResolvedReferences:
    _check_contact_slots(request)
    contact = resolve_contact(business_id, request)
    products = resolve_products(business_id, request.product_ids)
    return ResolvedReferences(contact=contact, products=products)
