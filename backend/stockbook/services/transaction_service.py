# Overview: Service-layer operations for transactions; the commit coordinator and read side.

"""
Transaction Commit Coordinator

create_transaction() is the only place where a transaction record, its
lines and the stock of every affected product change together:

1. shape validation (InvalidRequest)
2. reference validation, contact and products in the caller's tenant
   (InvalidRequest / NotFound)
3. one batch fetch of the referenced products, reused below
4. sale feasibility against aggregated quantities (InsufficientStock)
5. total = sum(quantity * requested unit price)
6. one atomic unit: re-resolve the contact, insert the transaction, then
   apply the stock deltas with conditional updates; any failure rolls back
   all of it
7. return the committed transaction (routes render it with contact and
   product summaries resolved)

Steps 1-5 never write. Step 6 either commits entirely or leaves nothing
behind, so a caller that gets StoreUnavailable can safely retry.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload, selectinload

from ..errors import InvalidRequest, NotFound
from ..models import Contact, Transaction, TransactionLine, TRANSACTION_KINDS
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import MAX_INTEGER, TransactionRequest, parse_transaction_request
from . import store, stock_ledger
from .concurrency import run_atomic
from .reference_validator import resolve_contact, validate_references


def _build_transaction(business_id: int, request: TransactionRequest) -> Transaction:
    transaction = Transaction(
        business_id=business_id,
        kind=request.kind,
        customer_id=request.customer_id,
        vendor_id=request.vendor_id,
        total_amount_cents=request.total_amount_cents,
        occurred_at=request.occurred_at or utcnow(),
    )
    transaction.lines = [
        TransactionLine(
            position=position,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            line_total_cents=item.line_total_cents,
        )
        for position, item in enumerate(request.line_items)
    ]
    return transaction


def create_transaction(business_id: int, payload: dict | TransactionRequest) -> Transaction:
    """Validate, check and commit a sale or purchase for `business_id`."""
    if isinstance(payload, TransactionRequest):
        request = payload
    else:
        request = parse_transaction_request(payload)

    refs = validate_references(business_id, request)
    deltas = stock_ledger.plan_stock_deltas(request.kind, refs.products, request.line_items)

    def _commit() -> int:
        # The contact may have been deleted or changed role since validation
        resolve_contact(business_id, request, lock=True)
        transaction = store.insert(_build_transaction(business_id, request))
        stock_ledger.apply_stock_deltas(business_id, deltas)
        return transaction.id

    transaction_id = run_atomic(_commit)

    current_app.logger.info(
        "Committed %s transaction %s for business %s (%d lines, total_cents=%d)",
        request.kind,
        transaction_id,
        business_id,
        len(request.line_items),
        request.total_amount_cents,
    )
    return get_transaction(business_id, transaction_id)


def with_refs(query):
    return query.options(
        selectinload(Transaction.lines).joinedload(TransactionLine.product),
        joinedload(Transaction.customer),
        joinedload(Transaction.vendor),
    )


def get_transaction(business_id: int, transaction_id: int) -> Transaction:
    if not 0 < transaction_id <= MAX_INTEGER:
        raise NotFound("Transaction not found")
    transaction = with_refs(
        store.find_many(Transaction, business_id, Transaction.id == transaction_id)
    ).first()
    if transaction is None:
        raise NotFound("Transaction not found")
    return transaction


def _parse_date_arg(value: str | None, name: str):
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InvalidRequest(f"{name} must be a valid date")


def list_transactions(
    business_id: int,
    *,
    kind: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page=None,
    limit=None,
) -> tuple[list[Transaction], dict]:
    """Tenant's transactions, newest first, optionally filtered by kind and date range (inclusive)."""
    page, limit = store.parse_page_args(page, limit)

    criteria = []
    if kind:
        if kind not in TRANSACTION_KINDS:
            raise InvalidRequest("Type must be sale or purchase")
        criteria.append(Transaction.kind == kind)

    start_dt = _parse_date_arg(start_date, "startDate")
    end_dt = _parse_date_arg(end_date, "endDate")
    if start_dt is not None:
        criteria.append(Transaction.occurred_at >= start_dt)
    if end_dt is not None:
        criteria.append(Transaction.occurred_at <= end_dt)

    query = with_refs(store.find_many(Transaction, business_id, *criteria)).order_by(
        Transaction.occurred_at.desc(), Transaction.id.desc()
    )
    return store.paginate(query, page, limit)


def list_transactions_for_contact(
    business_id: int,
    contact_id: int,
    *,
    page=None,
    limit=None,
) -> tuple[Contact, list[Transaction], dict]:
    """Transactions naming this contact on the side matching its role."""
    page, limit = store.parse_page_args(page, limit)
    contact = store.require_one(Contact, contact_id, business_id, label="Contact")

    ref_column = Transaction.customer_id if contact.role == "customer" else Transaction.vendor_id
    query = with_refs(store.find_many(Transaction, business_id, ref_column == contact.id)).order_by(
        Transaction.occurred_at.desc(), Transaction.id.desc()
    )
    items, pagination = store.paginate(query, page, limit)
    return contact, items, pagination
