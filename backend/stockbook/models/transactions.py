from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


TRANSACTION_KINDS = ("sale", "purchase")


class Transaction(db.Model):
    """
    Committed sale or purchase.

    MULTI-TENANT: Scoped to a business via business_id; every referenced
    product and contact belongs to the same business.

    INVARIANTS:
    - kind='sale' has customer_id and no vendor_id; kind='purchase' the reverse
    - total_amount_cents == sum(line.quantity * line.unit_price_cents), set at
      creation and never recomputed
    - immutable after creation (no update path exists)

    A row only exists once its stock effects are committed in the same
    database transaction (see services.transaction_service).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("kind IN ('sale', 'purchase')", name="ck_transactions_kind"),
        db.CheckConstraint(
            "(kind = 'sale' AND customer_id IS NOT NULL AND vendor_id IS NULL) OR "
            "(kind = 'purchase' AND vendor_id IS NOT NULL AND customer_id IS NULL)",
            name="ck_transactions_contact_matches_kind",
        ),
        db.CheckConstraint("total_amount_cents >= 0", name="ck_transactions_total_non_negative"),
        db.Index("ix_transactions_business_kind_occurred", "business_id", "kind", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=True, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=True, index=True)

    total_amount_cents = db.Column(db.BigInteger, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship("Business", backref=db.backref("transactions", lazy=True))
    customer = db.relationship("Contact", foreign_keys=[customer_id])
    vendor = db.relationship("Contact", foreign_keys=[vendor_id])
    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        order_by="TransactionLine.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} kind={self.kind} total_cents={self.total_amount_cents}>"

    @property
    def contact(self):
        return self.customer if self.kind == "sale" else self.vendor

    def to_dict(self, *, include_refs: bool = True) -> dict:
        """
        Serialize for API responses.

        include_refs adds display summaries of the referenced contact and
        products; they are resolved at read time and never stored.
        """
        data = {
            "id": self.id,
            "businessId": self.business_id,
            "kind": self.kind,
            "lineItems": [line.to_dict(include_refs=include_refs) for line in self.lines],
            "totalAmount": from_cents(self.total_amount_cents),
            "occurredAt": to_utc_z(self.occurred_at),
            "createdAt": to_utc_z(self.created_at),
        }
        if self.kind == "sale":
            data["customerRef"] = self.customer_id
            if include_refs and self.customer is not None:
                data["customer"] = self.customer.to_summary()
        else:
            data["vendorRef"] = self.vendor_id
            if include_refs and self.vendor is not None:
                data["vendor"] = self.vendor.to_summary()
        return data


class TransactionLine(db.Model):
    """One product/quantity/price entry of a transaction, in request order."""
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        db.CheckConstraint("quantity >= 1", name="ck_transaction_lines_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_transaction_lines_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # Requested price at the time of the transaction, not the product's list price
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    transaction = db.relationship("Transaction", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self, *, include_refs: bool = True) -> dict:
        data = {
            "productRef": self.product_id,
            "quantity": self.quantity,
            "unitPrice": from_cents(self.unit_price_cents),
            "lineTotal": from_cents(self.line_total_cents),
        }
        if include_refs and self.product is not None:
            data["product"] = self.product.to_summary()
        return data
