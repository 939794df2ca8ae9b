from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from ..time_utils import to_utc_z


CONTACT_ROLES = ("customer", "vendor")


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to a business via business_id.

    STOCK: `stock` is the current on-hand quantity and is never negative.
    It is only written through services.store.apply_stock_delta() (transaction
    commits and the direct stock-adjustment endpoint), which performs a
    conditional UPDATE so concurrent writers cannot oversell.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_business_name", "business_id", "name"),
        db.Index("ix_products_business_category", "business_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(50), nullable=False)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} business_id={self.business_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": from_cents(self.price_cents),
            "stock": self.stock,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "category": self.category}


class Contact(db.Model):
    """
    Customer or vendor of a business.

    MULTI-TENANT: Contacts are scoped to a business via business_id.
    `role` decides which side of a transaction the contact may appear on.
    """
    __tablename__ = "contacts"
    __table_args__ = (
        db.CheckConstraint("role IN ('customer', 'vendor')", name="ck_contacts_role"),
        db.Index("ix_contacts_business_role", "business_id", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(17), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(200), nullable=True)
    role = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("contacts", lazy=True))

    def __repr__(self) -> str:
        return f"<Contact id={self.id} name={self.name!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "type": self.role,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "email": self.email}
