from __future__ import annotations

from ..extensions import db
from ..serialization import to_number
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master record.

    MULTI-TENANT: sku is unique within a tenant when present (NULL sku is
    allowed any number of times).

    Prices are stored as Numeric(12, 2); inventory quantities live on
    InventoryRecord, never here.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_category", "tenant_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    strain_type = db.Column(db.String(64), nullable=True)

    wholesale_price = db.Column(db.Numeric(12, 2), nullable=True)
    retail_price = db.Column(db.Numeric(12, 2), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("products", lazy=True))
    images = db.relationship(
        "InventoryImage",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="InventoryImage.id",
    )

    def to_dict(self, *, include_images: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "vendorId": self.vendor_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "strainType": self.strain_type,
            "wholesalePrice": to_number(self.wholesale_price),
            "retailPrice": to_number(self.retail_price),
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_images:
            data["images"] = [image.to_dict() for image in self.images]
        return data


class InventoryImage(db.Model):
    """Product image. At most one image per product has is_primary set."""
    __tablename__ = "inventory_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    image_url = db.Column(db.String(1024), nullable=False)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "imageUrl": self.image_url,
            "isPrimary": self.is_primary,
            "createdAt": to_utc_z(self.created_at),
        }


class Location(db.Model):
    """
    Physical stock location (warehouse, vault, store room).

    MULTI-TENANT: name is unique within a tenant.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_locations_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    zip_code = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class InventoryRecord(db.Model):
    """
    On-hand quantity of one product at one location for one batch.

    INVARIANTS:
    - quantity > 0 whenever the row exists (depleted rows are deleted)
    - one row per (tenant, product, location, batch); a NULL batch is its own
      variant and is never merged with a named batch

    Rows are only written through InventoryLedger.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint(
            "tenant_id", "product_id", "location_id", "batch_number",
            name="uq_inventory_records_variant",
        ),
        db.CheckConstraint("quantity > 0", name="ck_inventory_records_quantity_positive"),
        db.Index("ix_inventory_records_tenant_product", "tenant_id", "product_id"),
        db.Index("ix_inventory_records_tenant_location", "tenant_id", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    batch_number = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_records", lazy=True))
    location = db.relationship("Location", backref=db.backref("inventory_records", lazy=True))

    def to_dict(self, *, include_refs: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "productId": self.product_id,
            "locationId": self.location_id,
            "batchNumber": self.batch_number,
            "quantity": to_number(self.quantity),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_refs:
            data["product"] = {
                "id": self.product.id,
                "sku": self.product.sku,
                "name": self.product.name,
                "category": self.product.category,
            }
            data["location"] = {"id": self.location.id, "name": self.location.name}
        return data
