# Overview: Inventory quantities per (product, location, batch); add, remove, transfer and listing.

"""
InventoryLedger

One InventoryRecord row holds the on-hand quantity of a product at a
location for one batch. A NULL batch is its own variant; it never matches a
named batch.

INVARIANTS:
- A persisted record always has quantity > 0. A removal that brings the
  quantity to zero deletes the row and returns a DepletionNotice.
- Decrements are race-free: the row is locked, then changed with a
  conditional statement (UPDATE ... WHERE quantity > :q, or
  DELETE ... WHERE quantity = :q). If the condition no longer holds the
  request fails with INSUFFICIENT_INVENTORY instead of overdrawing.
- transfer() is one unit of work: source decrement and destination
  increment commit together or not at all.

LOW STOCK: quantity <= threshold, where threshold is the caller's value,
else the tenant setting "lowStockThreshold", else Config.LOW_STOCK_THRESHOLD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, update

from ..config import Config
from ..errors import InsufficientInventoryError, InvalidInputError, NotFoundError
from ..models import InventoryRecord, Location, Product, Tenant
from ..serialization import to_decimal, to_number
from ..validation import require_positive_quantity
from .concurrency import lock_for_update, unit_of_work
from .repository import ListQuery, TenantScopedRepository


logger = logging.getLogger(__name__)

LOW_STOCK_SETTING = "lowStockThreshold"


@dataclass(frozen=True)
class DepletionNotice:
    product_id: int
    location_id: int
    batch_number: Optional[str]
    removed_quantity: Decimal
    message: str = "Inventory depleted"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "depleted": True,
            "productId": self.product_id,
            "locationId": self.location_id,
            "batchNumber": self.batch_number,
            "removedQuantity": to_number(self.removed_quantity),
        }


def normalize_batch(batch_number) -> Optional[str]:
    if batch_number is None:
        return None
    batch_number = str(batch_number).strip()
    return batch_number or None


def resolve_low_stock_threshold(session, tenant_id: int, explicit=None) -> Decimal:
    if explicit is not None and explicit != "":
        try:
            value = to_decimal(explicit, field="threshold")
        except ValueError as exc:
            raise InvalidInputError(str(exc), {"field": "threshold"})
        if value < 0:
            raise InvalidInputError("threshold must be >= 0", {"field": "threshold"})
        return value

    tenant = session.get(Tenant, tenant_id)
    configured = tenant.get_setting(LOW_STOCK_SETTING) if tenant is not None else None
    if configured is not None:
        try:
            return to_decimal(configured, field=LOW_STOCK_SETTING)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r for tenant %s", LOW_STOCK_SETTING, configured, tenant_id)
    return Decimal(str(Config.LOW_STOCK_THRESHOLD))


class InventoryLedger:
    def __init__(self, session, tenant_id: int):
        self.session = session
        self.tenant_id = tenant_id

    # ---- lookups ----

    def _require_product(self, product_id) -> Product:
        product = self.session.query(Product).filter(
            Product.tenant_id == self.tenant_id,
            Product.id == product_id,
        ).first()
        if product is None:
            raise NotFoundError.for_resource("product", product_id)
        return product

    def _require_location(self, location_id) -> Location:
        location = self.session.query(Location).filter(
            Location.tenant_id == self.tenant_id,
            Location.id == location_id,
        ).first()
        if location is None:
            raise NotFoundError.for_resource("location", location_id)
        return location

    def find_record(self, product_id, location_id, batch_number=None, *, lock: bool = False):
        batch_number = normalize_batch(batch_number)
        q = self.session.query(InventoryRecord).filter(
            InventoryRecord.tenant_id == self.tenant_id,
            InventoryRecord.product_id == product_id,
            InventoryRecord.location_id == location_id,
        )
        if batch_number is None:
            q = q.filter(InventoryRecord.batch_number.is_(None))
        else:
            q = q.filter(InventoryRecord.batch_number == batch_number)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def find_any_batch(self, product_id, location_id, *, lock: bool = False):
        """Record at (product, location) for an unbatched request: null batch first, then oldest."""
        q = self.session.query(InventoryRecord).filter(
            InventoryRecord.tenant_id == self.tenant_id,
            InventoryRecord.product_id == product_id,
            InventoryRecord.location_id == location_id,
        ).order_by(InventoryRecord.batch_number.isnot(None), InventoryRecord.id)
        if lock:
            q = lock_for_update(q)
        return q.first()

    def _missing_record(self, product_id, location_id, batch_number) -> NotFoundError:
        return NotFoundError(
            "Inventory record not found for the specified product, location, and batch",
            {
                "resourceType": "inventoryRecord",
                "productId": product_id,
                "locationId": location_id,
                "batchNumber": batch_number,
            },
        )

    # ---- mutations ----

    def add(self, product_id, location_id, quantity, batch_number=None) -> InventoryRecord:
        qty = require_positive_quantity(quantity)
        batch_number = normalize_batch(batch_number)

        with unit_of_work(self.session):
            self._require_product(product_id)
            self._require_location(location_id)

            record = self.find_record(product_id, location_id, batch_number, lock=True)
            if record is None:
                record = InventoryRecord(
                    tenant_id=self.tenant_id,
                    product_id=product_id,
                    location_id=location_id,
                    batch_number=batch_number,
                    quantity=qty,
                )
                self.session.add(record)
                self.session.flush()
            else:
                self.session.execute(
                    update(InventoryRecord)
                    .where(InventoryRecord.id == record.id)
                    .values(quantity=InventoryRecord.quantity + qty)
                    .execution_options(synchronize_session=False)
                )
                self.session.refresh(record)

        logger.info(
            "inventory add tenant=%s product=%s location=%s batch=%s qty=%s",
            self.tenant_id, product_id, location_id, batch_number, qty,
        )
        return record

    def remove(self, product_id, location_id, quantity, batch_number=None):
        """
        Decrement a record. Returns the updated record, or a DepletionNotice
        when the record reached zero and was deleted.
        """
        qty = require_positive_quantity(quantity)
        batch_number = normalize_batch(batch_number)

        with unit_of_work(self.session):
            record = self.find_record(product_id, location_id, batch_number, lock=True)
            if record is None:
                raise self._missing_record(product_id, location_id, batch_number)
            result = self._decrement(record, qty)

        logger.info(
            "inventory remove tenant=%s product=%s location=%s batch=%s qty=%s depleted=%s",
            self.tenant_id, product_id, location_id, batch_number, qty,
            isinstance(result, DepletionNotice),
        )
        return result

    def _decrement(self, record: InventoryRecord, qty: Decimal):
        available = record.quantity
        if available < qty:
            raise InsufficientInventoryError(
                f"Insufficient inventory. Available: {to_number(available)}, Requested: {to_number(qty)}",
                {"available": to_number(available), "requested": to_number(qty)},
            )

        if available == qty:
            result = self.session.execute(
                delete(InventoryRecord)
                .where(InventoryRecord.id == record.id, InventoryRecord.quantity == qty)
                .execution_options(synchronize_session=False)
            )
        else:
            result = self.session.execute(
                update(InventoryRecord)
                .where(InventoryRecord.id == record.id, InventoryRecord.quantity > qty)
                .values(quantity=InventoryRecord.quantity - qty)
                .execution_options(synchronize_session=False)
            )

        if result.rowcount == 0:
            # Changed underneath us after the read
            self.session.expire(record)
            current = self.session.query(InventoryRecord.quantity).filter(
                InventoryRecord.id == record.id
            ).scalar()
            raise InsufficientInventoryError(
                f"Insufficient inventory. Available: {to_number(current or 0)}, Requested: {to_number(qty)}",
                {"available": to_number(current or 0), "requested": to_number(qty)},
            )

        if available == qty:
            self.session.expunge(record)
            return DepletionNotice(
                product_id=record.product_id,
                location_id=record.location_id,
                batch_number=record.batch_number,
                removed_quantity=qty,
            )

        self.session.refresh(record)
        return record

    def consume(self, product_id, location_id, quantity, batch_number=None):
        """
        Draw stock for a sale line.

        Unlike remove(), a missing record is not an error (returns None) and a
        shortfall does not reject: the record is deleted once the requested
        quantity reaches or exceeds what is on hand. Without a batch number
        any batch at the location may be drawn from (see find_any_batch).
        """
        qty = require_positive_quantity(quantity)
        batch_number = normalize_batch(batch_number)

        with unit_of_work(self.session):
            for _ in range(2):
                if batch_number is None:
                    record = self.find_any_batch(product_id, location_id, lock=True)
                else:
                    record = self.find_record(product_id, location_id, batch_number, lock=True)
                if record is None:
                    return None
                if record.quantity <= qty:
                    result = self.session.execute(
                        delete(InventoryRecord)
                        .where(InventoryRecord.id == record.id, InventoryRecord.quantity <= qty)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount:
                        self.session.expunge(record)
                        return DepletionNotice(
                            product_id=record.product_id,
                            location_id=record.location_id,
                            batch_number=record.batch_number,
                            removed_quantity=record.quantity,
                        )
                else:
                    result = self.session.execute(
                        update(InventoryRecord)
                        .where(InventoryRecord.id == record.id, InventoryRecord.quantity > qty)
                        .values(quantity=InventoryRecord.quantity - qty)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount:
                        self.session.refresh(record)
                        return record
                self.session.expire(record)

        raise InsufficientInventoryError(
            "Inventory changed while it was being allocated; retry the request",
            {"productId": product_id, "locationId": location_id, "requested": to_number(qty)},
        )

    def transfer(
        self,
        product_id,
        source_location_id,
        destination_location_id,
        quantity,
        source_batch_number=None,
        destination_batch_number=None,
    ) -> dict:
        qty = require_positive_quantity(quantity)
        source_batch_number = normalize_batch(source_batch_number)
        destination_batch_number = normalize_batch(destination_batch_number)

        if source_location_id == destination_location_id and source_batch_number == destination_batch_number:
            raise InvalidInputError("Source and destination must be different")

        with unit_of_work(self.session):
            self._require_location(destination_location_id)
            source = self.find_record(product_id, source_location_id, source_batch_number, lock=True)
            if source is None:
                raise self._missing_record(product_id, source_location_id, source_batch_number)

            source_result = self._decrement(source, qty)
            destination = self.add(product_id, destination_location_id, qty, destination_batch_number)

        logger.info(
            "inventory transfer tenant=%s product=%s %s/%s -> %s/%s qty=%s",
            self.tenant_id, product_id, source_location_id, source_batch_number,
            destination_location_id, destination_batch_number, qty,
        )

        if isinstance(source_result, DepletionNotice):
            source_result = replace(source_result, message="Source inventory depleted")
        return {
            "source": source_result,
            "destination": destination,
            "transferQuantity": qty,
        }

    # ---- listing ----

    def repository(self) -> TenantScopedRepository:
        return TenantScopedRepository(
            self.session,
            self.tenant_id,
            InventoryRecord,
            resource_type="inventoryRecord",
            search_fields=(Product.name, Product.sku, InventoryRecord.batch_number),
            joins=((Product, InventoryRecord.product_id == Product.id),),
            sortable=("id", "quantity", "batch_number", "created_at", "updated_at"),
            default_sort="id",
        )

    def list_records(
        self,
        list_query: ListQuery | None = None,
        *,
        low_stock: bool = False,
        threshold=None,
        category: str | None = None,
    ):
        criteria = []
        if low_stock:
            limit = resolve_low_stock_threshold(self.session, self.tenant_id, threshold)
            criteria.append(InventoryRecord.quantity <= limit)
        if category:
            criteria.append(Product.category == category)
        return self.repository().find_many(list_query, criteria=criteria)
