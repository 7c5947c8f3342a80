"""InventoryLedger aggregate (CQRS): minted stock per (product blueprint, token design).

Each ledger holds one ``ModelStock`` per model. Stock only grows through
minting: product ids are merged in by set union and are never removed.
Orders reserve against that stock additively.

Stock Model:
    products:          product ids accounted for under the model
    accumulation:      len(products)
    reserved_by_order: order id -> reserved quantity
    reserved_count:    sum(reserved_by_order.values())
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, HasMany, Identifier, Integer, List, String

from minting.domain import minting
from minting.errors import InventoryConsistencyError
from minting.ledger.events import InventoryLedgerOpened, LedgerStockMerged, LedgerStockReserved

KEY_SEPARATOR = "__"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _sanitize_key_part(value):
    return (value or "").strip().replace("/", "_")


def build_ledger_key(product_blueprint_id, token_design_id):
    """Ledger id for a (product blueprint, token design) pair.

    The parts are joined with ``KEY_SEPARATOR``, so a part that contains it
    (after sanitizing) is rejected: ``("a__b", "c")`` and ``("a", "b__c")``
    would otherwise share one ledger.
    """
    pb = _sanitize_key_part(product_blueprint_id)
    td = _sanitize_key_part(token_design_id)
    if not pb:
        raise ValidationError({"product_blueprint_id": ["Product blueprint id is required"]})
    if not td:
        raise ValidationError({"token_design_id": ["Token design id is required"]})
    for field, part in (("product_blueprint_id", pb), ("token_design_id", td)):
        if KEY_SEPARATOR in part:
            raise ValidationError({field: [f"Must not contain `{KEY_SEPARATOR}`"]})
    return f"{pb}{KEY_SEPARATOR}{td}"


def normalize_ids(ids):
    """Trim, drop empties, deduplicate and sort."""
    return sorted({str(i).strip() for i in ids or [] if str(i or "").strip()})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@minting.entity(part_of="InventoryLedger")
class ModelStock:
    """Minted stock for one model under a ledger."""

    model_id = Identifier(required=True)
    products = List(content_type=String, default=list)
    accumulation = Integer(default=0)
    reserved_by_order = Dict(default=dict)
    reserved_count = Integer(default=0)

    @property
    def available(self):
        return (self.accumulation or 0) - (self.reserved_count or 0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@minting.aggregate
class InventoryLedger:
    product_blueprint_id = Identifier(required=True)
    token_design_id = Identifier(required=True)
    stock = HasMany(ModelStock)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, product_blueprint_id, token_design_id):
        inventory_id = build_ledger_key(product_blueprint_id, token_design_id)
        now = datetime.now(UTC)
        ledger = cls(
            id=inventory_id,
            product_blueprint_id=product_blueprint_id.strip(),
            token_design_id=token_design_id.strip(),
            created_at=now,
            updated_at=now,
        )
        ledger.raise_(
            InventoryLedgerOpened(
                inventory_id=inventory_id,
                product_blueprint_id=ledger.product_blueprint_id,
                token_design_id=ledger.token_design_id,
                opened_at=now,
            )
        )
        return ledger

    def stock_for(self, model_id):
        model_id = (model_id or "").strip()
        return next((s for s in (self.stock or []) if s.model_id == model_id), None)

    @property
    def model_ids(self):
        return sorted(s.model_id for s in (self.stock or []))

    # -------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------
    def merge_products(self, model_id, product_ids):
        """Union ``product_ids`` into the model's stock.

        Reservation fields are left alone. Returns the ids that were not
        yet recorded; merging the same ids again returns an empty list.
        ``accumulation`` is recounted from ``products`` on every merge, so
        a merge that adds nothing still repairs a drifted count (and raises
        ``LedgerStockMerged`` with no added ids).
        """
        model_id = (model_id or "").strip()
        if not model_id:
            raise ValidationError({"model_id": ["Model id is required"]})
        incoming = normalize_ids(product_ids)
        if not incoming:
            raise ValidationError({"product_ids": ["At least one product id is required"]})

        stock = self.stock_for(model_id)
        if stock is None:
            added = incoming
            self.add_stock(
                ModelStock(
                    model_id=model_id,
                    products=incoming,
                    accumulation=len(incoming),
                    reserved_by_order={},
                    reserved_count=0,
                )
            )
            accumulation = len(incoming)
        else:
            existing = set(stock.products or [])
            added = [p for p in incoming if p not in existing]
            merged = sorted(existing | set(incoming))
            if not added and stock.accumulation == len(merged):
                return []
            if added:
                stock.products = merged
            # Recounted on every merge; a stale stored count is corrected here
            stock.accumulation = len(merged)
            accumulation = stock.accumulation

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            LedgerStockMerged(
                inventory_id=str(self.id),
                model_id=model_id,
                added_product_ids=json.dumps(added),
                accumulation=accumulation,
                merged_at=now,
            )
        )
        return added

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, model_id, order_id, quantity):
        """Add ``quantity`` to the order's reservation under ``model_id``."""
        order_id = (order_id or "").strip()
        if not order_id:
            raise ValidationError({"order_id": ["Order id is required"]})
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        stock = self.stock_for(model_id)
        if stock is None:
            raise InventoryConsistencyError(f"Ledger `{self.id}` has no stock for model `{model_id}`")

        reserved_by_order = dict(stock.reserved_by_order or {})
        reserved_by_order[order_id] = int(reserved_by_order.get(order_id, 0)) + quantity
        stock.reserved_by_order = reserved_by_order
        stock.reserved_count = sum(int(q) for q in reserved_by_order.values())

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            LedgerStockReserved(
                inventory_id=str(self.id),
                model_id=stock.model_id,
                order_id=order_id,
                quantity=quantity,
                order_total=reserved_by_order[order_id],
                reserved_count=stock.reserved_count,
                reserved_at=now,
            )
        )
