"""Domain events for the InventoryLedger aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from minting.domain import minting


@minting.event(part_of="InventoryLedger")
class InventoryLedgerOpened:
    """A ledger was created for a (product blueprint, token design) pair."""

    __version__ = "v1"

    inventory_id = Identifier(required=True)
    product_blueprint_id = Identifier(required=True)
    token_design_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@minting.event(part_of="InventoryLedger")
class LedgerStockMerged:
    """New product ids were accounted for under a model."""

    __version__ = "v1"

    inventory_id = Identifier(required=True)
    model_id = Identifier(required=True)
    added_product_ids = Text(required=True)  # JSON: list of product IDs
    accumulation = Integer(required=True)
    merged_at = DateTime(required=True)


@minting.event(part_of="InventoryLedger")
class LedgerStockReserved:
    """Stock under a model was reserved for an order."""

    __version__ = "v1"

    inventory_id = Identifier(required=True)
    model_id = Identifier(required=True)
    order_id = String(required=True)
    quantity = Integer(required=True)
    order_total = Integer(required=True)
    reserved_count = Integer(required=True)
    reserved_at = DateTime(required=True)
