"""Inventory ledger application service.

Every read-modify-write on a ledger runs under a lock keyed by the ledger
id. The merge is commutative, so concurrent upserts for the same ledger
end in the same state whichever lands first.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from minting.ledger.ledger import InventoryLedger, build_ledger_key, normalize_ids
from minting.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

_ledger_locks = KeyedLock()


@dataclass(frozen=True)
class ReservationLine:
    inventory_id: str
    model_id: str
    quantity: int


class InventoryLedgerService:
    def __init__(self, locks: KeyedLock | None = None) -> None:
        self._locks = locks or _ledger_locks

    @property
    def _repo(self):
        return current_domain.repository_for(InventoryLedger)

    # -------------------------------------------------------------------
    # Merge
    # -------------------------------------------------------------------
    def upsert_from_mint(self, product_blueprint_id, token_design_id, model_id, product_ids) -> InventoryLedger:
        """Merge minted ``product_ids`` into the ledger for (blueprint, design)."""
        inventory_id = build_ledger_key(product_blueprint_id, token_design_id)
        model_id = (model_id or "").strip()
        if not model_id:
            raise ValidationError({"model_id": ["Model id is required"]})
        ids = normalize_ids(product_ids)
        if not ids:
            raise ValidationError({"product_ids": ["At least one product id is required"]})

        with self._locks.hold(inventory_id):
            opened = False
            try:
                ledger = self._repo.get(inventory_id)
            except ObjectNotFoundError:
                ledger = InventoryLedger.open(product_blueprint_id, token_design_id)
                opened = True

            prior = ledger.stock_for(model_id)
            prior_accumulation = prior.accumulation if prior else None

            added = ledger.merge_products(model_id, ids)
            if added or opened or ledger.stock_for(model_id).accumulation != prior_accumulation:
                self._repo.add(ledger)

        logger.info(
            "Ledger stock merged",
            inventory_id=inventory_id,
            model_id=model_id,
            added=len(added),
            accumulation=ledger.stock_for(model_id).accumulation,
        )
        return ledger

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reserve(self, inventory_id, model_id, order_id, quantity) -> InventoryLedger:
        inventory_id = (inventory_id or "").strip()
        if not inventory_id:
            raise ValidationError({"inventory_id": ["Inventory id is required"]})

        with self._locks.hold(inventory_id):
            ledger = self.get(inventory_id)
            ledger.reserve(model_id, order_id, quantity)
            self._repo.add(ledger)

        logger.info(
            "Ledger stock reserved",
            inventory_id=inventory_id,
            model_id=model_id,
            order_id=order_id,
            quantity=quantity,
        )
        return ledger

    def reserve_for_order(self, order_id, lines) -> None:
        """Reserve every line for ``order_id``. No lines is a no-op.

        All lines are validated before any reservation is applied.
        """
        order_id = (order_id or "").strip()
        if not order_id:
            raise ValidationError({"order_id": ["Order id is required"]})

        errors = []
        for index, line in enumerate(lines or []):
            if not (line.inventory_id or "").strip():
                errors.append(f"Line {index}: inventory id is required")
            if not (line.model_id or "").strip():
                errors.append(f"Line {index}: model id is required")
            if line.quantity is None or line.quantity <= 0:
                errors.append(f"Line {index}: quantity must be positive")
        if errors:
            raise ValidationError({"lines": errors})

        for line in lines or []:
            self.reserve(line.inventory_id, line.model_id, order_id, line.quantity)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, inventory_id) -> InventoryLedger:
        try:
            return self._repo.get(inventory_id)
        except ObjectNotFoundError as exc:
            raise ObjectNotFoundError(f"Inventory ledger `{inventory_id}` does not exist") from exc

    def list_by_token_design(self, token_design_id) -> list[InventoryLedger]:
        return self._repo._dao.query.filter(token_design_id=token_design_id).all().items

    def list_by_product_blueprint(self, product_blueprint_id) -> list[InventoryLedger]:
        return self._repo._dao.query.filter(product_blueprint_id=product_blueprint_id).all().items

    def list_by_model(self, model_id) -> list[InventoryLedger]:
        ledgers = self._repo._dao.query.all().items
        return [ledger for ledger in ledgers if ledger.stock_for(model_id) is not None]

    def list_by_token_design_and_model(self, token_design_id, model_id) -> list[InventoryLedger]:
        return [ledger for ledger in self.list_by_token_design(token_design_id) if ledger.stock_for(model_id) is not None]
