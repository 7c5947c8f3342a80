"""Mint fulfillment workflow: turn a mint request into an on-chain mint and ledger stock.

Flow for ``fulfill(request_id)``:

    load mint record → preconditions → actor
      ├─ Minted:    reuse the stored transaction result
      └─ Requested: placeholders → metadata URI → find/mint on-chain
                    → mark token design minted → record the result
    → group passed inspection items by model → merge each model into the ledger

Steps up to and including the on-chain call abort the fulfillment with no
record mutation. Once the chain has accepted a mint it cannot be undone, so
failures while marking the token design or recording the result are logged
and the ledger is still reconciled with the in-memory result.

The idempotency check and everything up to recording the result run under
a lock keyed by request id, so two fulfillments of one request never both
reach the minter.

This is an application service rather than a command handler: each
repository write commits on its own, so minted state survives a later
ledger failure.
"""

import time

import structlog
from protean.exceptions import ConfigurationError, ValidationError

from minting.errors import ExternalServiceError, InventoryConsistencyError, MintRecordConsistencyError
from minting.ledger.ledger import normalize_ids
from minting.ledger.service import InventoryLedgerService
from minting.metadata.preparer import TokenMetadataPreparer
from minting.mint_record.store import MintRecordStore
from minting.onchain.port import MintTransactionResult, OnchainMinter
from minting.production.loader import InspectionBatchLoader
from minting.production.resolver import ProductionResolver
from minting.token_design.store import TokenDesignStore
from minting.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

_request_locks = KeyedLock()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class MintFulfillmentWorkflow:
    def __init__(
        self,
        mint_records: MintRecordStore | None = None,
        production_resolver: ProductionResolver | None = None,
        inspection_loader: InspectionBatchLoader | None = None,
        metadata_preparer: TokenMetadataPreparer | None = None,
        minter: OnchainMinter | None = None,
        token_designs: TokenDesignStore | None = None,
        ledger: InventoryLedgerService | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        self.mint_records = mint_records
        self.production_resolver = production_resolver
        self.inspection_loader = inspection_loader
        self.metadata_preparer = metadata_preparer
        self.minter = minter
        self.token_designs = token_designs
        self.ledger = ledger
        self._locks = locks or _request_locks

    def _check_configured(self) -> None:
        missing = [
            name
            for name in (
                "mint_records",
                "production_resolver",
                "inspection_loader",
                "metadata_preparer",
                "minter",
                "token_designs",
                "ledger",
            )
            if getattr(self, name) is None
        ]
        if missing:
            raise ConfigurationError(f"Mint fulfillment workflow is missing: {', '.join(missing)}")

    def fulfill(self, request_id: str, actor_id: str | None = None) -> MintTransactionResult:
        """Fulfill the mint request ``request_id`` and return its transaction.

        ``actor_id`` is used only when the mint record names no requester.
        """
        start = time.perf_counter()
        self._check_configured()

        request_id = (request_id or "").strip()
        if not request_id:
            raise ValidationError({"request_id": ["Mint request id is required"]})

        log = logger.bind(request_id=request_id)
        log.info("Mint fulfillment started")

        with self._locks.hold(request_id):
            record = self.mint_records.load(request_id)

            token_design_id = (record.token_design_id or "").strip()
            if not token_design_id:
                log.warning("Mint fulfillment aborted", reason="empty_token_design_id")
                raise ValidationError({"token_design_id": ["Mint record has no token design"]})
            log = log.bind(token_design_id=token_design_id)

            product_blueprint_id = self.production_resolver.resolve_product_blueprint_id(request_id)
            if not product_blueprint_id:
                log.warning("Mint fulfillment aborted", reason="empty_product_blueprint_id")
                raise ValidationError({"product_blueprint_id": ["No product blueprint for this production"]})
            log = log.bind(product_blueprint_id=product_blueprint_id)

            passed_product_ids = normalize_ids(record.passed_product_ids)
            if not passed_product_ids:
                log.warning("Mint fulfillment aborted", reason="no_passed_products")
                raise ValidationError({"passed_product_ids": ["No passed products for this mint request"]})

            actor = (record.requested_by or "").strip() or (actor_id or "").strip()
            if not actor:
                log.warning("Mint fulfillment aborted", reason="no_actor")
                raise ValidationError({"actor_id": ["No actor can be attributed to this mint"]})

            if record.minted:
                result = record.transaction_result()
                if result is None:
                    raise MintRecordConsistencyError(f"Mint record `{request_id}` is minted without a transaction")
                log.info(
                    "On-chain mint skipped",
                    reason="already_minted",
                    signature=result.signature,
                    mint_address=result.mint_address,
                )
            else:
                result = self._mint(request_id, token_design_id, actor, log)

        self._reconcile_inventory(request_id, product_blueprint_id, token_design_id, passed_product_ids, log)

        log.info("Mint fulfillment completed", signature=result.signature, elapsed_ms=_elapsed_ms(start))
        return result

    # -------------------------------------------------------------------
    # Requested → Minted
    # -------------------------------------------------------------------
    def _mint(self, request_id, token_design_id, actor, log) -> MintTransactionResult:
        step = time.perf_counter()
        self.metadata_preparer.ensure_storage_placeholders(token_design_id)
        log.info("Storage placeholders ensured", elapsed_ms=_elapsed_ms(step))

        step = time.perf_counter()
        uri = (self.metadata_preparer.ensure_metadata_uri(token_design_id, actor) or "").strip()
        if not uri:
            log.warning("Mint fulfillment aborted", reason="empty_metadata_uri")
            raise ExternalServiceError("metadata", f"No metadata URI for token design `{token_design_id}`")
        log.info("Metadata URI ensured", metadata_uri=uri, elapsed_ms=_elapsed_ms(step))

        step = time.perf_counter()
        result = self.minter.find_mint(request_id)
        if result is not None:
            log.warning("Recovered unrecorded on-chain mint", signature=result.signature)
        else:
            result = self.minter.mint(request_id)
        if result is None or not result.signature.strip() or not result.mint_address.strip():
            raise ExternalServiceError("onchain", f"Mint for `{request_id}` returned an incomplete transaction")
        log.info(
            "On-chain mint succeeded",
            signature=result.signature,
            mint_address=result.mint_address,
            slot=result.slot,
            elapsed_ms=_elapsed_ms(step),
        )

        try:
            self.token_designs.mark_minted(token_design_id, actor)
        except Exception as exc:
            log.error("Marking token design minted failed", error=str(exc), exc_info=True)

        try:
            record, recorded = self.mint_records.record_onchain_result(request_id, result)
        except Exception as exc:
            log.error("Recording on-chain result failed", error=str(exc), exc_info=True)
        else:
            if not recorded:
                result = record.transaction_result() or result
            log.info("On-chain result recorded", recorded=recorded)

        return result

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def _reconcile_inventory(self, request_id, product_blueprint_id, token_design_id, passed_product_ids, log) -> None:
        items = self.inspection_loader.load_by_production_id(request_id)
        passed = set(passed_product_ids)

        by_model: dict[str, list[str]] = {}
        for item in items:
            product_id = (item.product_id or "").strip()
            if product_id not in passed:
                continue
            model_id = (item.model_id or "").strip()
            if not model_id:
                continue
            by_model.setdefault(model_id, []).append(product_id)

        if not by_model:
            log.error(
                "Mint fulfillment aborted",
                reason="no_model_groups",
                passed=len(passed_product_ids),
                inspections=len(items),
            )
            raise InventoryConsistencyError(
                f"No model groups found in the inspection batch for the passed products of `{request_id}`"
            )

        for model_id in sorted(by_model):
            step = time.perf_counter()
            ledger = self.ledger.upsert_from_mint(product_blueprint_id, token_design_id, model_id, by_model[model_id])
            log.info(
                "Inventory merged",
                inventory_id=str(ledger.id),
                model_id=model_id,
                accumulation=ledger.stock_for(model_id).accumulation,
                elapsed_ms=_elapsed_ms(step),
            )
