"""Mint Record store: load, create and update Mint Records by request id.

Records written by earlier schema revisions are absorbed on load:
``created_by`` stands in for a missing ``requested_by`` and the keys of a
``products`` map stand in for missing ``passed_product_ids``.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from minting.errors import MintRecordConsistencyError
from minting.mint_record.mint_record import MintRecord
from minting.onchain.port import MintTransactionResult

logger = structlog.get_logger(__name__)


def _absorb_legacy_fields(record: MintRecord) -> None:
    if not (record.requested_by or "").strip() and (record.created_by or "").strip():
        record.requested_by = record.created_by.strip()

    if not record.passed_product_ids and record.products:
        record.passed_product_ids = sorted(
            {str(product_id).strip() for product_id in record.products if str(product_id).strip()}
        )


class MintRecordStore:
    def load(self, request_id: str) -> MintRecord:
        request_id = (request_id or "").strip()
        if not request_id:
            raise ValidationError({"request_id": ["Mint request id is required"]})

        try:
            record = current_domain.repository_for(MintRecord).get(request_id)
        except ObjectNotFoundError as exc:
            raise ObjectNotFoundError(f"Mint record `{request_id}` does not exist") from exc
        except ValidationError as exc:
            raise MintRecordConsistencyError(f"Mint record `{request_id}` is inconsistent: {exc.messages}") from exc

        if str(record.id) != request_id:
            raise MintRecordConsistencyError(f"Mint record id `{record.id}` does not match request `{request_id}`")
        if record.minted and record.minted_at is None:
            logger.warning("Minted record has no mint time", request_id=request_id)

        _absorb_legacy_fields(record)
        return record

    def exists(self, request_id: str) -> bool:
        try:
            current_domain.repository_for(MintRecord).get(request_id)
        except ObjectNotFoundError:
            return False
        return True

    def create(self, record: MintRecord) -> MintRecord:
        if self.exists(str(record.id)):
            raise ValidationError({"request_id": [f"Mint request `{record.id}` already exists"]})
        current_domain.repository_for(MintRecord).add(record)
        logger.info("Mint record created", request_id=str(record.id))
        return record

    def update(self, record: MintRecord) -> MintRecord:
        """Persist the full record. Last write wins."""
        current_domain.repository_for(MintRecord).add(record)
        return record

    def record_onchain_result(self, request_id: str, result: MintTransactionResult) -> tuple[MintRecord, bool]:
        """Mark the record minted with ``result`` unless it already is.

        The record is re-read right before the write. Returns the persisted
        record and whether this call performed the transition; when another
        fulfillment got there first the stored record is returned untouched.
        """
        record = self.load(request_id)
        if record.minted:
            stored = record.transaction_result()
            logger.warning(
                "Mint record already minted, keeping stored result",
                request_id=request_id,
                stored_signature=stored.signature if stored else None,
                discarded_signature=result.signature,
            )
            return record, False

        record.record_onchain_result(result)
        self.update(record)
        return record, True
