"""MintRecord aggregate (CQRS): the persisted state of one mint request.

The record id is the mint request id, which is also the production id of
the run being minted.

State Machine:
    REQUESTED → MINTED (one-way)

Once minted, the record carries the transaction signature and mint
address under every historical alias (see ``result_mapper``).
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, DateTime, Dict, Identifier, Integer, List, String

from minting.domain import minting
from minting.mint_record import result_mapper
from minting.mint_record.events import MintRecorded, MintRequested


class MintStatus(Enum):
    REQUESTED = "Requested"
    MINTED = "Minted"


@minting.aggregate
class MintRecord:
    token_design_id = Identifier()
    brand_id = Identifier()
    passed_product_ids = List(content_type=String, default=list)
    requested_by = String(max_length=100)
    requested_at = DateTime()
    scheduled_burn_date = Date()

    minted = Boolean(default=False)
    minted_at = DateTime()
    slot = Integer(default=0)

    # Transaction signature aliases
    onchain_tx_signature = String(max_length=128)
    tx_signature = String(max_length=128)
    signature = String(max_length=128)

    # Mint address aliases
    mint_address = String(max_length=64)
    onchain_mint_address = String(max_length=64)

    # Fields from earlier schema revisions, absorbed on load
    created_by = String(max_length=100)
    products = Dict(default=dict)
    inspection_id = Identifier()

    @invariant.post
    def minted_record_carries_transaction(self):
        if not self.minted:
            return
        if not result_mapper.first_value(self, result_mapper.SIGNATURE_ALIASES):
            raise ValidationError({"signature": ["A minted record needs a transaction signature"]})
        if not result_mapper.first_value(self, result_mapper.MINT_ADDRESS_ALIASES):
            raise ValidationError({"mint_address": ["A minted record needs a mint address"]})

    @classmethod
    def request(
        cls,
        request_id,
        token_design_id,
        passed_product_ids,
        requested_by,
        brand_id=None,
        scheduled_burn_date=None,
    ):
        request_id = (request_id or "").strip()
        if not request_id:
            raise ValidationError({"request_id": ["Mint request id is required"]})
        token_design_id = (token_design_id or "").strip()
        if not token_design_id:
            raise ValidationError({"token_design_id": ["Token design id is required"]})

        product_ids = sorted({str(p).strip() for p in passed_product_ids if str(p or "").strip()})
        now = datetime.now(UTC)
        record = cls(
            id=request_id,
            token_design_id=token_design_id,
            brand_id=brand_id,
            passed_product_ids=product_ids,
            requested_by=requested_by,
            requested_at=now,
            scheduled_burn_date=scheduled_burn_date,
        )
        record.raise_(
            MintRequested(
                request_id=str(record.id),
                token_design_id=str(token_design_id),
                brand_id=brand_id,
                passed_product_ids=json.dumps(product_ids),
                requested_by=requested_by,
                requested_at=now,
                scheduled_burn_date=scheduled_burn_date.isoformat() if scheduled_burn_date else None,
            )
        )
        return record

    @property
    def status(self) -> MintStatus:
        return MintStatus.MINTED if self.minted else MintStatus.REQUESTED

    def transaction_result(self):
        """The stored on-chain result, or None if it is incomplete."""
        return result_mapper.from_record(self)

    def record_onchain_result(self, result, minted_at=None):
        """Move to MINTED with the given on-chain transaction."""
        if self.minted:
            raise ValidationError({"minted": [f"Mint request `{self.id}` is already minted"]})
        if not (result.signature or "").strip() or not (result.mint_address or "").strip():
            raise ValidationError({"result": ["Transaction signature and mint address are required"]})

        minted_at = minted_at or datetime.now(UTC)
        with atomic_change(self):
            self.minted = True
            self.minted_at = minted_at
            self.inspection_id = str(self.id)
            result_mapper.apply_to_record(self, result)

        self.raise_(
            MintRecorded(
                request_id=str(self.id),
                token_design_id=str(self.token_design_id),
                signature=result.signature.strip(),
                mint_address=result.mint_address.strip(),
                slot=result.slot,
                minted_at=minted_at,
            )
        )
