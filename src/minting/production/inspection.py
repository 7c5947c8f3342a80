"""InspectionBatch aggregate (CQRS): per-product QA results for a production run.

The batch shares its identity with the production run it inspects. It is
read-only input to mint fulfillment; results are recorded here by the
inspection flow and the batch is linked to a mint request once one exists.

State Machine:
    INSPECTING → COMPLETED (once no item is Pending)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, String

from minting.domain import minting
from minting.production.events import InspectionBatchCompleted, InspectionResultRecorded


class InspectionResult(Enum):
    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"
    NOT_MANUFACTURED = "Not_Manufactured"


class InspectionStatus(Enum):
    INSPECTING = "Inspecting"
    COMPLETED = "Completed"


@minting.entity(part_of="InspectionBatch")
class InspectionItem:
    """The inspection outcome for one manufactured product."""

    product_id = Identifier(required=True)
    model_id = Identifier()
    result = String(
        choices=InspectionResult,
        default=InspectionResult.PENDING.value,
    )
    inspected_by = String(max_length=100)
    inspected_at = DateTime()


@minting.aggregate
class InspectionBatch:
    status = String(
        choices=InspectionStatus,
        default=InspectionStatus.INSPECTING.value,
    )
    items = HasMany(InspectionItem)
    mint_request_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, production_id, products):
        """Open a batch for ``products``, a list of ``(product_id, model_id)`` pairs."""
        production_id = (production_id or "").strip()
        if not production_id:
            raise ValidationError({"production_id": ["Production id is required"]})

        seen = set()
        pairs = []
        for product_id, model_id in products:
            product_id = (product_id or "").strip()
            if not product_id or product_id in seen:
                continue
            seen.add(product_id)
            pairs.append((product_id, (model_id or "").strip() or None))
        if not pairs:
            raise ValidationError({"items": ["An inspection batch needs at least one product"]})

        now = datetime.now(UTC)
        batch = cls(id=production_id, created_at=now, updated_at=now)
        for product_id, model_id in pairs:
            batch.add_items(InspectionItem(product_id=product_id, model_id=model_id))
        return batch

    @property
    def production_id(self):
        return str(self.id)

    def record_result(self, product_id, result, inspected_by):
        item = next((i for i in (self.items or []) if str(i.product_id) == str(product_id)), None)
        if item is None:
            raise ValidationError({"product_id": [f"Product {product_id} is not part of this batch"]})

        try:
            result = InspectionResult(result)
        except ValueError:
            raise ValidationError({"result": [f"Unknown inspection result: {result}"]}) from None
        if result == InspectionResult.PENDING:
            raise ValidationError({"result": ["An inspection must record a final result"]})
        if not inspected_by:
            raise ValidationError({"inspected_by": ["Inspector is required"]})

        now = datetime.now(UTC)
        item.result = result.value
        item.inspected_by = inspected_by
        item.inspected_at = now
        self.updated_at = now

        self.raise_(
            InspectionResultRecorded(
                production_id=self.production_id,
                product_id=str(product_id),
                model_id=str(item.model_id) if item.model_id else None,
                result=result.value,
                inspected_by=inspected_by,
                inspected_at=now,
            )
        )

        if self.status == InspectionStatus.INSPECTING.value and not any(
            i.result == InspectionResult.PENDING.value for i in self.items
        ):
            self.status = InspectionStatus.COMPLETED.value
            self.raise_(
                InspectionBatchCompleted(
                    production_id=self.production_id,
                    total=len(self.items),
                    total_passed=len(self.passed_product_ids()),
                    completed_at=now,
                )
            )

    def passed_product_ids(self):
        return sorted({str(i.product_id) for i in (self.items or []) if i.result == InspectionResult.PASSED.value})

    def link_mint_request(self, mint_request_id):
        if self.mint_request_id and str(self.mint_request_id) != str(mint_request_id):
            raise ValidationError({"mint_request_id": ["Batch is already linked to another mint request"]})
        self.mint_request_id = mint_request_id
        self.updated_at = datetime.now(UTC)
