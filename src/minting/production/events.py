"""Domain events for production runs and their inspection batches."""

from protean.fields import DateTime, Identifier, Integer, String

from minting.domain import minting


@minting.event(part_of="InspectionBatch")
class InspectionResultRecorded:
    """A product in the batch was inspected."""

    __version__ = "v1"

    production_id = Identifier(required=True)
    product_id = Identifier(required=True)
    model_id = Identifier()
    result = String(required=True)
    inspected_by = String(required=True)
    inspected_at = DateTime(required=True)


@minting.event(part_of="InspectionBatch")
class InspectionBatchCompleted:
    """Every product in the batch has a final inspection result."""

    __version__ = "v1"

    production_id = Identifier(required=True)
    total = Integer(required=True)
    total_passed = Integer(required=True)
    completed_at = DateTime(required=True)
