"""Production aggregate (CQRS): one manufacturing run of a product blueprint."""

from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, String

from minting.domain import minting


@minting.aggregate
class Production:
    product_blueprint_id = Identifier(required=True)
    brand_id = Identifier()
    quantity = Integer(default=0)
    created_by = String(max_length=100)
    created_at = DateTime()

    @classmethod
    def create(cls, product_blueprint_id, quantity=0, brand_id=None, created_by=None, production_id=None):
        values = {
            "product_blueprint_id": product_blueprint_id,
            "brand_id": brand_id,
            "quantity": quantity,
            "created_by": created_by,
            "created_at": datetime.now(UTC),
        }
        if production_id is not None:
            values["id"] = production_id
        return cls(**values)
