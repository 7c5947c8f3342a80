"""Inspection batch loaders: fetch the inspected products of a production run."""

from abc import ABC, abstractmethod

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from minting.production.inspection import InspectionBatch, InspectionItem


class InspectionBatchLoader(ABC):
    @abstractmethod
    def load_by_production_id(self, production_id: str) -> list[InspectionItem]:
        """Return the batch's inspection items in recorded order.

        Raises ``ObjectNotFoundError`` when the production has no batch.
        """
        ...


class InspectionRepositoryLoader(InspectionBatchLoader):
    def load_by_production_id(self, production_id: str) -> list[InspectionItem]:
        production_id = (production_id or "").strip()
        if not production_id:
            raise ValidationError({"production_id": ["Production id is required"]})
        try:
            batch = current_domain.repository_for(InspectionBatch).get(production_id)
        except ObjectNotFoundError as exc:
            raise ObjectNotFoundError(f"No inspection batch for production `{production_id}`") from exc
        return list(batch.items or [])
