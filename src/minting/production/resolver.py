"""Production resolvers: map a mint request id to its product blueprint id.

Mint requests share their id with the production run they mint. Which
source holds the production document is decided when the workflow is
wired, by choosing one of the adapters below; there is no runtime probing
of accessor names.

Resolution is best-effort: an unknown production yields an empty string,
never an exception. The workflow turns the empty result into a
validation failure.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping

import structlog
from protean.exceptions import ConfigurationError, ObjectNotFoundError
from protean.utils.globals import current_domain

from minting.production.production import Production

logger = structlog.get_logger(__name__)


class ProductionResolver(ABC):
    @abstractmethod
    def resolve_product_blueprint_id(self, request_id: str) -> str:
        """Return the product blueprint id for ``request_id`` or ``""``."""
        ...


class ProductionAggregateResolver(ProductionResolver):
    """Reads the ``Production`` aggregate from the active domain."""

    def resolve_product_blueprint_id(self, request_id: str) -> str:
        request_id = (request_id or "").strip()
        if not request_id:
            return ""
        try:
            production = current_domain.repository_for(Production).get(request_id)
        except ObjectNotFoundError:
            logger.warning("Production not found for mint request", request_id=request_id)
            return ""
        return str(production.product_blueprint_id or "").strip()


class MappingProductionResolver(ProductionResolver):
    """Serves blueprint ids from a static ``{production_id: product_blueprint_id}`` map."""

    def __init__(self, mapping: Mapping[str, str]) -> None:
        self._mapping = dict(mapping)

    def resolve_product_blueprint_id(self, request_id: str) -> str:
        return str(self._mapping.get((request_id or "").strip()) or "").strip()


def resolver_from_env(mapping: Mapping[str, str] | None = None) -> ProductionResolver:
    """Build the resolver named by ``PRODUCTION_RESOLVER`` (default: aggregate)."""
    kind = os.environ.get("PRODUCTION_RESOLVER", "aggregate")
    if kind == "aggregate":
        return ProductionAggregateResolver()
    if kind == "mapping":
        if mapping is None:
            raise ConfigurationError("PRODUCTION_RESOLVER=mapping requires a production mapping")
        return MappingProductionResolver(mapping)
    raise ConfigurationError(f"Unknown production resolver: {kind}")
