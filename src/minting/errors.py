"""Errors raised by the minting context that Protean does not already model.

Configuration, validation and not-found failures use Protean's own
``ConfigurationError``, ``ValidationError`` and ``ObjectNotFoundError``.
"""


class ExternalServiceError(Exception):
    """A storage, metadata or blockchain capability failed."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message


class ConsistencyError(Exception):
    """Persisted data contradicts itself and needs manual remediation."""


class MintRecordConsistencyError(ConsistencyError):
    """A stored Mint Record violates its own invariants."""


class InventoryConsistencyError(ConsistencyError):
    """Inspection or ledger data cannot be reconciled into inventory."""
