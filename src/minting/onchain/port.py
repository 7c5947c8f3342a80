"""Onchain minter port (abstract interface).

Defines the contract the blockchain minting adapters implement. The
workflow owns exactly-once semantics through the mint record's ``minted``
flag; adapters are not assumed to be idempotent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class MintTransactionResult:
    """Outcome of an on-chain mint transaction."""

    signature: str
    mint_address: str
    slot: int = 0


class OnchainMinter(ABC):
    """Abstract onchain minter interface."""

    @abstractmethod
    def mint(self, request_id: str) -> MintTransactionResult:
        """Execute the mint transaction for ``request_id``.

        Raises ``ExternalServiceError`` when the network rejects it.
        """
        ...

    @abstractmethod
    def find_mint(self, request_id: str) -> MintTransactionResult | None:
        """Look up a mint already executed on-chain for ``request_id``."""
        ...
