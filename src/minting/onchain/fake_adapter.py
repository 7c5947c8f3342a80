"""Configurable fake onchain minter for development and testing.

Simulates a blockchain without any network calls. Successful mints are
remembered per request id so ``find_mint`` behaves like a chain lookup.
"""

from uuid import uuid4

from minting.errors import ExternalServiceError
from minting.onchain.port import MintTransactionResult, OnchainMinter


class FakeOnchainMinter(OnchainMinter):
    """Configurable fake onchain minter."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Transaction simulation failed"
        self.calls: list[dict] = []
        self._slot: int = 1000
        self._mints: dict[str, MintTransactionResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Transaction simulation failed") -> None:
        """Configure minter behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    @property
    def mint_calls(self) -> list[dict]:
        return [call for call in self.calls if call["method"] == "mint"]

    def mint(self, request_id: str) -> MintTransactionResult:
        self.calls.append({"method": "mint", "request_id": request_id})

        if not self.should_succeed:
            raise ExternalServiceError("onchain", self.failure_reason)

        self._slot += 1
        result = MintTransactionResult(
            signature=f"fake_sig_{uuid4().hex}",
            mint_address=f"fake_mint_{uuid4().hex[:32]}",
            slot=self._slot,
        )
        self._mints[request_id] = result
        return result

    def find_mint(self, request_id: str) -> MintTransactionResult | None:
        self.calls.append({"method": "find_mint", "request_id": request_id})
        return self._mints.get(request_id)
