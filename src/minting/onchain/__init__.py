"""Onchain minter factory.

Provides get_minter() / set_minter() to swap implementations. The
adapter is chosen by ``MINTER_ADAPTER`` (only ``fake`` is bundled).
"""

import os

from protean.exceptions import ConfigurationError

from minting.onchain.fake_adapter import FakeOnchainMinter
from minting.onchain.port import MintTransactionResult, OnchainMinter

__all__ = ["MintTransactionResult", "OnchainMinter", "get_minter", "set_minter", "reset_minter"]

_current_minter: OnchainMinter | None = None


def _build_minter() -> OnchainMinter:
    adapter = os.environ.get("MINTER_ADAPTER", "fake")
    if adapter == "fake":
        return FakeOnchainMinter()
    raise ConfigurationError(f"Unknown onchain minter adapter: {adapter}")


def get_minter() -> OnchainMinter:
    """Return the current onchain minter. Defaults to the adapter named by MINTER_ADAPTER."""
    global _current_minter
    if _current_minter is None:
        _current_minter = _build_minter()
    return _current_minter


def set_minter(minter: OnchainMinter) -> None:
    """Override the active onchain minter (useful for tests)."""
    global _current_minter
    _current_minter = minter


def reset_minter() -> None:
    """Reset to default minter."""
    global _current_minter
    _current_minter = None
