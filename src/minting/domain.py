"""Minting bounded context: Mint Fulfillment and Inventory Ledger.

Turns passed-inspection production batches into on-chain token mints and
reconciles the minted products into a per-model inventory ledger.
"""

from protean.domain import Domain

from minting.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

minting = Domain(name="minting")
