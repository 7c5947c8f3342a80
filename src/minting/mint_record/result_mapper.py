"""Alias table between on-chain results and the stored Mint Record.

Mint Records have carried the transaction signature and mint address
under several names across schema revisions. Reads take the first
non-empty alias in priority order; writes fill every alias so readers of
any revision see the same value.
"""

from minting.onchain.port import MintTransactionResult

SIGNATURE_ALIASES = ("onchain_tx_signature", "tx_signature", "signature")
MINT_ADDRESS_ALIASES = ("mint_address", "onchain_mint_address")


def first_value(record, aliases) -> str:
    for name in aliases:
        value = str(getattr(record, name, None) or "").strip()
        if value:
            return value
    return ""


def from_record(record) -> MintTransactionResult | None:
    """Rebuild the transaction result stored on ``record``.

    Returns None when either the signature or the mint address is missing.
    """
    signature = first_value(record, SIGNATURE_ALIASES)
    mint_address = first_value(record, MINT_ADDRESS_ALIASES)
    if not signature or not mint_address:
        return None
    return MintTransactionResult(
        signature=signature,
        mint_address=mint_address,
        slot=int(getattr(record, "slot", None) or 0),
    )


def apply_to_record(record, result: MintTransactionResult) -> None:
    signature = (result.signature or "").strip()
    mint_address = (result.mint_address or "").strip()
    for name in SIGNATURE_ALIASES:
        setattr(record, name, signature)
    for name in MINT_ADDRESS_ALIASES:
        setattr(record, name, mint_address)
    record.slot = result.slot
