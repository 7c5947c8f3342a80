"""Domain events for the MintRecord aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from minting.domain import minting


@minting.event(part_of="MintRecord")
class MintRequested:
    """A production run was submitted for minting."""

    __version__ = "v1"

    request_id = Identifier(required=True)
    token_design_id = Identifier(required=True)
    brand_id = Identifier()
    passed_product_ids = Text(required=True)  # JSON: list of product IDs
    requested_by = String()
    requested_at = DateTime(required=True)
    scheduled_burn_date = String()


@minting.event(part_of="MintRecord")
class MintRecorded:
    """The on-chain transaction for a mint request was persisted."""

    __version__ = "v1"

    request_id = Identifier(required=True)
    token_design_id = Identifier(required=True)
    signature = String(required=True)
    mint_address = String(required=True)
    slot = Integer()
    minted_at = DateTime(required=True)
