"""Domain events for the TokenDesign aggregate."""

from protean.fields import DateTime, Identifier, String

from minting.domain import minting


@minting.event(part_of="TokenDesign")
class TokenMetadataURIAssigned:
    """A metadata URI was generated and attached to a token design."""

    __version__ = "v1"

    token_design_id = Identifier(required=True)
    metadata_uri = String(required=True)
    assigned_by = String(required=True)
    assigned_at = DateTime(required=True)


@minting.event(part_of="TokenDesign")
class TokenDesignMinted:
    """The token design had its first successful on-chain mint."""

    __version__ = "v1"

    token_design_id = Identifier(required=True)
    brand_id = Identifier()
    minted_by = String(required=True)
    minted_at = DateTime(required=True)
