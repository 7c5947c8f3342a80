"""TokenDesign aggregate (CQRS): the definition of an on-chain token.

A token design is shared by every mint request that targets it. This
context only ever moves it forward: it attaches a metadata URI once and
flips ``minted`` to true once. Neither is ever reset here.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

from minting.domain import minting
from minting.token_design.events import TokenDesignMinted, TokenMetadataURIAssigned


@minting.aggregate
class TokenDesign:
    """An on-chain token definition owned by a brand."""

    brand_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    symbol = String(required=True, max_length=20)
    description = Text()
    icon_url = String(max_length=500)
    minted = Boolean(default=False)
    metadata_uri = String(max_length=500)
    created_by = String(max_length=100)
    created_at = DateTime()
    updated_by = String(max_length=100)
    updated_at = DateTime()

    @classmethod
    def create(cls, brand_id, name, symbol, created_by, description=None, icon_url=None, token_design_id=None):
        now = datetime.now(UTC)
        values = {
            "brand_id": brand_id,
            "name": name,
            "symbol": symbol,
            "description": description,
            "icon_url": icon_url,
            "created_by": created_by,
            "created_at": now,
            "updated_by": created_by,
            "updated_at": now,
        }
        if token_design_id is not None:
            values["id"] = token_design_id
        return cls(**values)

    def assign_metadata_uri(self, uri, actor_id):
        """Attach a metadata URI. Only allowed while none is set."""
        uri = (uri or "").strip()
        if not uri:
            raise ValidationError({"metadata_uri": ["Metadata URI cannot be empty"]})
        if self.metadata_uri:
            raise ValidationError({"metadata_uri": ["Metadata URI is already assigned"]})

        now = datetime.now(UTC)
        self.metadata_uri = uri
        self.updated_by = actor_id
        self.updated_at = now
        self.raise_(
            TokenMetadataURIAssigned(
                token_design_id=str(self.id),
                metadata_uri=uri,
                assigned_by=actor_id,
                assigned_at=now,
            )
        )

    def mark_minted(self, actor_id):
        """Flip ``minted`` to true. Returns False when it already was."""
        if self.minted:
            return False

        now = datetime.now(UTC)
        self.minted = True
        self.updated_by = actor_id
        self.updated_at = now
        self.raise_(
            TokenDesignMinted(
                token_design_id=str(self.id),
                brand_id=str(self.brand_id),
                minted_by=actor_id,
                minted_at=now,
            )
        )
        return True
