"""Token metadata preparation ahead of a mint.

A mint must cite metadata, so before the first mint of a token design its
placeholder objects are created and a metadata document is uploaded. The
resulting URI is stored on the token design; later calls find it there and
do nothing.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError

from minting.errors import ExternalServiceError
from minting.metadata.port import (
    MetadataUploader,
    StoragePreparer,
    contents_bucket,
    icon_bucket,
    placeholder_path,
    public_url,
)
from minting.token_design.store import TokenDesignPatch, TokenDesignStore
from minting.token_design.token_design import TokenDesign
from minting.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

_design_locks = KeyedLock()


def build_metadata_document(token_design: TokenDesign) -> dict:
    """Assemble the off-chain metadata JSON for ``token_design``."""
    token_design_id = str(token_design.id)
    name = (token_design.name or "").strip()
    symbol = (token_design.symbol or "").strip()
    if not name:
        raise ValidationError({"name": ["Token design name is required for metadata"]})
    if not symbol:
        raise ValidationError({"symbol": ["Token design symbol is required for metadata"]})

    image_url = (token_design.icon_url or "").strip() or public_url(icon_bucket(), placeholder_path(token_design_id))
    return {
        "name": name,
        "symbol": symbol,
        "description": (token_design.description or "").strip(),
        "image": image_url,
        "attributes": [
            {"trait_type": "TokenDesignID", "value": token_design_id},
            {"trait_type": "BrandID", "value": str(token_design.brand_id or "")},
        ],
        "properties": {
            "category": "image",
            "files": [
                {"uri": image_url, "type": "image/*"},
                {
                    "uri": public_url(contents_bucket(), placeholder_path(token_design_id)),
                    "type": "application/octet-stream",
                },
            ],
        },
        "created_at": datetime.now(UTC).isoformat(),
    }


class TokenMetadataPreparer:
    def __init__(
        self,
        storage: StoragePreparer,
        uploader: MetadataUploader,
        token_designs: TokenDesignStore,
        locks: KeyedLock | None = None,
    ) -> None:
        self.storage = storage
        self.uploader = uploader
        self.token_designs = token_designs
        self._locks = locks or _design_locks

    def ensure_storage_placeholders(self, token_design_id: str) -> None:
        token_design_id = (token_design_id or "").strip()
        if not token_design_id:
            raise ValidationError({"token_design_id": ["Token design id is required"]})
        self.storage.ensure_placeholders(token_design_id)

    def ensure_metadata_uri(self, token_design_id: str, actor_id: str) -> str:
        """Return the token design's metadata URI, uploading it on first use.

        Runs under a lock keyed by the token design, so fulfillments of
        different requests for one design upload at most once in-process.
        If another writer still assigns a URI between the check and the
        write, that stored URI is returned and the fresh upload is dropped.
        """
        token_design_id = (token_design_id or "").strip()
        with self._locks.hold(token_design_id):
            token_design = self.token_designs.get_by_id(token_design_id)
            existing = (token_design.metadata_uri or "").strip()
            if existing:
                return existing

            document = build_metadata_document(token_design)
            uri = (self.uploader.upload_metadata(document) or "").strip()
            if not uri:
                raise ExternalServiceError("metadata", f"Upload for token design `{token_design_id}` returned no URI")

            try:
                self.token_designs.update(
                    token_design_id,
                    TokenDesignPatch(updated_by=actor_id, metadata_uri=uri),
                )
            except ValidationError:
                stored = (self.token_designs.get_by_id(token_design_id).metadata_uri or "").strip()
                if not stored:
                    raise
                logger.warning(
                    "Metadata URI assigned concurrently, keeping stored URI",
                    token_design_id=token_design_id,
                    metadata_uri=stored,
                    discarded_uri=uri,
                )
                return stored

        logger.info("Token metadata uploaded", token_design_id=token_design_id, metadata_uri=uri)
        return uri
