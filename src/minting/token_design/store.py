"""Token Design store: the read/patch port the workflow uses.

``update`` accepts a ``TokenDesignPatch`` covering the fields this context
is allowed to move (``minted``, ``metadata_uri``) plus the audit pair
(``updated_at``, ``updated_by``) that the aggregate stamps itself.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from minting.token_design.token_design import TokenDesign

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TokenDesignPatch:
    updated_by: str
    minted: bool | None = None
    metadata_uri: str | None = None


class TokenDesignStore:
    def get_by_id(self, token_design_id: str) -> TokenDesign:
        token_design_id = (token_design_id or "").strip()
        if not token_design_id:
            raise ValidationError({"token_design_id": ["Token design id is required"]})
        try:
            return current_domain.repository_for(TokenDesign).get(token_design_id)
        except ObjectNotFoundError as exc:
            raise ObjectNotFoundError(f"Token design `{token_design_id}` does not exist") from exc

    def update(self, token_design_id: str, patch: TokenDesignPatch) -> TokenDesign:
        if not (patch.updated_by or "").strip():
            raise ValidationError({"updated_by": ["An actor is required to update a token design"]})
        if patch.minted is False:
            raise ValidationError({"minted": ["Token designs can only move to minted"]})

        token_design = self.get_by_id(token_design_id)
        if patch.metadata_uri is not None:
            token_design.assign_metadata_uri(patch.metadata_uri, patch.updated_by)
        if patch.minted:
            token_design.mark_minted(patch.updated_by)

        current_domain.repository_for(TokenDesign).add(token_design)
        return token_design

    def mark_minted(self, token_design_id: str, actor_id: str) -> bool:
        """Set ``minted`` on the design unless it is already set.

        Returns True when this call performed the transition.
        """
        token_design = self.get_by_id(token_design_id)
        if token_design.minted:
            logger.info("Token design already minted", token_design_id=token_design_id)
            return False

        self.update(token_design_id, TokenDesignPatch(updated_by=actor_id, minted=True))
        logger.info("Token design marked minted", token_design_id=token_design_id, actor_id=actor_id)
        return True
