"""Token metadata ports (abstract interfaces).

``StoragePreparer`` makes sure the object-storage locations a token design
publishes from exist. ``MetadataUploader`` stores a metadata document on
permanent storage and returns its URI.
"""

import os
from abc import ABC, abstractmethod

PLACEHOLDER_NAME = ".keep"


def icon_bucket() -> str:
    return os.environ.get("TOKEN_ICON_BUCKET", "").strip() or "token-icons"


def contents_bucket() -> str:
    return os.environ.get("TOKEN_CONTENTS_BUCKET", "").strip() or "token-contents"


def placeholder_path(token_design_id: str) -> str:
    return f"{token_design_id}/{PLACEHOLDER_NAME}"


def public_url(bucket: str, object_path: str) -> str:
    return f"https://storage.googleapis.com/{bucket}/{object_path.lstrip('/')}"


class StoragePreparer(ABC):
    @abstractmethod
    def ensure_placeholders(self, token_design_id: str) -> None:
        """Create the token design's placeholder objects if they are missing."""
        ...


class MetadataUploader(ABC):
    @abstractmethod
    def upload_metadata(self, document: dict) -> str:
        """Upload ``document`` and return the URI it is reachable at."""
        ...
