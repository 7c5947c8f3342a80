"""In-memory storage preparer and metadata uploader for development and testing."""

import hashlib
import json

from minting.errors import ExternalServiceError
from minting.metadata.port import (
    MetadataUploader,
    StoragePreparer,
    contents_bucket,
    icon_bucket,
    placeholder_path,
)


class FakeStoragePreparer(StoragePreparer):
    """Keeps object keys per bucket in memory."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Bucket is not writable"
        self.calls: list[dict] = []
        self.objects: dict[str, set[str]] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Bucket is not writable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def ensure_placeholders(self, token_design_id: str) -> None:
        self.calls.append({"method": "ensure_placeholders", "token_design_id": token_design_id})

        if not self.should_succeed:
            raise ExternalServiceError("storage", self.failure_reason)

        for bucket in (icon_bucket(), contents_bucket()):
            self.objects.setdefault(bucket, set()).add(placeholder_path(token_design_id))

    def has_object(self, bucket: str, object_path: str) -> bool:
        return object_path in self.objects.get(bucket, set())


class FakeMetadataUploader(MetadataUploader):
    """Returns content-addressed fake Arweave URIs."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Upload rejected"
        self.uri_override: str | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Upload rejected",
        uri_override: str | None = None,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.uri_override = uri_override

    def upload_metadata(self, document: dict) -> str:
        self.calls.append({"method": "upload_metadata", "document": document})

        if not self.should_succeed:
            raise ExternalServiceError("metadata", self.failure_reason)
        if self.uri_override is not None:
            return self.uri_override

        digest = hashlib.sha256(json.dumps(document, sort_keys=True).encode()).hexdigest()
        return f"https://arweave.net/fake_{digest[:43]}"
