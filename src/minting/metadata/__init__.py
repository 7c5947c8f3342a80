"""Token metadata adapter factories.

``STORAGE_ADAPTER`` picks the storage preparer and ``METADATA_UPLOADER``
the metadata uploader. Only ``fake`` is bundled for either.
"""

import os

from protean.exceptions import ConfigurationError

from minting.metadata.fake_adapter import FakeMetadataUploader, FakeStoragePreparer
from minting.metadata.port import MetadataUploader, StoragePreparer

_current_storage: StoragePreparer | None = None
_current_uploader: MetadataUploader | None = None


def get_storage_preparer() -> StoragePreparer:
    global _current_storage
    if _current_storage is None:
        adapter = os.environ.get("STORAGE_ADAPTER", "fake")
        if adapter != "fake":
            raise ConfigurationError(f"Unknown storage adapter: {adapter}")
        _current_storage = FakeStoragePreparer()
    return _current_storage


def set_storage_preparer(storage: StoragePreparer) -> None:
    global _current_storage
    _current_storage = storage


def get_metadata_uploader() -> MetadataUploader:
    global _current_uploader
    if _current_uploader is None:
        adapter = os.environ.get("METADATA_UPLOADER", "fake")
        if adapter != "fake":
            raise ConfigurationError(f"Unknown metadata uploader: {adapter}")
        _current_uploader = FakeMetadataUploader()
    return _current_uploader


def set_metadata_uploader(uploader: MetadataUploader) -> None:
    global _current_uploader
    _current_uploader = uploader


def reset_metadata_adapters() -> None:
    """Reset both adapters to their defaults."""
    global _current_storage, _current_uploader
    _current_storage = None
    _current_uploader = None
