"""
Storage facade, storage client protocol, and domain values.
"""

from .facade import StorageClient, StorageFacade
from .models import (
    BucketAlreadyOwnedByYouError,
    BucketNameTakenError,
    LocalIOError,
    NotFoundError,
    PresignOperation,
    PresignSpec,
    ReceivedFile,
    StagedFile,
    StorageError,
    TransportError,
    UploadFailedError,
    ValidationError,
    derive_download_filename,
)

__all__ = [
    "BucketAlreadyOwnedByYouError",
    "BucketNameTakenError",
    "LocalIOError",
    "NotFoundError",
    "PresignOperation",
    "PresignSpec",
    "ReceivedFile",
    "StagedFile",
    "StorageClient",
    "StorageError",
    "StorageFacade",
    "TransportError",
    "UploadFailedError",
    "ValidationError",
    "derive_download_filename",
]
