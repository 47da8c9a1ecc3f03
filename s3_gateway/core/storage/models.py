"""
Domain values and error taxonomy for the storage facade.

These models have no dependencies on FastAPI or boto3. The facade validates
raw request strings into these values before any provider call is made, and
every failure surfaces as a StorageError subclass that the HTTP layer maps
onto a status code.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional
from uuid import uuid4

# SigV4 presigned URLs cannot outlive seven days.
MAX_PRESIGN_DURATION = timedelta(days=7)
MAX_PRESIGN_MINUTES = int(MAX_PRESIGN_DURATION.total_seconds() // 60)

FALLBACK_UPLOAD_NAME = "upload"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StorageError(Exception):
    """Base class for every failure the facade reports."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StorageError):
    """Missing or malformed input (empty bucket, key, file, bad duration)."""
    pass


class NotFoundError(StorageError):
    """Bucket or object does not exist."""
    pass


class BucketAlreadyOwnedByYouError(StorageError):
    """Create-bucket target already exists and belongs to the caller."""
    pass


class BucketNameTakenError(StorageError):
    """Create-bucket target is owned by another account."""
    pass


class TransportError(StorageError):
    """
    Network failure or provider-side error.

    Carries the provider error code, HTTP status and request id when the
    provider returned them, so the message in the response body and the
    log line point at the same provider request.
    """

    def __init__(
        self,
        message: str,
        provider_code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.provider_code = provider_code
        self.status_code = status_code
        self.request_id = request_id


class LocalIOError(StorageError):
    """Staging directory unusable, disk full, or staged file unreadable."""
    pass


class UploadFailedError(StorageError):
    """Provider did not accept the object; the staged file is kept."""
    pass


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

class PresignOperation(Enum):
    """HTTP verb a presigned URL authorizes."""
    PUT = "PUT"
    GET = "GET"


@dataclass(frozen=True)
class PresignSpec:
    """
    Everything needed to sign one URL.

    Frozen because a spec is created per request and discarded once the
    URL is returned.
    """
    bucket: str
    key: str
    operation: PresignOperation
    duration: timedelta

    def __post_init__(self) -> None:
        require_bucket_name(self.bucket)
        require_object_key(self.key)
        if self.duration <= timedelta(0):
            raise ValidationError("Expiration must be a positive number of minutes")
        if self.duration > MAX_PRESIGN_DURATION:
            raise _expiration_too_long()

    @classmethod
    def from_minutes(
        cls,
        bucket: str,
        key: str,
        operation: PresignOperation,
        minutes: int,
    ) -> "PresignSpec":
        # timedelta overflows long before an int does
        if minutes > MAX_PRESIGN_MINUTES:
            raise _expiration_too_long()
        return cls(
            bucket=bucket,
            key=key,
            operation=operation,
            duration=timedelta(minutes=minutes),
        )

    @property
    def expires_in_seconds(self) -> int:
        return int(self.duration.total_seconds())


def _expiration_too_long() -> ValidationError:
    return ValidationError(f"Expiration cannot exceed {MAX_PRESIGN_MINUTES} minutes")


@dataclass
class ReceivedFile:
    """A multipart file as handed over by the HTTP layer."""
    filename: Optional[str]
    stream: BinaryIO


@dataclass(frozen=True)
class StagedFile:
    """A received upload written to the staging directory."""
    path: Path
    size_bytes: int
    original_filename: str


# ---------------------------------------------------------------------------
# Validation and naming helpers
# ---------------------------------------------------------------------------

def require_bucket_name(value: Optional[str]) -> str:
    """Reject missing or blank bucket names. DNS rules are left to the provider."""
    if value is None or not value.strip():
        raise ValidationError("Bucket name is required")
    return value


def require_object_key(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError("Object key is required")
    return value


def derive_download_filename(key: str) -> str:
    """
    Local filename for a downloaded object.

    Keys without '/' are used whole. Otherwise the name starts at the last
    '/', and the slash itself is kept: 'greetings/hi.txt' -> '/hi.txt'.
    """
    # TODO: drop the leading slash (slice from index + 1) once clients stop
    # relying on the current download filenames.
    if "/" in key:
        return key[key.rfind("/"):]
    return key


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to a single safe path component.

    Directory parts (either separator style) are dropped so the name can
    never escape the staging directory. Control characters such as NUL,
    which the filesystem would refuse, are removed.
    """
    if not filename:
        return FALLBACK_UPLOAD_NAME
    printable = "".join(ch for ch in filename if ch.isprintable())
    name = printable.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in ("", ".", ".."):
        return FALLBACK_UPLOAD_NAME
    return name


def staged_filename(original_filename: Optional[str]) -> str:
    """Per-request staging name: '<uuid-hex>_<sanitized name>'."""
    return f"{uuid4().hex}_{sanitize_filename(original_filename)}"
