"""
Storage facade: the service layer between HTTP routes and object storage.

The facade validates inputs, stages upload/download files on local disk,
and turns client results into the messages the API returns. It doesn't
know about HTTP or boto3 - it only needs something that satisfies the
StorageClient protocol below.
"""

import asyncio
import logging
import os
import shutil
from datetime import timedelta
from pathlib import Path
from typing import Protocol

from .models import (
    LocalIOError,
    NotFoundError,
    PresignOperation,
    PresignSpec,
    ReceivedFile,
    StagedFile,
    TransportError,
    UploadFailedError,
    ValidationError,
    derive_download_filename,
    require_bucket_name,
    require_object_key,
    staged_filename,
)

logger = logging.getLogger(__name__)

UPLOAD_SUCCESS_MESSAGE = "File uploaded successfully"
UPLOAD_FAILED_MESSAGE = "File upload to bucket failed"
DOWNLOAD_SUCCESS_MESSAGE = "File downloaded successfully"
LOCAL_IO_MESSAGE = "Error while processing file"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class StorageClient(Protocol):
    """
    Interface for S3-compatible storage operations.

    One method per provider call. Implementations raise StorageError
    subclasses from .models; they never retry.
    """

    async def create_bucket(self, name: str) -> str:
        """Create a bucket and return the provider's location string."""
        ...

    async def bucket_exists(self, name: str) -> bool:
        """True if the bucket exists, False if the provider says 404."""
        ...

    async def list_buckets(self) -> list[str]:
        """Bucket names in provider order."""
        ...

    async def put_object(self, bucket: str, key: str, local_path: Path) -> bool:
        """Upload a closed local file. True if the provider answered 2xx."""
        ...

    async def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """Fetch a whole object into memory."""
        ...

    async def presign_put(self, bucket: str, key: str, duration: timedelta) -> str:
        """Signed URL allowing one HTTP PUT of the key."""
        ...

    async def presign_get(self, bucket: str, key: str, duration: timedelta) -> str:
        """Signed URL allowing HTTP GET of the key."""
        ...


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------

class StorageFacade:
    """
    Orchestrates storage requests for the HTTP layer.

    Holds no per-request state, so one instance is shared by every
    handler. The staging directory is a single flat folder; upload names
    are prefixed with a per-request UUID so concurrent uploads of the same
    filename don't overwrite each other.
    """

    def __init__(self, client: StorageClient, staging_dir: Path) -> None:
        self._client = client
        self._staging_dir = Path(staging_dir)

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    def prepare_staging_dir(self) -> Path:
        """
        Create the staging directory if needed and check it is writable.

        Called at startup and before each upload is staged.
        """
        try:
            self._staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "Could not create staging directory",
                extra={"staging_dir": str(self._staging_dir), "error": str(e)},
            )
            raise LocalIOError(f"{LOCAL_IO_MESSAGE}: cannot create staging directory") from e

        if not os.access(self._staging_dir, os.W_OK):
            logger.error(
                "Staging directory is not writable",
                extra={"staging_dir": str(self._staging_dir)},
            )
            raise LocalIOError(f"{LOCAL_IO_MESSAGE}: staging directory is not writable")

        return self._staging_dir

    # -- buckets --------------------------------------------------------------

    async def create_bucket(self, name: str) -> str:
        require_bucket_name(name)
        location = await self._client.create_bucket(name)
        logger.info("Bucket created", extra={"bucket": name, "location": location})
        return f"Bucket created in location: {location}"

    async def check_bucket(self, name: str) -> str:
        require_bucket_name(name)
        if await self._client.bucket_exists(name):
            return f"Bucket does exist: {name}"
        return f"Bucket does not exist: {name}"

    async def list_buckets(self) -> list[str]:
        return await self._client.list_buckets()

    # -- objects --------------------------------------------------------------

    async def upload_file(self, bucket: str, key: str, received: ReceivedFile) -> str:
        """
        Stage a received file, then forward it to the provider.

        On success the staged file is removed. When the provider refuses the
        object (missing bucket, any 4xx, non-2xx status) it stays in the
        staging directory and UploadFailedError is raised.
        """
        require_bucket_name(bucket)
        require_object_key(key)
        if received is None or received.stream is None:
            raise ValidationError("File is required")

        staged = await asyncio.to_thread(self._stage_upload, received)

        if staged.size_bytes == 0:
            await asyncio.to_thread(self._discard, staged.path)
            raise ValidationError("Uploaded file is empty")

        try:
            accepted = await self._client.put_object(bucket, key, staged.path)
        except NotFoundError as e:
            logger.warning(
                "Upload target missing, staged file kept",
                extra={"bucket": bucket, "key": key, "staged_path": str(staged.path)},
            )
            raise UploadFailedError(UPLOAD_FAILED_MESSAGE) from e
        except TransportError as e:
            # botocore raises for every non-2xx answer; a 4xx is a refusal,
            # 5xx and network failures stay transport errors
            if e.status_code is None or not 400 <= e.status_code < 500:
                raise
            logger.warning(
                "Provider refused upload, staged file kept",
                extra={
                    "bucket": bucket,
                    "key": key,
                    "staged_path": str(staged.path),
                    "status_code": e.status_code,
                    "error_code": e.provider_code,
                },
            )
            raise UploadFailedError(UPLOAD_FAILED_MESSAGE) from e

        if not accepted:
            logger.warning(
                "Provider rejected upload, staged file kept",
                extra={"bucket": bucket, "key": key, "staged_path": str(staged.path)},
            )
            raise UploadFailedError(UPLOAD_FAILED_MESSAGE)

        await asyncio.to_thread(self._discard, staged.path)

        logger.info(
            "File uploaded",
            extra={
                "bucket": bucket,
                "key": key,
                "size_bytes": staged.size_bytes,
                "original_filename": staged.original_filename,
            },
        )
        return UPLOAD_SUCCESS_MESSAGE

    async def download_file(self, bucket: str, key: str) -> str:
        """Fetch an object and write it into the staging directory."""
        require_bucket_name(bucket)
        require_object_key(key)

        target = self.download_path(key)
        data = await self._client.get_object_bytes(bucket, key)
        await asyncio.to_thread(self._write_download, target, data)

        logger.info(
            "File downloaded",
            extra={
                "bucket": bucket,
                "key": key,
                "path": str(target),
                "size_bytes": len(data),
            },
        )
        return DOWNLOAD_SUCCESS_MESSAGE

    def download_path(self, key: str) -> Path:
        """
        Where download_file writes an object.

        The derived filename keeps its leading slash; like the original path
        join, it is resolved relative to the staging directory.
        """
        relative = derive_download_filename(key).lstrip("/")
        if relative in ("", ".", ".."):
            raise ValidationError(f"Key does not name a file: {key}")
        return self._staging_dir / relative

    # -- presigned URLs -------------------------------------------------------

    async def presign_upload(self, bucket: str, key: str, minutes: int) -> str:
        spec = PresignSpec.from_minutes(bucket, key, PresignOperation.PUT, minutes)
        return await self._presign(spec)

    async def presign_download(self, bucket: str, key: str, minutes: int) -> str:
        spec = PresignSpec.from_minutes(bucket, key, PresignOperation.GET, minutes)
        return await self._presign(spec)

    async def _presign(self, spec: PresignSpec) -> str:
        if spec.operation is PresignOperation.PUT:
            url = await self._client.presign_put(spec.bucket, spec.key, spec.duration)
        else:
            url = await self._client.presign_get(spec.bucket, spec.key, spec.duration)

        logger.debug(
            "Presigned URL issued",
            extra={
                "bucket": spec.bucket,
                "key": spec.key,
                "operation": spec.operation.value,
                "expires_in": spec.expires_in_seconds,
            },
        )
        return url

    # -- local disk (run in worker threads) -----------------------------------

    def _stage_upload(self, received: ReceivedFile) -> StagedFile:
        self.prepare_staging_dir()
        path = self._staging_dir / staged_filename(received.filename)
        try:
            with open(path, "wb") as out:
                shutil.copyfileobj(received.stream, out)
            size = path.stat().st_size
        except OSError as e:
            logger.error(
                "Failed to stage upload",
                extra={"path": str(path), "error": str(e)},
            )
            raise LocalIOError(f"{LOCAL_IO_MESSAGE}: {e.strerror or e}") from e

        return StagedFile(
            path=path,
            size_bytes=size,
            original_filename=received.filename or "",
        )

    def _write_download(self, target: Path, data: bytes) -> None:
        try:
            # one level deep, so no recursive creation
            target.parent.mkdir(exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(
                "Failed to write downloaded file",
                extra={"path": str(target), "error": str(e)},
            )
            raise LocalIOError(f"{LOCAL_IO_MESSAGE}: {e.strerror or e}") from e

    def _discard(self, path: Path) -> None:
        # A leftover staged file is tolerated; the upload itself succeeded.
        try:
            path.unlink()
        except OSError as e:
            logger.warning(
                "Could not delete staged file",
                extra={"path": str(path), "error": str(e)},
            )
