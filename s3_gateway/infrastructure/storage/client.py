"""
Object storage clients for the S3 gateway.

Talks to AWS S3 or any S3-compatible endpoint (MinIO, Ceph RGW) through
boto3 with SigV4 signing. Provider failures are translated into the
StorageError taxonomy from core, with the provider error code and request
id logged at this boundary.

Mock mode keeps buckets and objects in memory, enabling API testing
without provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from ...core.storage.facade import StorageClient
from ...core.storage.models import (
    BucketAlreadyOwnedByYouError,
    BucketNameTakenError,
    LocalIOError,
    NotFoundError,
    StorageError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://s3.us-east-1.amazonaws.com"
DEFAULT_REGION = "us-east-1"

_NOT_FOUND_CODES = {"404", "NoSuchBucket", "NoSuchKey", "NotFound"}
_INVALID_INPUT_CODES = {"InvalidBucketName", "KeyTooLongError", "InvalidArgument"}


@dataclass(frozen=True)
class StorageConfig:
    """
    Connection settings for an S3-compatible provider.

    Frozen: built once at startup and shared by every request.
    Empty credentials defer to boto3's default credential chain.
    """
    access_key_id: str
    secret_access_key: str
    region: str = DEFAULT_REGION
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    force_path_style: bool = True


def _client_error_details(error: ClientError) -> dict[str, Any]:
    response = error.response or {}
    err = response.get("Error", {})
    metadata = response.get("ResponseMetadata", {})
    headers = metadata.get("HTTPHeaders", {})
    return {
        "code": str(err.get("Code", "")),
        "message": err.get("Message") or str(error),
        "status_code": metadata.get("HTTPStatusCode"),
        "request_id": metadata.get("RequestId") or headers.get("x-amz-request-id"),
    }


def translate_client_error(error: ClientError, operation: str, **context: Any) -> StorageError:
    """Map a provider error response onto the StorageError taxonomy."""
    details = _client_error_details(error)
    code = details["code"]
    message = details["message"]
    translated = _classify(code, message, operation, details)

    # a missing bucket or key is often an expected answer (head_bucket)
    log = logger.info if isinstance(translated, NotFoundError) else logger.error
    log(
        "S3 request failed",
        extra={
            "operation": operation,
            "error_code": code,
            "status_code": details["status_code"],
            "request_id": details["request_id"],
            **context,
        },
    )
    return translated


def _classify(code: str, message: str, operation: str, details: dict[str, Any]) -> StorageError:
    if code == "BucketAlreadyOwnedByYou":
        return BucketAlreadyOwnedByYouError(f"Bucket already owned by you: {message}")
    if code == "BucketAlreadyExists":
        return BucketNameTakenError(f"Bucket name already taken: {message}")
    if code in _NOT_FOUND_CODES or details["status_code"] == 404:
        return NotFoundError(f"Not found: {message}")
    if code in _INVALID_INPUT_CODES:
        return ValidationError(f"{code}: {message}")

    summary = f"{code}: {message}" if code else message
    return TransportError(
        f"{operation} failed: {summary}",
        provider_code=code or None,
        status_code=details["status_code"],
        request_id=details["request_id"],
    )


class S3StorageClient(StorageClient):
    """
    boto3-backed StorageClient.

    One boto3 client is created per instance and reused; boto3 clients are
    thread-safe, so each blocking call runs in a worker thread via
    asyncio.to_thread. No retries are added here beyond botocore's own
    transport defaults.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path" if config.force_path_style else "auto"},
        )

        self._s3 = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={"endpoint": config.endpoint_url, "region": config.region},
        )

    async def _call(self, operation: str, func: Callable[[], Any], **context: Any) -> Any:
        """Run a blocking provider call off the event loop and translate failures."""
        try:
            return await asyncio.to_thread(func)
        except ClientError as e:
            raise translate_client_error(e, operation, **context) from e
        except ParamValidationError as e:
            # botocore checks bucket names and parameters before sending
            logger.info(
                "S3 request rejected before sending",
                extra={"operation": operation, "error": str(e), **context},
            )
            raise ValidationError(str(e)) from e
        except BotoCoreError as e:
            logger.error(
                "S3 transport failure",
                extra={"operation": operation, "error": str(e), **context},
            )
            raise TransportError(f"{operation} failed: {e}") from e

    def _log_success(self, operation: str, response: dict[str, Any], **context: Any) -> None:
        logger.debug(
            "S3 request succeeded",
            extra={
                "operation": operation,
                "request_id": response.get("ResponseMetadata", {}).get("RequestId"),
                **context,
            },
        )

    async def create_bucket(self, name: str) -> str:
        params: dict[str, Any] = {"Bucket": name}
        # us-east-1 rejects an explicit LocationConstraint
        if self._config.region and self._config.region != DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self._config.region}

        response = await self._call(
            "create_bucket",
            lambda: self._s3.create_bucket(**params),
            bucket=name,
        )
        self._log_success("create_bucket", response, bucket=name)
        return response.get("Location") or f"/{name}"

    async def bucket_exists(self, name: str) -> bool:
        try:
            response = await self._call(
                "head_bucket",
                lambda: self._s3.head_bucket(Bucket=name),
                bucket=name,
            )
        except NotFoundError:
            return False
        self._log_success("head_bucket", response, bucket=name)
        return True

    async def list_buckets(self) -> list[str]:
        """
        All bucket names, in the order the provider returns them.

        Follows ContinuationToken when the provider paginates.
        """
        names: list[str] = []
        params: dict[str, Any] = {}
        while True:
            response = await self._call(
                "list_buckets",
                lambda: self._s3.list_buckets(**params),
            )
            names.extend(bucket["Name"] for bucket in response.get("Buckets", []))
            token = response.get("ContinuationToken")
            if not token:
                break
            params = {"ContinuationToken": token}

        self._log_success("list_buckets", response, count=len(names))
        return names

    async def put_object(self, bucket: str, key: str, local_path: Path) -> bool:
        def upload() -> dict[str, Any]:
            with open(local_path, "rb") as body:
                return self._s3.put_object(Bucket=bucket, Key=key, Body=body)

        try:
            response = await self._call("put_object", upload, bucket=bucket, key=key)
        except OSError as e:
            logger.error(
                "Could not read staged file",
                extra={"path": str(local_path), "error": str(e)},
            )
            raise LocalIOError(f"Error while processing file: {e.strerror or e}") from e

        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        if not 200 <= status_code < 300:
            logger.warning(
                "Provider returned non-success status for upload",
                extra={"bucket": bucket, "key": key, "status_code": status_code},
            )
            return False

        self._log_success("put_object", response, bucket=bucket, key=key)
        return True

    async def get_object_bytes(self, bucket: str, key: str) -> bytes:
        def download() -> tuple[dict[str, Any], bytes]:
            response = self._s3.get_object(Bucket=bucket, Key=key)
            return response, response["Body"].read()

        response, data = await self._call("get_object", download, bucket=bucket, key=key)
        self._log_success("get_object", response, bucket=bucket, key=key, size_bytes=len(data))
        return data

    async def presign_put(self, bucket: str, key: str, duration: timedelta) -> str:
        return await self._presign("put_object", "PUT", bucket, key, duration)

    async def presign_get(self, bucket: str, key: str, duration: timedelta) -> str:
        return await self._presign("get_object", "GET", bucket, key, duration)

    async def _presign(
        self,
        client_method: str,
        http_method: str,
        bucket: str,
        key: str,
        duration: timedelta,
    ) -> str:
        # Signing is local; no request reaches the provider.
        return await self._call(
            f"presign_{client_method}",
            lambda: self._s3.generate_presigned_url(
                ClientMethod=client_method,
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=int(duration.total_seconds()),
                HttpMethod=http_method,
            ),
            bucket=bucket,
            key=key,
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient(StorageClient):
    """
    In-memory storage for local development.

    Buckets and objects live in dictionaries, and presigned "URLs" are
    built from the configured endpoint without a real signature.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self, endpoint_url: str = DEFAULT_ENDPOINT_URL) -> None:
        # {bucket_name: {key: bytes}}
        self._buckets: dict[str, dict[str, bytes]] = {}
        self._endpoint_url = endpoint_url.rstrip("/")
        logger.info("Initialized mock storage client (in-memory)")

    async def create_bucket(self, name: str) -> str:
        if name in self._buckets:
            raise BucketAlreadyOwnedByYouError(f"Bucket already owned by you: {name}")
        self._buckets[name] = {}
        logger.debug("Created bucket in mock storage", extra={"bucket": name})
        return f"/{name}"

    async def bucket_exists(self, name: str) -> bool:
        return name in self._buckets

    async def list_buckets(self) -> list[str]:
        # S3 lists buckets alphabetically
        return sorted(self._buckets)

    async def put_object(self, bucket: str, key: str, local_path: Path) -> bool:
        if bucket not in self._buckets:
            raise NotFoundError(f"Bucket not found: {bucket}")
        try:
            data = Path(local_path).read_bytes()
        except OSError as e:
            raise LocalIOError(f"Error while processing file: {e.strerror or e}") from e

        self._buckets[bucket][key] = data
        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)},
        )
        return True

    async def get_object_bytes(self, bucket: str, key: str) -> bytes:
        objects = self._buckets.get(bucket)
        if objects is None:
            raise NotFoundError(f"Bucket not found: {bucket}")
        if key not in objects:
            raise NotFoundError(f"Object not found: {key}")
        return objects[key]

    async def presign_put(self, bucket: str, key: str, duration: timedelta) -> str:
        return self._mock_url(bucket, key, duration)

    async def presign_get(self, bucket: str, key: str, duration: timedelta) -> str:
        return self._mock_url(bucket, key, duration)

    def _mock_url(self, bucket: str, key: str, duration: timedelta) -> str:
        expires = int(duration.total_seconds())
        return (
            f"{self._endpoint_url}/{quote(bucket)}/{quote(key)}"
            f"?X-Amz-Algorithm=MOCK&X-Amz-Expires={expires}"
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Provider configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory client

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        endpoint = config.endpoint_url if config else DEFAULT_ENDPOINT_URL
        return MockStorageClient(endpoint_url=endpoint)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
