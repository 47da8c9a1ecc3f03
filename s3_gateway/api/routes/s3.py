"""
S3 facade endpoints.

Each route parses its query/path/multipart inputs, makes one facade call,
and answers with a plain-text body (JSON for the bucket list). Storage
failures are not caught here: they propagate as StorageError subclasses
and the exception handlers in main.py turn them into status codes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import PlainTextResponse

from ...core.storage.models import ReceivedFile
from ..dependencies import SettingsDep, StorageFacadeDep

logger = logging.getLogger(__name__)

router = APIRouter()

BucketNameQuery = Annotated[str, Query(alias="bucketName", description="Target bucket")]
KeyQuery = Annotated[str, Query(description="Object key; may contain '/'")]
ExpirationQuery = Annotated[int, Query(description="URL validity in minutes")]


@router.post(
    "/create",
    response_class=PlainTextResponse,
    summary="Create a bucket",
)
async def create_bucket(
    bucket_name: BucketNameQuery,
    facade: StorageFacadeDep,
) -> PlainTextResponse:
    return PlainTextResponse(await facade.create_bucket(bucket_name))


@router.get(
    "/check/{bucket_name}",
    response_class=PlainTextResponse,
    summary="Check whether a bucket exists",
)
async def check_bucket(
    bucket_name: str,
    facade: StorageFacadeDep,
) -> PlainTextResponse:
    return PlainTextResponse(await facade.check_bucket(bucket_name))


@router.get(
    "/list",
    response_model=list[str],
    summary="List bucket names",
)
async def list_buckets(facade: StorageFacadeDep) -> list[str]:
    return await facade.list_buckets()


@router.post(
    "/upload",
    response_class=PlainTextResponse,
    summary="Upload a file to a bucket",
    description="Stages the multipart file locally, then puts it under the given key.",
)
async def upload_file(
    bucket_name: BucketNameQuery,
    key: KeyQuery,
    file: Annotated[UploadFile, File(description="File to store")],
    facade: StorageFacadeDep,
    settings: SettingsDep,
) -> PlainTextResponse:
    # check size before anything touches the staging directory
    if file.size is not None and file.size > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB",
        )

    logger.info(
        "Upload received",
        extra={
            "bucket": bucket_name,
            "key": key,
            "upload_filename": file.filename,
            "content_type": file.content_type,
            "size_bytes": file.size,
        },
    )

    try:
        message = await facade.upload_file(
            bucket_name,
            key,
            ReceivedFile(filename=file.filename, stream=file.file),
        )
    finally:
        await file.close()

    return PlainTextResponse(message)


@router.post(
    "/download",
    response_class=PlainTextResponse,
    summary="Download an object into the staging directory",
)
async def download_file(
    bucket_name: BucketNameQuery,
    key: KeyQuery,
    facade: StorageFacadeDep,
) -> PlainTextResponse:
    return PlainTextResponse(await facade.download_file(bucket_name, key))


@router.post(
    "/upload/presigned",
    response_class=PlainTextResponse,
    summary="Presigned URL for a direct PUT",
)
async def presigned_upload_url(
    bucket_name: BucketNameQuery,
    key: KeyQuery,
    expiration: ExpirationQuery,
    facade: StorageFacadeDep,
) -> PlainTextResponse:
    return PlainTextResponse(await facade.presign_upload(bucket_name, key, expiration))


@router.post(
    "/download/presigned",
    response_class=PlainTextResponse,
    summary="Presigned URL for a direct GET",
)
async def presigned_download_url(
    bucket_name: BucketNameQuery,
    key: KeyQuery,
    expiration: ExpirationQuery,
    facade: StorageFacadeDep,
) -> PlainTextResponse:
    return PlainTextResponse(await facade.presign_download(bucket_name, key, expiration))
