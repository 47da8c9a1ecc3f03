"""
HTTP tests for the S3 gateway routes.

The app is built in mock storage mode (see conftest.py), so each test
starts with an empty in-memory account and an empty staging directory.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from s3_gateway.config.settings import Settings
from s3_gateway.main import create_app


def upload(client: TestClient, bucket: str, key: str, content: bytes = b"hello", filename: str = "hello.txt"):
    return client.post(
        "/s3/upload",
        params={"bucketName": bucket, "key": key},
        files={"file": (filename, content, "text/plain")},
    )


def staged_files(staging_dir: Path) -> list[Path]:
    return sorted(p for p in staging_dir.iterdir() if p.is_file())


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------

class TestBucketRoutes:

    def test_create_then_list(self, client):
        response = client.post("/s3/create", params={"bucketName": "my-bucket-001"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Bucket created in location: /my-bucket-001"

        listing = client.get("/s3/list")
        assert listing.status_code == 200
        assert listing.headers["content-type"] == "application/json"
        assert listing.json() == ["my-bucket-001"]

    def test_list_empty_account(self, client):
        assert client.get("/s3/list").json() == []

    def test_create_duplicate_is_conflict(self, client):
        client.post("/s3/create", params={"bucketName": "dup"})

        response = client.post("/s3/create", params={"bucketName": "dup"})

        assert response.status_code == 409
        assert "already owned" in response.text

    def test_create_without_bucket_name_is_rejected(self, client):
        response = client.post("/s3/create")

        assert response.status_code == 422
        assert response.headers["content-type"].startswith("text/plain")

    def test_check_absent_bucket(self, client):
        response = client.get("/s3/check/does-not-exist")

        assert response.status_code == 200
        assert response.text == "Bucket does not exist: does-not-exist"

    def test_check_present_bucket(self, client):
        client.post("/s3/create", params={"bucketName": "my-bucket-001"})

        response = client.get("/s3/check/my-bucket-001")

        assert response.text == "Bucket does exist: my-bucket-001"


# ---------------------------------------------------------------------------
# Upload and download
# ---------------------------------------------------------------------------

class TestTransferRoutes:

    @pytest.fixture(autouse=True)
    def bucket(self, client):
        client.post("/s3/create", params={"bucketName": "my-bucket-001"})

    def test_upload_success_empties_staging(self, client, staging_dir):
        response = upload(client, "my-bucket-001", "greetings/hi.txt")

        assert response.status_code == 200
        assert response.text == "File uploaded successfully"
        assert staged_files(staging_dir) == []

    def test_download_writes_last_key_segment(self, client, staging_dir):
        upload(client, "my-bucket-001", "greetings/hi.txt")

        response = client.post(
            "/s3/download",
            params={"bucketName": "my-bucket-001", "key": "greetings/hi.txt"},
        )

        assert response.status_code == 200
        assert response.text == "File downloaded successfully"
        assert (staging_dir / "hi.txt").read_bytes() == b"hello"

    def test_upload_to_missing_bucket_keeps_staged_file(self, client, staging_dir):
        response = upload(client, "no-such-bucket", "k")

        assert response.status_code == 500
        assert response.text == "File upload to bucket failed"
        leftovers = staged_files(staging_dir)
        assert len(leftovers) == 1
        assert leftovers[0].name.endswith("_hello.txt")

    def test_upload_without_file_is_rejected(self, client):
        response = client.post(
            "/s3/upload",
            params={"bucketName": "my-bucket-001", "key": "k"},
        )

        assert response.status_code == 422

    def test_upload_empty_file_is_bad_request(self, client):
        response = upload(client, "my-bucket-001", "k", content=b"")

        assert response.status_code == 400

    def test_download_missing_object_is_not_found(self, client):
        response = client.post(
            "/s3/download",
            params={"bucketName": "my-bucket-001", "key": "nothing-here"},
        )

        assert response.status_code == 404


class TestUploadSizeLimit:

    def test_oversized_upload_is_rejected_before_staging(self, staging_dir):
        settings = Settings(
            _env_file=None,
            storage_mock_mode=True,
            destination_folder=str(staging_dir),
            max_upload_size_mb=0,
        )
        with TestClient(create_app(settings)) as client:
            client.post("/s3/create", params={"bucketName": "b"})

            response = upload(client, "b", "k")

        assert response.status_code == 413
        assert "File too large" in response.text
        assert staged_files(staging_dir) == []


# ---------------------------------------------------------------------------
# Presigned URLs
# ---------------------------------------------------------------------------

class TestPresignedRoutes:

    def test_presigned_upload_url(self, client):
        response = client.post(
            "/s3/upload/presigned",
            params={"bucketName": "my-bucket-001", "key": "x", "expiration": 5},
        )

        assert response.status_code == 200
        assert response.text.startswith("https://")
        assert "X-Amz-Expires=300" in response.text

    def test_presigned_download_url(self, client):
        response = client.post(
            "/s3/download/presigned",
            params={"bucketName": "my-bucket-001", "key": "x", "expiration": 15},
        )

        assert response.status_code == 200
        assert "X-Amz-Expires=900" in response.text

    def test_zero_expiration_is_bad_request(self, client):
        response = client.post(
            "/s3/upload/presigned",
            params={"bucketName": "b", "key": "x", "expiration": 0},
        )

        assert response.status_code == 400

    def test_huge_expiration_is_bad_request(self, client):
        response = client.post(
            "/s3/upload/presigned",
            params={"bucketName": "b", "key": "x", "expiration": 10**15},
        )

        assert response.status_code == 400
        assert response.text == "Expiration cannot exceed 10080 minutes"

    def test_non_numeric_expiration_is_rejected(self, client):
        response = client.post(
            "/s3/download/presigned",
            params={"bucketName": "b", "key": "x", "expiration": "soon"},
        )

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealthRoutes:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"] == {"mock_mode": True}

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_reports_missing_credentials(self, staging_dir):
        settings = Settings(
            _env_file=None,
            storage_mock_mode=False,
            aws_access_key="",
            aws_secret_key="",
            destination_folder=str(staging_dir),
        )
        with TestClient(create_app(settings)) as client:
            response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        config_check = next(c for c in body["checks"] if c["name"] == "configuration")
        assert "AWS_ACCESS_KEY" in config_check["error"]
