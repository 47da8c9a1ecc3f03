"""
Shared fixtures.

Every app built here runs in storage mock mode with a staging directory
under pytest's tmp_path, so no test touches a real provider or the
working directory.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from s3_gateway.config.settings import Settings
from s3_gateway.core.storage.facade import StorageFacade
from s3_gateway.infrastructure.storage.client import MockStorageClient
from s3_gateway.main import create_app


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "staging"


@pytest.fixture
def mock_settings(staging_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        storage_mock_mode=True,
        destination_folder=str(staging_dir),
    )


@pytest.fixture
def mock_client() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def facade(mock_client: MockStorageClient, staging_dir: Path) -> StorageFacade:
    facade = StorageFacade(mock_client, staging_dir)
    facade.prepare_staging_dir()
    return facade


@pytest.fixture
def client(mock_settings: Settings):
    app = create_app(mock_settings)
    with TestClient(app) as test_client:
        yield test_client
