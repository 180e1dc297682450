"""
Pytest configuration and shared fixtures.
"""

import base64
import os
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest

from storage_manager.core.config import LocalStorageSettings, S3StorageSettings
from storage_manager.infrastructure.storage.file_storage import LocalFileStorage
from storage_manager.infrastructure.storage.s3_storage import S3FileStorage
from storage_manager.infrastructure.storage.temp_files import TempFileManager


def generate_key() -> str:
    """Random base64 encoded 32 byte key."""
    return base64.b64encode(os.urandom(32)).decode("ascii")


def make_local_settings(
    root: Path,
    bucket: str = "uploads",
    algorithm: Optional[str] = None,
    key: Optional[str] = None,
    **overrides
) -> LocalStorageSettings:
    if algorithm is not None and key is None:
        key = generate_key()
    return LocalStorageSettings(
        root_path=str(root),
        bucket=bucket,
        encryption_algorithm=algorithm,
        encryption_key=key,
        **overrides
    )


async def failing_source(chunks, error: Exception = None):
    """Async byte source that yields ``chunks`` then fails."""
    for chunk in chunks:
        yield chunk
    raise error or ConnectionResetError("source interrupted")


@pytest.fixture(scope="function")
def temp_storage_dir(tmp_path) -> Path:
    """Create a temporary root directory for storage tests."""
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def temp_files(tmp_path) -> TempFileManager:
    """Temp file area inside the test directory."""
    return TempFileManager(str(tmp_path / "tmp"))


@pytest.fixture
def encryption_key() -> str:
    return generate_key()


@pytest.fixture
def plain_storage(temp_storage_dir, temp_files) -> LocalFileStorage:
    """Local storage without encryption."""
    return LocalFileStorage(make_local_settings(temp_storage_dir), temp_files=temp_files)


@pytest.fixture(params=["chacha20-poly1305", "aes-256-gcm"])
def encrypted_storage(request, temp_storage_dir, temp_files, encryption_key) -> LocalFileStorage:
    """Local storage with encryption, once per supported algorithm."""
    settings = make_local_settings(temp_storage_dir, algorithm=request.param, key=encryption_key)
    return LocalFileStorage(settings, temp_files=temp_files)


@pytest.fixture
def s3_client() -> MagicMock:
    """Mock boto3 S3 client."""
    client = MagicMock()
    client.put_object.return_value = {"ETag": '"etag"', "VersionId": "v1"}
    client.create_multipart_upload.return_value = {"UploadId": "upload-1"}
    client.upload_part.side_effect = lambda **kwargs: {"ETag": f'"part-{kwargs["PartNumber"]}"'}
    client.complete_multipart_upload.return_value = {"ETag": '"multipart"'}
    client.copy_object.return_value = {"CopyObjectResult": {"ETag": '"copy"'}}
    client.delete_object.return_value = {}
    return client


@pytest.fixture
def s3_storage(s3_client) -> S3FileStorage:
    """S3 storage backed by a mock client."""
    return S3FileStorage(S3StorageSettings(bucket="test-bucket"), client=s3_client)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Keep settings from the host environment out of tests."""
    for name in list(os.environ):
        if name.startswith(("LOCAL_STORAGE_", "S3_STORAGE_", "TEMP_FILES_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOGGING_LEVEL", "DEBUG")


@pytest.fixture
def local_settings_factory(temp_storage_dir):
    """Build local storage settings below the test root."""
    def factory(bucket: str = "uploads", algorithm: Optional[str] = None, key: Optional[str] = None, **overrides):
        return make_local_settings(temp_storage_dir, bucket, algorithm, key, **overrides)
    return factory


@pytest.fixture
def interrupted_source():
    """Factory for async byte sources that fail part way through."""
    return failing_source
