"""
Unit tests for transfers between storages.
"""

import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from storage_manager.core.config import S3StorageSettings
from storage_manager.core.exceptions import FileDoesNotExistError, TransferError
from storage_manager.domain.value_objects import UploadOptions
from storage_manager.infrastructure.storage.base import StorageBackend
from storage_manager.infrastructure.storage.file_storage import LocalFileStorage
from storage_manager.infrastructure.storage.s3_storage import S3FileStorage
from storage_manager.infrastructure.transfer import (
    AbstractTransfer,
    FileManager,
    LocalToLocalTransfer,
    LocalToS3Transfer,
    S3ToLocalTransfer,
    S3ToS3Transfer,
    TransferFactory,
)

KEY = "a/b/report.txt"
CONTENT = b"quarterly numbers"


def keyed(key: str = KEY) -> UploadOptions:
    sub_directories, file_name = key.rsplit("/", 1)
    return UploadOptions(
        generate_sub_directories=lambda: sub_directories,
        generate_unique_file_name=False,
        file_name=file_name,
    )


class TestAbstractTransfer:
    """Test cases for key preservation helpers."""

    @pytest.mark.parametrize("key, directories, name", [
        ("a/b/c.txt", "a/b", "c.txt"),
        ("c.txt", "", "c.txt"),
    ])
    def test_preserve(self, key, directories, name):
        assert AbstractTransfer.preserve_sub_directories(key) == directories
        assert AbstractTransfer.preserve_file_name(key) == name

    def test_preserving_upload_options(self):
        options = LocalToS3Transfer().preserving_upload_options(KEY, "text/plain")

        assert options.generate_sub_directories() == "a/b"
        assert options.generate_unique_file_name("bin") == "report.txt"
        assert options.content_type == "text/plain"


class TestTransferFactory:
    """Test cases for TransferFactory."""

    @pytest.fixture
    def factory(self):
        return TransferFactory()

    def test_dispatch(self, factory, plain_storage, s3_storage):
        assert isinstance(factory.get_transfer(plain_storage, plain_storage), LocalToLocalTransfer)
        assert isinstance(factory.get_transfer(plain_storage, s3_storage), LocalToS3Transfer)
        assert isinstance(factory.get_transfer(s3_storage, plain_storage), S3ToLocalTransfer)
        assert isinstance(factory.get_transfer(s3_storage, s3_storage), S3ToS3Transfer)

    def test_unknown_pair(self, factory, plain_storage):
        other = MagicMock(spec=StorageBackend)

        with pytest.raises(TransferError):
            factory.get_transfer(plain_storage, other)


class TestLocalToLocal:
    """Test cases for transfers between local storages."""

    async def test_reencrypts_for_destination(self, encrypted_storage, local_settings_factory):
        await encrypted_storage.upload(CONTENT, keyed())
        destination = LocalFileStorage(local_settings_factory(bucket="archive", algorithm="aes-256-gcm"))

        result = await TransferFactory().create(encrypted_storage, destination, KEY)

        assert result.key == KEY
        stored = await destination.get_file(KEY)
        assert stored.encrypted
        assert await stored.stream.read() == CONTENT

    async def test_decrypts_into_plain_destination(self, encrypted_storage, local_settings_factory):
        await encrypted_storage.upload(CONTENT, keyed())
        destination = LocalFileStorage(local_settings_factory(bucket="plain"))

        await TransferFactory().create(encrypted_storage, destination, KEY)

        assert (destination.storage_path / KEY).read_bytes() == CONTENT

    async def test_same_file_rejected(self, plain_storage):
        await plain_storage.upload(CONTENT, keyed())

        with pytest.raises(TransferError):
            await TransferFactory().create(plain_storage, plain_storage, KEY)

        assert (plain_storage.storage_path / KEY).read_bytes() == CONTENT

    async def test_missing_source(self, plain_storage, local_settings_factory):
        destination = LocalFileStorage(local_settings_factory(bucket="other"))

        with pytest.raises(FileDoesNotExistError):
            await TransferFactory().create(plain_storage, destination, KEY)


class TestS3Transfers:
    """Test cases for transfers involving S3."""

    async def test_local_to_s3_uploads_plaintext(self, encrypted_storage, s3_storage, s3_client):
        await encrypted_storage.upload(CONTENT, keyed())

        result = await TransferFactory().create(encrypted_storage, s3_storage, KEY)

        assert result.key == KEY
        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Key"] == KEY
        assert kwargs["Body"] == CONTENT

    async def test_s3_to_local_encrypts(self, s3_storage, s3_client, encrypted_storage):
        s3_client.get_object.return_value = {
            "Body": io.BytesIO(CONTENT),
            "ContentLength": len(CONTENT),
            "ContentType": "text/plain",
        }

        result = await TransferFactory().create(s3_storage, encrypted_storage, KEY)

        raw = Path(result.absolute_path).read_bytes()
        assert len(raw) == len(CONTENT) + 37
        assert await (await encrypted_storage.get_file(KEY)).stream.read() == CONTENT

    async def test_s3_to_s3_server_side_copy(self, s3_storage, s3_client):
        destination_client = MagicMock()
        destination = S3FileStorage(S3StorageSettings(bucket="backup"), client=destination_client)

        result = await TransferFactory().create(s3_storage, destination, KEY)

        destination_client.copy_object.assert_called_once_with(
            Bucket="backup", Key=KEY, CopySource={"Bucket": "test-bucket", "Key": KEY}
        )
        s3_client.get_object.assert_not_called()
        assert result.bucket == "backup"


class TestFileManager:
    """Test cases for FileManager."""

    async def test_copy_keeps_source(self, plain_storage, local_settings_factory):
        await plain_storage.upload(CONTENT, keyed())
        destination = LocalFileStorage(local_settings_factory(bucket="copy"))

        await FileManager().copy(plain_storage, destination, KEY)

        assert await plain_storage.does_file_exist(KEY)
        assert await destination.does_file_exist(KEY)

    async def test_move_deletes_source(self, plain_storage, local_settings_factory):
        await plain_storage.upload(CONTENT, keyed())
        destination = LocalFileStorage(local_settings_factory(bucket="moved"))

        await FileManager().move(plain_storage, destination, KEY)

        assert not await plain_storage.does_file_exist(KEY)
        assert await destination.does_file_exist(KEY)

    async def test_move_keeps_source_when_transfer_fails(self, plain_storage):
        factory = MagicMock()
        factory.create = AsyncMock(side_effect=TransferError("boom"))
        await plain_storage.upload(CONTENT, keyed())

        with pytest.raises(TransferError):
            await FileManager(factory).move(plain_storage, plain_storage, KEY)

        assert await plain_storage.does_file_exist(KEY)
