"""
Unit Tests for Blob Storage
Tests for: key generation, local store, S3 store with a mocked client
"""
import re
import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from sptrack.core.exceptions import StorageError
from sptrack.services.storage_service import (
    LocalBlobStore,
    S3BlobStore,
    generate_storage_key,
    sanitize_filename,
)


class TestStorageKeys:

    @pytest.mark.parametrize("filename,expected", [
        ("report.pdf", "report.pdf"),
        ("My Quiz (final).docx", "My_Quiz_final_.docx"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\x\\notes.pdf", "C_Users_x_notes.pdf"),
        ("", "file"),
        ("...", "file"),
    ])
    def test_sanitize_filename(self, filename, expected):
        assert sanitize_filename(filename) == expected

    def test_key_is_millis_then_name(self):
        key = generate_storage_key("Quiz 1.pdf")

        assert re.fullmatch(r"\d{13}-Quiz_1\.pdf", key)


class TestLocalBlobStore:

    async def test_save_and_delete(self, tmp_path):
        store = LocalBlobStore(tmp_path, url_prefix="/uploads/")

        link = await store.save("123-a.pdf", b"%PDF-1.4")

        assert link == "/uploads/123-a.pdf"
        assert (tmp_path / "123-a.pdf").read_bytes() == b"%PDF-1.4"
        assert await store.delete("123-a.pdf") is True
        assert not (tmp_path / "123-a.pdf").exists()

    async def test_delete_missing_returns_false(self, tmp_path):
        assert await LocalBlobStore(tmp_path).delete("nothing-here.pdf") is False

    async def test_key_cannot_escape_root(self, tmp_path):
        store = LocalBlobStore(tmp_path / "root")

        with pytest.raises(StorageError):
            await store.save("../outside.pdf", b"x")


class TestS3BlobStore:

    async def test_save_returns_presigned_url(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://bucket.s3/key?sig"
        store = S3BlobStore("bucket", client=client, url_expiry=60)

        link = await store.save("1-a.pdf", b"data", "application/pdf")

        assert link == "https://bucket.s3/key?sig"
        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="1-a.pdf", Body=b"data", ContentType="application/pdf"
        )
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "bucket", "Key": "1-a.pdf"}, ExpiresIn=60
        )

    async def test_save_failure_raises_storage_error(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError({"Error": {"Code": "500"}}, "PutObject")
        store = S3BlobStore("bucket", client=client)

        with pytest.raises(StorageError):
            await store.save("1-a.pdf", b"data")

    async def test_delete_failure_returns_false(self):
        client = MagicMock()
        client.delete_object.side_effect = ClientError({"Error": {"Code": "403"}}, "DeleteObject")
        store = S3BlobStore("bucket", client=client)

        assert await store.delete("1-a.pdf") is False
