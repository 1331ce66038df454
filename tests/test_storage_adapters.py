"""Tests for the object storage adapters (platform/adapters/storage_*.py)."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tubely.core.config import settings
from tubely.core.errors import StorageError
from tubely.platform.adapters.storage_local import LocalFilesystemStorage
from tubely.platform.adapters.storage_s3 import S3Storage


class TestLocalFilesystemStorage:

    def test_put_object_streams_to_disk(self, tmp_path):
        storage = LocalFilesystemStorage(str(tmp_path / "assets"))
        payload = b"moov" + b"\x00" * (3 * 1024 * 1024)

        storage.put_object("landscape/abc.mp4", io.BytesIO(payload), "video/mp4")

        assert (tmp_path / "assets" / "landscape" / "abc.mp4").read_bytes() == payload

    def test_key_cannot_escape_root(self, tmp_path):
        storage = LocalFilesystemStorage(str(tmp_path / "assets"))
        storage.put_object("../../escape.mp4", io.BytesIO(b"x"), "video/mp4")
        assert not (tmp_path / "escape.mp4").exists()

    def test_locator_with_public_base_url(self, tmp_path):
        storage = LocalFilesystemStorage(str(tmp_path), public_base_url="http://localhost:8091/assets/")
        assert storage.locator_for("portrait/x.mp4") == "http://localhost:8091/assets/portrait/x.mp4"

    def test_locator_defaults_to_file_url(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "LOCAL_PUBLIC_BASE_URL", None)
        storage = LocalFilesystemStorage(str(tmp_path))
        assert storage.locator_for("other/x.mp4").startswith("file://")
        assert storage.locator_for("other/x.mp4").endswith("/other/x.mp4")

    def test_delete_removes_file(self, tmp_path):
        storage = LocalFilesystemStorage(str(tmp_path / "assets"))
        storage.put_object("landscape/abc.mp4", io.BytesIO(b"moov"), "video/mp4")

        storage.delete("landscape/abc.mp4")

        assert not (tmp_path / "assets" / "landscape" / "abc.mp4").exists()

    def test_delete_missing_key_is_a_no_op(self, tmp_path):
        LocalFilesystemStorage(str(tmp_path)).delete("landscape/never-stored.mp4")


class TestS3Storage:

    def test_put_object_uses_streaming_upload(self):
        client = MagicMock()
        storage = S3Storage(client=client, bucket="tubely-media")
        body = io.BytesIO(b"moov")

        storage.put_object("landscape/abc.mp4", body, "video/mp4")

        client.upload_fileobj.assert_called_once_with(
            body, "tubely-media", "landscape/abc.mp4", ExtraArgs={"ContentType": "video/mp4"},
        )
        client.put_object.assert_not_called()

    def test_client_error_becomes_storage_error(self):
        client = MagicMock()
        client.upload_fileobj.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject",
        )
        storage = S3Storage(client=client, bucket="tubely-media")

        with pytest.raises(StorageError, match="AccessDenied"):
            storage.put_object("landscape/abc.mp4", io.BytesIO(b"moov"), "video/mp4")

    def test_delete_object(self):
        client = MagicMock()
        S3Storage(client=client, bucket="tubely-media").delete("landscape/abc.mp4")
        client.delete_object.assert_called_once_with(Bucket="tubely-media", Key="landscape/abc.mp4")

    def test_delete_client_error_becomes_storage_error(self):
        client = MagicMock()
        client.delete_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "DeleteObject",
        )
        with pytest.raises(StorageError, match="Couldn't delete"):
            S3Storage(client=client, bucket="tubely-media").delete("landscape/abc.mp4")

    @pytest.mark.parametrize("public_base,endpoint,expected", [
        ("https://d111.cloudfront.net/", None, "https://d111.cloudfront.net/landscape/a.mp4"),
        (None, "http://127.0.0.1:9000", "http://127.0.0.1:9000/tubely-media/landscape/a.mp4"),
        (None, None, "https://tubely-media.s3.us-east-1.amazonaws.com/landscape/a.mp4"),
    ])
    def test_locator_rules(self, monkeypatch, public_base, endpoint, expected):
        monkeypatch.setattr(settings, "S3_PUBLIC_BASE_URL", public_base)
        monkeypatch.setattr(settings, "S3_ENDPOINT_URL", endpoint)
        monkeypatch.setattr(settings, "S3_REGION", "us-east-1")
        storage = S3Storage(client=MagicMock(), bucket="tubely-media")
        assert storage.locator_for("landscape/a.mp4") == expected
