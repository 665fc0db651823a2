"""Tests for the storage helpers."""

import io
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from finra.fetch_public import s3_helpers
from finra.fetch_public.errors import InvalidArgument, StorageError
from finra.fetch_public.s3_helpers import LocalStorage, S3Storage


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestS3Storage:
    @pytest.fixture
    def mock_s3_client(self):
        client = Mock()
        client.get_object = Mock(return_value={"Body": io.BytesIO(b"Date,Symbol\n")})
        client.put_object = Mock()
        return client

    def test_get_reads_body(self, mock_s3_client):
        storage = S3Storage(mock_s3_client, "tless")

        assert storage.get("finra/yfinance.csv") == b"Date,Symbol\n"
        mock_s3_client.get_object.assert_called_once_with(Bucket="tless", Key="finra/yfinance.csv")

    def test_put_writes_bytes(self, mock_s3_client):
        storage = S3Storage(mock_s3_client, "tless")
        storage.put("finra/outputs/fetch-public/trades", bytearray(b"\x01\x02"))

        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "tless"
        assert kwargs["Key"] == "finra/outputs/fetch-public/trades"
        assert kwargs["Body"] == b"\x01\x02"

    def test_missing_key_raises_storage_error(self, mock_s3_client):
        mock_s3_client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
        storage = S3Storage(mock_s3_client, "tless")

        with pytest.raises(StorageError, match="NoSuchKey"):
            storage.get("missing.csv")

    def test_put_failure_raises_storage_error(self, mock_s3_client):
        mock_s3_client.put_object.side_effect = _client_error("AccessDenied", "PutObject")
        storage = S3Storage(mock_s3_client, "tless")

        with pytest.raises(StorageError, match="AccessDenied"):
            storage.put("k", b"x")

    def test_describe(self, mock_s3_client):
        assert S3Storage(mock_s3_client, "tless").describe("a/b") == "s3://tless/a/b"

    def test_empty_bucket_rejected(self, mock_s3_client):
        with pytest.raises(InvalidArgument):
            S3Storage(mock_s3_client, "")


class TestLocalStorage:
    def test_put_then_get(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.put("finra/outputs/fetch-public/trades", b"payload")

        assert storage.get("finra/outputs/fetch-public/trades") == b"payload"
        assert (tmp_path / "finra" / "outputs" / "fetch-public" / "trades").read_bytes() == b"payload"

    def test_put_overwrites(self, tmp_path):
        storage = LocalStorage(tmp_path)
        storage.put("k", b"old")
        storage.put("k", b"new")
        assert storage.get("k") == b"new"
        assert not (tmp_path / "k.tmp").exists()

    def test_failed_replace_leaves_no_temp_file(self, tmp_path, monkeypatch):
        storage = LocalStorage(tmp_path)
        storage.put("k", b"old")

        def failing_replace(src, dst):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(s3_helpers.os, "replace", failing_replace)
        with pytest.raises(StorageError):
            storage.put("k", b"new")
        assert not (tmp_path / "k.tmp").exists()
        assert (tmp_path / "k").read_bytes() == b"old"

    def test_missing_key(self, tmp_path):
        with pytest.raises(StorageError):
            LocalStorage(tmp_path).get("nope.csv")

    @pytest.mark.parametrize("key", ["", "../outside", "a/../../outside"])
    def test_invalid_keys(self, tmp_path, key):
        with pytest.raises(InvalidArgument):
            LocalStorage(tmp_path / "root").get(key)
