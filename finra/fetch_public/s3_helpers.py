"""Storage helpers used by the fetch-public job.

Classes:
- Storage: get(key) -> bytes / put(key, data) port the job depends on
- S3Storage(s3_client, bucket): object store backed by a boto3 S3 client
- LocalStorage(root): key/value files under a directory, for local runs and
  sandboxed hosts that expose keys as files

S3Storage takes the boto3 client as an argument (to ease testing/mocking).
"""
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from .errors import InvalidArgument, StorageError

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Minimal key/value capability set the job needs."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the full contents stored under key."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store data under key, overwriting any previous value."""

    def describe(self, key: str) -> str:
        return key


class S3Storage(Storage):
    def __init__(self, s3_client, bucket: str):
        if not bucket:
            raise InvalidArgument("bucket must be a non-empty string")
        self.s3_client = s3_client
        self.bucket = bucket

    def describe(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    def get(self, key: str) -> bytes:
        """Download an object. Raises StorageError when the key cannot be read."""
        logger.debug("Downloading %s", self.describe(key))
        try:
            resp = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(f"error getting bytes from {self.describe(key)}: {code}") from e
        except BotoCoreError as e:
            raise StorageError(f"error getting bytes from {self.describe(key)}: {e}") from e

    def put(self, key: str, data: bytes) -> None:
        logger.info("Uploading %s (%.2f KB)", self.describe(key), len(data) / 1024.0)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=bytes(data),
                ContentType="application/octet-stream",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(f"error uploading to {self.describe(key)}: {code}") from e
        except BotoCoreError as e:
            raise StorageError(f"error uploading to {self.describe(key)}: {e}") from e


class LocalStorage(Storage):
    def __init__(self, root):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        if not key:
            raise InvalidArgument("key must be a non-empty string")
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise InvalidArgument(f"key '{key}' escapes storage root {self.root}")
        return path

    def describe(self, key: str) -> str:
        return str(self._path(key))

    def get(self, key: str) -> bytes:
        path = self._path(key)
        logger.debug("Reading %s", path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"error reading key '{key}' from {path}: {e.strerror or e}") from e

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        logger.info("Writing %s (%.2f KB)", path, len(data) / 1024.0)
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(bytes(data))
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"error writing key '{key}' to {path}: {e.strerror or e}") from e
