"""Key-value disks the blob store and the language-model map persist through.

Keys are "/"-separated paths relative to the disk root. Every disk exposes
the same small surface (read, write, delete, list_keys, exists) so the JSON
driver can run on a local directory, an S3-compatible bucket, or memory.
Any failure of the underlying medium raises StorageError.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
import os
from pathlib import Path
import shutil
import tempfile
import threading

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from model_translation.core.config import settings
from model_translation.core.exceptions import StorageError
from model_translation.core.logging import get_logger

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _dir_prefix(prefix: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


class Disk(ABC):
    """Minimal key-value surface shared by all disks."""

    @abstractmethod
    def read(self, key: str) -> bytes | None:
        """Return the stored bytes, or None when the key does not exist."""

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Create or overwrite the value stored under key."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns False when there was nothing to delete."""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> bool:
        """Delete every key below prefix. Returns False when none existed."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> list[str]:
        """List keys stored directly below prefix (not recursive), sorted."""

    @abstractmethod
    def list_dirs(self, prefix: str = "") -> list[str]:
        """List the sub-namespaces directly below prefix, sorted."""

    def exists(self, key: str) -> bool:
        return self.read(key) is not None


class LocalDisk(Disk):
    """Filesystem disk rooted at a directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key.strip("/")).resolve()
        # Keys must never escape the disk root
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Key escapes disk root: {key}", key=key)
        return path

    def read(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.exception("disk_read_failed", key=key, error=str(e))
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e

    def write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file first so readers never see a torn blob
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.exception("disk_write_failed", key=key, error=str(e))
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.exception("disk_delete_failed", key=key, error=str(e))
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e
        self._prune_empty_parents(path.parent)
        return True

    def delete_prefix(self, prefix: str) -> bool:
        path = self._path(prefix)
        if not path.is_dir():
            return False
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.exception("disk_delete_prefix_failed", prefix=prefix, error=str(e))
            raise StorageError(f"Failed to delete {prefix}: {e}", key=prefix) from e
        self._prune_empty_parents(path.parent)
        return True

    def list_keys(self, prefix: str = "") -> list[str]:
        base = _dir_prefix(prefix)
        path = self._path(prefix)
        if not path.is_dir():
            return []
        return sorted(
            f"{base}{child.name}"
            for child in path.iterdir()
            if child.is_file() and not child.name.startswith(".tmp-")
        )

    def list_dirs(self, prefix: str = "") -> list[str]:
        base = _dir_prefix(prefix)
        path = self._path(prefix)
        if not path.is_dir():
            return []
        return sorted(f"{base}{child.name}" for child in path.iterdir() if child.is_dir())

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _prune_empty_parents(self, directory: Path) -> None:
        while directory != self.root and self.root in directory.parents:
            try:
                directory.rmdir()
            except OSError:
                # Not empty (or already gone): stop climbing
                return
            directory = directory.parent


class MemoryDisk(Disk):
    """Dict-backed disk, used for tests and ephemeral setups."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> bytes | None:
        return self._files.get(key.strip("/"))

    def write(self, key: str, data: bytes) -> None:
        with self._lock:
            self._files[key.strip("/")] = bytes(data)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._files.pop(key.strip("/"), None) is not None

    def delete_prefix(self, prefix: str) -> bool:
        base = _dir_prefix(prefix)
        with self._lock:
            doomed = [k for k in self._files if k.startswith(base)]
            for key in doomed:
                del self._files[key]
        return bool(doomed)

    def list_keys(self, prefix: str = "") -> list[str]:
        base = _dir_prefix(prefix)
        with self._lock:
            keys = list(self._files)
        return sorted(k for k in keys if k.startswith(base) and "/" not in k[len(base) :])

    def list_dirs(self, prefix: str = "") -> list[str]:
        base = _dir_prefix(prefix)
        with self._lock:
            keys = list(self._files)
        dirs = {
            base + k[len(base) :].split("/", 1)[0]
            for k in keys
            if k.startswith(base) and "/" in k[len(base) :]
        }
        return sorted(dirs)

    def exists(self, key: str) -> bool:
        return key.strip("/") in self._files


@lru_cache(maxsize=1)
def get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        ),
    )


def _error_code(error: ClientError) -> str | None:
    return error.response.get("Error", {}).get("Code")


class S3Disk(Disk):
    """Disk backed by an S3-compatible bucket (AWS S3, MinIO, SeaweedFS)."""

    # delete_objects accepts at most 1000 keys per call
    DELETE_BATCH_SIZE = 1000

    def __init__(self, bucket: str | None = None, client=None):
        self.bucket = bucket or settings.S3_BUCKET_NAME
        self.client = client if client is not None else get_s3_client()
        self._bucket_checked = False

    def ensure_bucket_exists(self) -> None:
        if self._bucket_checked:
            return
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchBucket"):
                logger.info("creating_bucket", bucket=self.bucket)
                try:
                    self.client.create_bucket(Bucket=self.bucket)
                except ClientError as create_error:
                    raise StorageError(
                        f"Failed to create bucket: {create_error}"
                    ) from create_error
            else:
                raise StorageError(f"Failed to check bucket: {e}") from e
        self._bucket_checked = True

    def read(self, key: str) -> bytes | None:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            content = response["Body"].read()
        except ClientError as e:
            if _error_code(e) in ("NoSuchKey", "404"):
                return None
            logger.exception("s3_read_failed", key=key, error=str(e))
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        else:
            return content

    def write(self, key: str, data: bytes) -> None:
        self.ensure_bucket_exists()
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=JSON_CONTENT_TYPE,
            )
            logger.debug("s3_object_written", key=key, size=len(data))
        except (ClientError, BotoCoreError) as e:
            logger.exception("s3_write_failed", key=key, error=str(e))
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e

    def delete(self, key: str) -> bool:
        if not self.exists(key):
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.exception("s3_delete_failed", key=key, error=str(e))
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e
        else:
            return True

    def delete_prefix(self, prefix: str) -> bool:
        keys = self._keys_below(_dir_prefix(prefix))
        for start in range(0, len(keys), self.DELETE_BATCH_SIZE):
            batch = keys[start : start + self.DELETE_BATCH_SIZE]
            try:
                self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (ClientError, BotoCoreError) as e:
                logger.exception("s3_delete_prefix_failed", prefix=prefix, error=str(e))
                raise StorageError(f"Failed to delete {prefix}: {e}", key=prefix) from e
        return bool(keys)

    def list_keys(self, prefix: str = "") -> list[str]:
        keys: list[str] = []
        for page in self._pages(_dir_prefix(prefix), delimiter="/"):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return sorted(keys)

    def list_dirs(self, prefix: str = "") -> list[str]:
        dirs: list[str] = []
        for page in self._pages(_dir_prefix(prefix), delimiter="/"):
            dirs.extend(p["Prefix"].rstrip("/") for p in page.get("CommonPrefixes", []))
        return sorted(dirs)

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check {key}: {e}", key=key) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check {key}: {e}", key=key) from e
        else:
            return True

    def _keys_below(self, prefix: str) -> list[str]:
        keys: list[str] = []
        for page in self._pages(prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    def _pages(self, prefix: str, delimiter: str | None = None):
        params = {"Bucket": self.bucket, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            yield from paginator.paginate(**params)
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                return
            logger.exception("s3_list_failed", prefix=prefix, error=str(e))
            raise StorageError(f"Failed to list {prefix}: {e}", key=prefix) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to list {prefix}: {e}", key=prefix) from e


def create_disk(kind: str | None = None) -> Disk:
    """Build the disk configured for the JSON driver."""
    kind = kind or settings.JSON_DISK
    if kind == "local":
        return LocalDisk(settings.JSON_BASE_PATH)
    if kind == "s3":
        return S3Disk()
    if kind == "memory":
        return MemoryDisk()
    raise ValueError(f"Unknown disk type: {kind}")
