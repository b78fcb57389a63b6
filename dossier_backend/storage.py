"""
Object Storage
==============

Raw document bytes live outside the database. Two backends:
- local: filesystem directory (development / tests)
- s3: AWS S3 or any S3-compatible endpoint (MinIO, R2) via boto3

Every backend exposes `put(key, data, content_type) -> StoredObject`.
No retries; failures surface as StorageError.
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from boto3 import Session
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    """Result of a storage write"""
    key: str
    url: str


def _safe_file_name(file_name: str) -> str:
    # Keys must not escape the documents/<user>/ prefix
    name = (file_name or "file").replace("\\", "/").split("/")[-1].strip()
    return name or "file"


def generate_document_key(user_id: int, file_name: str) -> str:
    """
    documents/<user_id>/<epoch_ms>-<16 hex>-<file_name>

    The random suffix keeps keys unique for identical names uploaded by the
    same user within the same millisecond.
    """
    timestamp_ms = int(time.time() * 1000)
    suffix = secrets.token_hex(8)
    return f"documents/{user_id}/{timestamp_ms}-{suffix}-{_safe_file_name(file_name)}"


class Storage(ABC):
    """Object store interface"""

    name = "base"

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> StoredObject:
        ...


class LocalStorage(Storage):
    """Filesystem-backed storage"""

    name = "local"

    def __init__(self, base_path: str, base_url: str = "/storage"):
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise StorageError("Invalid storage key", details={"key": key})
        return path

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> StoredObject:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.warning("Local storage write failed for %s: %s", key, e)
            raise StorageError("Failed to store file", details={"key": key}) from e

        return StoredObject(key=key, url=f"{self.base_url}/{key}")


def _normalize_endpoint(url: Optional[str]) -> Optional[str]:
    """Ensure endpoints include a scheme so boto3 accepts them."""
    if not url:
        return url
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"http://{url}"


class S3Storage(Storage):
    """S3 / MinIO storage"""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        endpoint: Optional[str] = None,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_url: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self.endpoint = _normalize_endpoint(endpoint)
        self.region = region
        self.public_url = public_url.rstrip("/") if public_url else None
        self._client = client
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key

    @property
    def client(self):
        if self._client is None:
            session = Session(
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
                region_name=self.region,
            )
            self._client = session.client(
                "s3",
                endpoint_url=self.endpoint,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> StoredObject:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("S3 put_object failed (bucket=%s key=%s): %s", self.bucket, key, e)
            raise StorageError("Failed to store file", details={"key": key}) from e

        return StoredObject(key=key, url=self.url_for(key))


def build_storage(settings) -> Storage:
    """Select the storage backend from settings."""
    backend = (settings.storage_backend or "local").strip().lower()
    if backend == "s3":
        logger.info(
            "Storage backend: s3 (bucket=%s, endpoint=%s)",
            settings.s3_bucket,
            settings.s3_endpoint or "(aws default)",
        )
        return S3Storage(
            bucket=settings.s3_bucket or "dossier-documents",
            endpoint=settings.s3_endpoint,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            public_url=settings.s3_public_url,
        )

    logger.info("Storage backend: local (%s)", settings.local_storage_path)
    return LocalStorage(settings.local_storage_path, settings.local_storage_url)
