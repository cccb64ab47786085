"""
Remote object stores for note sync.

We keep this module small and focused:
- get/put/delete of whole objects by key
- botocore errors mapped onto our error types

The sync engine should not talk to boto3 directly; it calls an ObjectStore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional, Protocol

from ..config import Config
from ..errors import NotFound, RemoteUnavailable

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class ObjectStore(Protocol):
    def get_object(self, key: str) -> bytes: ...

    def put_object(self, key: str, data: bytes, content_type: str) -> None: ...

    def delete_object(self, key: str) -> None: ...


@dataclass(frozen=True)
class S3Settings:
    bucket: str
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None

    @classmethod
    def from_config(cls) -> "S3Settings":
        if not Config.S3_BUCKET:
            raise ValueError("S3_BUCKET is required for note sync")
        return cls(
            bucket=Config.S3_BUCKET,
            region=Config.AWS_REGION,
            access_key_id=Config.AWS_ACCESS_KEY_ID,
            secret_access_key=Config.AWS_SECRET_ACCESS_KEY,
            endpoint_url=Config.S3_ENDPOINT_URL,
        )


class S3ObjectStore:
    def __init__(self, settings: S3Settings, client=None):
        self.settings = settings
        self._s3 = client

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    def _client(self):
        if self._s3 is None:
            # Import boto3 lazily so tests can inject a fake client without boto3 configured.
            import boto3  # type: ignore

            self._s3 = boto3.client(
                "s3",
                region_name=self.settings.region,
                aws_access_key_id=self.settings.access_key_id,
                aws_secret_access_key=self.settings.secret_access_key,
                endpoint_url=self.settings.endpoint_url,
            )
        return self._s3

    def get_object(self, key: str) -> bytes:
        if not key:
            raise ValueError("key is required")
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            resp = self._client().get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise NotFound(key) from e
            logger.error("S3 download failed for %s: %s", key, e)
            raise RemoteUnavailable(f"S3 download failed: {e}") from e
        except BotoCoreError as e:
            logger.error("S3 download failed for %s: %s", key, e)
            raise RemoteUnavailable(f"S3 download failed: {e}") from e

    def put_object(self, key: str, data: bytes, content_type: str) -> None:
        if not key:
            raise ValueError("key is required")
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client().put_object(
                Bucket=self.bucket, Key=key, Body=data, ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload failed for %s: %s", key, e)
            raise RemoteUnavailable(f"S3 upload failed: {e}") from e

    def delete_object(self, key: str) -> None:
        """S3 delete is idempotent; a missing key is not an error."""
        if not key:
            raise ValueError("key is required")
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            self._client().delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return
            logger.error("S3 delete failed for %s: %s", key, e)
            raise RemoteUnavailable(f"S3 delete failed: {e}") from e
        except BotoCoreError as e:
            logger.error("S3 delete failed for %s: %s", key, e)
            raise RemoteUnavailable(f"S3 delete failed: {e}") from e


class InMemoryObjectStore:
    """Bucket stand-in for tests and local development without S3."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.content_types: Dict[str, str] = {}
        self._lock = Lock()

    def get_object(self, key: str) -> bytes:
        with self._lock:
            if key not in self.objects:
                raise NotFound(key)
            return self.objects[key]

    def put_object(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self.objects[key] = data
            self.content_types[key] = content_type

    def delete_object(self, key: str) -> None:
        with self._lock:
            self.objects.pop(key, None)
            self.content_types.pop(key, None)


def _error_code(error) -> str:
    return str(getattr(error, "response", {}).get("Error", {}).get("Code", ""))


def store_from_config() -> Optional[S3ObjectStore]:
    """Build the S3 store from Config, or None when sync is not configured."""
    if not Config.s3_configured():
        return None
    return S3ObjectStore(S3Settings.from_config())
