"""Asset storage for uploaded session media and narration audio.

Two backends implement :class:`AssetStoreInterface`: a local directory that
the FastAPI app serves under ``/uploads`` and an S3 bucket. Names are used
verbatim as file names / object keys so writing the same name twice
overwrites the previous asset.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.application.interfaces import AssetStoreInterface
from app.config.settings import settings
from app.services.aws import create_boto3_client, s3_object_url

logger = logging.getLogger(__name__)

_SAFE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class StorageError(RuntimeError):
    """Raised when an asset cannot be written or read."""


def _validate_name(name: str) -> str:
    if not _SAFE_NAME_PATTERN.fullmatch(name or ""):
        raise StorageError(f"Invalid asset name: {name!r}")
    return name


class LocalAssetStore(AssetStoreInterface):
    """Write assets to a directory exposed by the static ``/uploads`` mount."""

    def __init__(self, directory: str | Path, public_base_url: str) -> None:
        self._directory = Path(directory)
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def url_for(self, name: str) -> str:
        return f"{self._public_base_url}/uploads/{name}"

    async def write(self, name: str, data: bytes, *, content_type: str) -> str:
        path = self._directory / _validate_name(name)
        try:
            await run_in_threadpool(self._write_sync, path, data)
        except OSError as exc:
            raise StorageError(f"Failed to write asset {name}: {exc}") from exc
        return self.url_for(name)

    async def read(self, name: str) -> bytes:
        path = self._directory / _validate_name(name)
        try:
            return await run_in_threadpool(path.read_bytes)
        except OSError as exc:
            raise StorageError(f"Failed to read asset {name}: {exc}") from exc

    @staticmethod
    def _write_sync(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


class S3AssetStore(AssetStoreInterface):
    """Store assets as objects under a configurable S3 prefix."""

    def __init__(
        self,
        *,
        bucket: str = settings.s3.bucket_name,
        prefix: str = settings.s3.asset_prefix,
        region: str = settings.s3.region,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._region = region
        self._client = client or create_boto3_client("s3", region_name=region)

    def _object_key(self, name: str) -> str:
        name = _validate_name(name)
        return f"{self._prefix}/{name}" if self._prefix else name

    async def write(self, name: str, data: bytes, *, content_type: str) -> str:
        if not self._bucket:
            raise StorageError("S3 bucket name is not configured.")

        object_key = self._object_key(name)
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=self._bucket,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload asset {name}: {exc}") from exc

        return s3_object_url(self._bucket, object_key, self._region)

    async def read(self, name: str) -> bytes:
        object_key = self._object_key(name)
        try:
            response = await run_in_threadpool(
                self._client.get_object,
                Bucket=self._bucket,
                Key=object_key,
            )
            return await run_in_threadpool(response["Body"].read)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to download asset {name}: {exc}") from exc


def create_asset_store() -> AssetStoreInterface:
    """Build the asset store selected by ``STORAGE_BACKEND``."""

    if settings.storage.backend == "s3":
        logger.info("Using S3 asset store bucket=%s", settings.s3.bucket_name)
        return S3AssetStore()
    return LocalAssetStore(
        settings.storage.upload_dir,
        settings.storage.public_base_url,
    )


__all__ = ["LocalAssetStore", "S3AssetStore", "StorageError", "create_asset_store"]
