"""Assets stored as key prefixes in the media bucket."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from urllib import request

from botocore.exceptions import ClientError

from media_hub.core.errors import ConfigError, MediaHubError, ResourceNotFound
from media_hub.core.models.media_models import Asset, Blob
from media_hub.providers.aws.clients import s3_client
from media_hub.providers.aws.errors import is_not_found, remote_call, to_remote_error

logger = logging.getLogger(__name__)

ASSET_MARKER = ".asset"
DELETE_BATCH = 1000
DOWNLOAD_TIMEOUT = 60


def client(settings):
    return s3_client(settings)


class AssetStore:
    def __init__(self, settings, s3=None):
        self.settings = settings
        self.bucket = settings.bucket
        self._client = s3

    @property
    def client(self):
        if not self.bucket:
            raise ConfigError("bucket is required for asset operations")
        if self._client is None:
            self._client = client(self.settings)
        return self._client

    def prefix(self, name: str) -> str:
        return f"{self.settings.asset_prefix}{name}/"

    def _asset(self, name):
        return Asset(name=name, bucket=self.bucket, prefix=self.prefix(name))

    def create_asset(self, name: str) -> Asset:
        with remote_call(self.settings.profile):
            self.client.put_object(Bucket=self.bucket, Key=self.prefix(name) + ASSET_MARKER, Body=b"")
        logger.debug("Created asset %s", name)
        return self._asset(name)

    def get_asset(self, name: str) -> Asset:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self.prefix(name) + ASSET_MARKER)
        except ClientError as exc:
            if is_not_found(exc):
                raise ResourceNotFound(f"asset not found: {name}") from exc
            raise to_remote_error(exc, self.settings.profile) from exc
        return self._asset(name)

    def upload_file(self, asset_name: str, path) -> Blob:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"file to upload not found: {path}")
        key = self.prefix(asset_name) + path.name
        logger.info("Uploading %s to s3://%s/%s", path.name, self.bucket, key)
        with remote_call(self.settings.profile):
            self.client.upload_file(str(path), self.bucket, key)
        return Blob(name=path.name, key=key, size=path.stat().st_size)

    def _keys(self, name, include_marker=False):
        prefix = self.prefix(name)
        with remote_call(self.settings.profile):
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.endswith("/"):
                        continue
                    if not include_marker and key == prefix + ASSET_MARKER:
                        continue
                    yield obj

    def list_blobs(self, asset_name: str) -> list[Blob]:
        prefix = self.prefix(asset_name)
        return [
            Blob(name=obj["Key"][len(prefix):], key=obj["Key"], size=obj.get("Size", 0))
            for obj in self._keys(asset_name)
        ]

    def list_container_urls(self, asset_name: str, expires_in=None) -> dict[str, str]:
        """Signed read URLs for every blob in the asset, keyed by blob name."""
        expires_in = expires_in or self.settings.sas_expiry_seconds
        urls = {}
        with remote_call(self.settings.profile):
            for blob in self.list_blobs(asset_name):
                urls[blob.name] = self.client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": blob.key},
                    ExpiresIn=expires_in,
                )
        return urls

    def download_results(self, asset_name: str, folder) -> list[Path]:
        """Download the asset's blobs through signed URLs into ``folder/asset_name``."""
        directory = Path(folder) / asset_name
        directory.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading results to %s", directory)

        root = directory.resolve()
        written = []
        for name, url in self.list_container_urls(asset_name).items():
            target = directory / name
            if not target.resolve().is_relative_to(root):
                raise MediaHubError(f"blob {name!r} would be written outside {directory}")
            target.parent.mkdir(parents=True, exist_ok=True)
            with request.urlopen(url, timeout=DOWNLOAD_TIMEOUT) as resp, open(target, "wb") as f:
                shutil.copyfileobj(resp, f)
            written.append(target)
        return written

    def delete_asset(self, name: str) -> int:
        keys = [{"Key": obj["Key"]} for obj in self._keys(name, include_marker=True)]
        with remote_call(self.settings.profile):
            for start in range(0, len(keys), DELETE_BATCH):
                self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": keys[start:start + DELETE_BATCH], "Quiet": True},
                )
        logger.debug("Deleted asset %s (%d objects)", name, len(keys))
        return len(keys)
