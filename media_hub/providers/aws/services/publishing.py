"""Streaming locators and content key policies.

Both are JSON records kept next to the assets in the media bucket. A locator
publishes the HLS and DASH manifests of an asset through the streaming host.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Optional

from botocore.exceptions import ClientError

from media_hub.core.errors import ResourceNotFound
from media_hub.core.models.media_models import ContentKey, StreamingLocator, StreamingPath
from media_hub.core.models.settings import ContentKeySettings
from media_hub.providers.aws.errors import is_not_found, remote_call, to_remote_error
from media_hub.security.tokens import CONTENT_KEY_IDENTIFIER_CLAIM

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "locators/"
POLICY_PREFIX = "content-key-policies/"
CONTENT_KEY_PREFIX = "content-keys/"

CLEAR_STREAMING_ONLY = "ClearStreamingOnly"
CLEAR_KEY = "ClearKey"
STREAMING_POLICIES = {
    CLEAR_STREAMING_ONLY: "None",
    CLEAR_KEY: "EnvelopeEncryption",
}

MANIFEST_PROTOCOLS = (
    (".m3u8", "Hls"),
    (".mpd", "Dash"),
)


class PublishingService:
    def __init__(self, settings, assets):
        self.settings = settings
        self.assets = assets

    @property
    def client(self):
        return self.assets.client

    @property
    def bucket(self):
        return self.assets.bucket

    def _put_json(self, key, body):
        with remote_call(self.settings.profile):
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=json.dumps(body, indent=2).encode("utf-8"),
                ContentType="application/json",
            )

    def _get_json(self, key, what):
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if is_not_found(exc):
                raise ResourceNotFound(f"{what} not found") from exc
            raise to_remote_error(exc, self.settings.profile) from exc
        return json.loads(resp["Body"].read().decode("utf-8"))

    def _delete(self, key):
        with remote_call(self.settings.profile):
            self.client.delete_object(Bucket=self.bucket, Key=key)

    # -- content key policies --

    def ensure_content_key_policy(self, key_settings: ContentKeySettings) -> dict:
        """Write the clear-key policy restricted to tokens signed with our key.

        Always overwrites, so the record tracks the signing key of this run.
        """
        policy = {
            "name": key_settings.policy_name,
            "options": [
                {
                    "configuration": CLEAR_KEY,
                    "restriction": {
                        "type": "Jwt",
                        "issuer": key_settings.issuer,
                        "audience": key_settings.audience,
                        "primary_key": base64.b64encode(key_settings.signing_key).decode("ascii"),
                        "required_claims": [CONTENT_KEY_IDENTIFIER_CLAIM],
                    },
                }
            ],
        }
        self._put_json(f"{POLICY_PREFIX}{key_settings.policy_name}.json", policy)
        logger.debug("Wrote content key policy %s", key_settings.policy_name)
        return policy

    def get_content_key_policy(self, name: str) -> dict:
        return self._get_json(f"{POLICY_PREFIX}{name}.json", f"content key policy {name}")

    def delete_content_key_policy(self, name: str) -> None:
        self._delete(f"{POLICY_PREFIX}{name}.json")

    def store_content_key(self, content_key: ContentKey) -> None:
        self._put_json(
            f"{CONTENT_KEY_PREFIX}{content_key.key_id}.json",
            {
                "key_id": content_key.key_id,
                "value": base64.b64encode(content_key.value).decode("ascii"),
                "policy_name": content_key.policy_name,
            },
        )

    def delete_content_key(self, key_id: str) -> None:
        self._delete(f"{CONTENT_KEY_PREFIX}{key_id}.json")

    # -- streaming locators --

    def create_streaming_locator(
        self,
        name: str,
        asset_name: str,
        streaming_policy: str = CLEAR_STREAMING_ONLY,
        content_key_policy: Optional[str] = None,
        content_keys=(),
    ) -> StreamingLocator:
        if streaming_policy not in STREAMING_POLICIES:
            raise ValueError(f"unknown streaming policy: {streaming_policy}")
        if streaming_policy == CLEAR_KEY and not content_key_policy:
            raise ValueError("ClearKey locators need a content key policy")

        self.assets.get_asset(asset_name)
        locator = StreamingLocator(
            name=name,
            asset_name=asset_name,
            streaming_policy=streaming_policy,
            content_key_policy=content_key_policy,
            content_key_ids=tuple(key.key_id for key in content_keys),
        )
        self._put_json(
            f"{LOCATOR_PREFIX}{name}.json",
            {
                "name": locator.name,
                "asset_name": locator.asset_name,
                "streaming_policy": locator.streaming_policy,
                "content_key_policy": locator.content_key_policy,
                "content_key_ids": list(locator.content_key_ids),
            },
        )
        logger.info("Created streaming locator %s for asset %s", name, asset_name)
        return locator

    def get_streaming_locator(self, name: str) -> StreamingLocator:
        raw = self._get_json(f"{LOCATOR_PREFIX}{name}.json", f"streaming locator {name}")
        return StreamingLocator(
            name=raw["name"],
            asset_name=raw["asset_name"],
            streaming_policy=raw["streaming_policy"],
            content_key_policy=raw.get("content_key_policy"),
            content_key_ids=tuple(raw.get("content_key_ids", [])),
        )

    def list_content_keys(self, name: str) -> list[str]:
        return list(self.get_streaming_locator(name).content_key_ids)

    def list_paths(self, name: str) -> list[StreamingPath]:
        """Top-level manifests of the locator's asset, grouped by protocol."""
        locator = self.get_streaming_locator(name)
        encryption = STREAMING_POLICIES[locator.streaming_policy]
        prefix = self.assets.prefix(locator.asset_name)

        found = {protocol: [] for _, protocol in MANIFEST_PROTOCOLS}
        blobs = self.assets.list_blobs(locator.asset_name)
        names = {blob.name for blob in blobs}
        for blob in blobs:
            for suffix, protocol in MANIFEST_PROTOCOLS:
                if not blob.name.endswith(suffix):
                    continue
                # HLS variant playlists are named <master>_<modifier>.m3u8
                stem = blob.name[: -len(suffix)]
                if protocol == "Hls" and "_" in stem and f"{stem.rsplit('_', 1)[0]}{suffix}" in names:
                    continue
                found[protocol].append("/" + prefix + blob.name)

        return [
            StreamingPath(protocol=protocol, encryption_scheme=encryption, paths=tuple(sorted(paths)))
            for protocol, paths in found.items()
        ]

    def build_streaming_urls(self, name: str) -> dict[str, list[str]]:
        host = self.settings.streaming_endpoint
        urls = {}
        for path in self.list_paths(name):
            if path.paths:
                urls[path.protocol] = [f"https://{host}{p}" for p in path.paths]
        return urls

    def delete_streaming_locator(self, name: str) -> None:
        self._delete(f"{LOCATOR_PREFIX}{name}.json")
