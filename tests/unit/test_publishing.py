import base64
import io
import json

import pytest
from botocore.exceptions import ClientError

from media_hub.core.errors import ResourceNotFound
from media_hub.core.models.media_models import ContentKey
from media_hub.core.models.settings import ContentKeySettings, MediaSettings
from media_hub.providers.aws.services.publishing import (
    CLEAR_KEY,
    CLEAR_STREAMING_ONLY,
    PublishingService,
)
from media_hub.providers.aws.services.s3 import AssetStore
from media_hub.security.tokens import CONTENT_KEY_IDENTIFIER_CLAIM


class _MemoryS3:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body=b"", **kwargs):
        self.objects[Key] = Body

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def get_paginator(self, name):
        objects = self.objects

        class _Paginator:
            def paginate(self, Bucket, Prefix):
                yield {
                    "Contents": [
                        {"Key": k, "Size": len(v)} for k, v in sorted(objects.items()) if k.startswith(Prefix)
                    ]
                }

        return _Paginator()


def _service(**kwargs):
    kwargs.setdefault("bucket", "media")
    settings = MediaSettings(**kwargs)
    fake = _MemoryS3()
    assets = AssetStore(settings, s3=fake)
    return PublishingService(settings, assets), assets, fake


def _seed_hls_dash(assets, name):
    assets.create_asset(name)
    for blob in (
        "clip.m3u8",
        "clip_1080p.m3u8",
        "clip_audio.m3u8",
        "clip_1080p_00001.ts",
        "clip.mpd",
        "clip_720p.mp4",
    ):
        assets.client.put_object(Bucket="media", Key=assets.prefix(name) + blob, Body=b"x")


def test_content_key_policy_records_jwt_restriction():
    service, _, fake = _service()
    key_settings = ContentKeySettings(signing_key=b"s" * 40)

    service.ensure_content_key_policy(key_settings)
    policy = service.get_content_key_policy(key_settings.policy_name)

    restriction = policy["options"][0]["restriction"]
    assert policy["options"][0]["configuration"] == CLEAR_KEY
    assert restriction["issuer"] == "myIssuer"
    assert restriction["audience"] == "myAudience"
    assert base64.b64decode(restriction["primary_key"]) == b"s" * 40
    assert restriction["required_claims"] == [CONTENT_KEY_IDENTIFIER_CLAIM]

    service.delete_content_key_policy(key_settings.policy_name)
    with pytest.raises(ResourceNotFound):
        service.get_content_key_policy(key_settings.policy_name)


def test_store_and_delete_content_key():
    service, _, fake = _service()
    key = ContentKey(key_id="kid-1", value=b"\x01" * 16, policy_name="Shared")

    service.store_content_key(key)
    stored = json.loads(fake.objects["content-keys/kid-1.json"])

    assert base64.b64decode(stored["value"]) == b"\x01" * 16
    service.delete_content_key("kid-1")
    assert "content-keys/kid-1.json" not in fake.objects


def test_locator_requires_existing_asset():
    service, _, _ = _service()

    with pytest.raises(ResourceNotFound):
        service.create_streaming_locator("loc-1", "missing-asset")


def test_clear_key_locator_needs_policy():
    service, assets, _ = _service()
    assets.create_asset("out")

    with pytest.raises(ValueError):
        service.create_streaming_locator("loc-1", "out", streaming_policy=CLEAR_KEY)


def test_unknown_streaming_policy_is_rejected():
    service, assets, _ = _service()
    assets.create_asset("out")

    with pytest.raises(ValueError):
        service.create_streaming_locator("loc-1", "out", streaming_policy="Predefined_Fancy")


def test_clear_key_locator_lists_content_keys():
    service, assets, _ = _service()
    assets.create_asset("out")
    key = ContentKey(key_id="kid-2", value=b"\x02" * 16)

    service.create_streaming_locator(
        "loc-2", "out", streaming_policy=CLEAR_KEY, content_key_policy="Shared", content_keys=[key]
    )

    assert service.list_content_keys("loc-2") == ["kid-2"]
    assert service.get_streaming_locator("loc-2").content_key_policy == "Shared"


def test_list_paths_returns_master_manifests_only():
    service, assets, _ = _service()
    _seed_hls_dash(assets, "out")
    service.create_streaming_locator("loc-3", "out", streaming_policy=CLEAR_STREAMING_ONLY)

    paths = {p.protocol: p for p in service.list_paths("loc-3")}

    assert paths["Hls"].paths == ("/assets/out/clip.m3u8",)
    assert paths["Dash"].paths == ("/assets/out/clip.mpd",)
    assert paths["Hls"].encryption_scheme == "None"


def test_build_streaming_urls_uses_streaming_host():
    service, assets, _ = _service(streaming_host="d111.cloudfront.net")
    _seed_hls_dash(assets, "out")
    service.create_streaming_locator("loc-4", "out")

    urls = service.build_streaming_urls("loc-4")

    assert urls == {
        "Hls": ["https://d111.cloudfront.net/assets/out/clip.m3u8"],
        "Dash": ["https://d111.cloudfront.net/assets/out/clip.mpd"],
    }


def test_build_streaming_urls_empty_when_no_manifests():
    service, assets, _ = _service(region="us-east-1")
    assets.create_asset("empty")
    service.create_streaming_locator("loc-5", "empty")

    assert service.build_streaming_urls("loc-5") == {}


def test_delete_streaming_locator():
    service, assets, _ = _service()
    assets.create_asset("out")
    service.create_streaming_locator("loc-6", "out")

    service.delete_streaming_locator("loc-6")

    with pytest.raises(ResourceNotFound):
        service.get_streaming_locator("loc-6")
