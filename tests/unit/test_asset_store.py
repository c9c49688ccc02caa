import io

import pytest
from botocore.exceptions import ClientError

from media_hub.core.errors import ConfigError, MediaHubError, ResourceNotFound
from media_hub.core.models.settings import MediaSettings
from media_hub.providers.aws.services import s3
from media_hub.providers.aws.services.s3 import AssetStore


class _Paginator:
    def __init__(self, objects):
        self.objects = objects

    def paginate(self, Bucket, Prefix):
        yield {"Contents": [o for o in self.objects if o["Key"].startswith(Prefix)]}


class _FakeS3:
    def __init__(self, keys=()):
        self.objects = {key: b"data" for key in keys}
        self.uploads = []
        self.deleted_batches = []

    def put_object(self, Bucket, Key, Body=b"", **kwargs):
        self.objects[Key] = Body

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def upload_file(self, filename, bucket, key):
        self.uploads.append((filename, bucket, key))
        self.objects[key] = b"uploaded"

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        return _Paginator([{"Key": k, "Size": len(v)} for k, v in sorted(self.objects.items())])

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://{Params['Bucket']}.example.com/{Params['Key']}?expires={ExpiresIn}"

    def delete_objects(self, Bucket, Delete):
        self.deleted_batches.append([o["Key"] for o in Delete["Objects"]])
        for obj in Delete["Objects"]:
            self.objects.pop(obj["Key"], None)


def _store(keys=(), **kwargs):
    kwargs.setdefault("bucket", "media")
    fake = _FakeS3(keys)
    return AssetStore(MediaSettings(**kwargs), s3=fake), fake


def test_create_and_get_asset():
    store, fake = _store()

    asset = store.create_asset("output-1")

    assert "assets/output-1/.asset" in fake.objects
    assert asset.uri == "s3://media/assets/output-1/"
    assert store.get_asset("output-1") == asset


def test_get_missing_asset_raises_not_found():
    store, _ = _store()

    with pytest.raises(ResourceNotFound):
        store.get_asset("nope")


def test_missing_bucket_fails_on_first_use():
    store = AssetStore(MediaSettings(bucket=None))

    with pytest.raises(ConfigError):
        store.create_asset("output-1")


def test_list_blobs_skips_marker_and_other_assets():
    store, _ = _store(
        [
            "assets/output-1/.asset",
            "assets/output-1/clip_Video-HD-1000000.mp4",
            "assets/output-1/clip_Thumbnail.0000000.jpg",
            "assets/output-10/other.mp4",
        ]
    )

    names = [blob.name for blob in store.list_blobs("output-1")]

    assert names == ["clip_Thumbnail.0000000.jpg", "clip_Video-HD-1000000.mp4"]


def test_upload_file_puts_blob_under_asset(tmp_path):
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"0123456789")
    store, fake = _store()

    blob = store.upload_file("input-1", source)

    assert blob.key == "assets/input-1/clip.mp4"
    assert blob.size == 10
    assert fake.uploads == [(str(source), "media", "assets/input-1/clip.mp4")]


def test_list_container_urls_uses_expiry_setting():
    store, _ = _store(["assets/a/.asset", "assets/a/clip.mp4"], sas_expiry_seconds=600)

    urls = store.list_container_urls("a")

    assert urls == {"clip.mp4": "https://media.example.com/assets/a/clip.mp4?expires=600"}


def test_download_results_fetches_each_signed_url(monkeypatch, tmp_path):
    store, _ = _store(["assets/out/.asset", "assets/out/clip.mp4", "assets/out/thumbs/0.jpg"])
    requested = []

    class _Response(io.BytesIO):
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    def _fake_urlopen(url, timeout=10):
        requested.append((url, timeout))
        return _Response(b"payload")

    monkeypatch.setattr(s3.request, "urlopen", _fake_urlopen)

    written = store.download_results("out", tmp_path)

    assert sorted(p.relative_to(tmp_path).as_posix() for p in written) == [
        "out/clip.mp4",
        "out/thumbs/0.jpg",
    ]
    assert (tmp_path / "out" / "clip.mp4").read_bytes() == b"payload"
    assert all(timeout == s3.DOWNLOAD_TIMEOUT for _, timeout in requested)


def test_download_results_rejects_blob_names_outside_the_folder(monkeypatch, tmp_path):
    store, _ = _store(["assets/out/.asset", "assets/out/../../evil.txt"])
    requested = []
    monkeypatch.setattr(s3.request, "urlopen", lambda url, timeout=10: requested.append(url))

    with pytest.raises(MediaHubError, match="outside"):
        store.download_results("out", tmp_path / "downloads")

    assert requested == []
    assert not (tmp_path / "evil.txt").exists()


def test_delete_asset_removes_marker_and_blobs_in_batches(monkeypatch):
    keys = ["assets/big/.asset"] + [f"assets/big/seg_{i:04d}.ts" for i in range(4)]
    store, fake = _store(keys)
    monkeypatch.setattr(s3, "DELETE_BATCH", 2)

    deleted = store.delete_asset("big")

    assert deleted == 5
    assert [len(batch) for batch in fake.deleted_batches] == [2, 2, 1]
    assert fake.objects == {}
