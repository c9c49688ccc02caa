from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class JobInputHttp:
    """Job input read over HTTPS: ``base_uri`` joined with each file name."""

    base_uri: str
    files: tuple[str, ...]
    label: Optional[str] = None

    def file_inputs(self) -> list[str]:
        base = self.base_uri if self.base_uri.endswith("/") else self.base_uri + "/"
        return [base + name.lstrip("/") for name in self.files]


@dataclass(frozen=True)
class JobInputAsset:
    asset_name: str
    files: tuple[str, ...] = ()
    label: Optional[str] = None


@dataclass(frozen=True)
class Asset:
    name: str
    bucket: str
    prefix: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.prefix}"


@dataclass(frozen=True)
class Blob:
    name: str
    key: str
    size: int = 0


@dataclass(frozen=True)
class ContentKey:
    key_id: str
    value: bytes = field(repr=False)
    policy_name: Optional[str] = None


@dataclass(frozen=True)
class StreamingLocator:
    name: str
    asset_name: str
    streaming_policy: str
    content_key_policy: Optional[str] = None
    content_key_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class StreamingPath:
    protocol: str
    encryption_scheme: str
    paths: tuple[str, ...] = ()


@dataclass
class LiveEvent:
    name: str
    channel_id: str
    input_id: Optional[str] = None
    security_group_id: Optional[str] = None
    state: str = "CREATING"
    ingest_urls: list[str] = field(default_factory=list)
    archive_asset: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.state == "RUNNING"
