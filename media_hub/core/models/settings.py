from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Optional

SIGNING_KEY_BYTES = 40


def generate_signing_key() -> bytes:
    return secrets.token_bytes(SIGNING_KEY_BYTES)


@dataclass(frozen=True)
class ContentKeySettings:
    """Token restriction shared by the content key policy and token issuer."""

    policy_name: str = "SharedContentKeyPolicyUsedByAllAssets"
    issuer: str = "myIssuer"
    audience: str = "myAudience"
    key_delivery_url: str = ""
    token_lifetime_minutes: int = 60
    signing_key: bytes = field(default_factory=generate_signing_key, repr=False)


@dataclass(frozen=True)
class MediaSettings:
    profile: Optional[str] = None
    region: str = "ap-southeast-3"
    role_arn: Optional[str] = None
    mediaconvert_endpoint: Optional[str] = None
    bucket: Optional[str] = None
    asset_prefix: str = "assets/"
    streaming_host: Optional[str] = None
    poll_interval: float = 10.0
    sas_expiry_seconds: int = 3600
    output_folder: str = "Output"
    live_role_arn: Optional[str] = None
    live_allowed_cidr: str = "0.0.0.0/0"
    content_key: ContentKeySettings = field(default_factory=ContentKeySettings)

    @property
    def streaming_endpoint(self) -> str:
        if self.streaming_host:
            return self.streaming_host
        return f"{self.bucket}.s3.{self.region}.amazonaws.com"
