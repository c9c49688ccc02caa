"""
External configuration loader for media-hub.
Loads config from ~/.media-hub/config.yaml with fallback to built-in defaults,
then applies MEDIA_HUB_* environment variable overrides.
"""

from __future__ import annotations

import base64
import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from media_hub.configs.schema.validator import validate_settings
from media_hub.core.errors import ConfigError
from media_hub.core.models.settings import ContentKeySettings, MediaSettings

logger = logging.getLogger(__name__)

# Default config directory and file
CONFIG_DIR = Path.home() / ".media-hub"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

ENV_PREFIX = "MEDIA_HUB_"

# Built-in default settings
DEFAULT_SETTINGS: dict[str, Any] = {
    "region": "ap-southeast-3",
    "asset_prefix": "assets/",
    "poll_interval": 10,
    "sas_expiry_seconds": 3600,
    "output_folder": "Output",
    "live_allowed_cidr": "0.0.0.0/0",
}

_NUMERIC_KEYS = {"poll_interval": float, "sas_expiry_seconds": int}

_CONTENT_KEY_FIELDS = {
    "policy_name",
    "issuer",
    "audience",
    "key_delivery_url",
    "token_lifetime_minutes",
}


SAMPLE_CONFIG = """# media-hub configuration
# Values can be overridden with MEDIA_HUB_<KEY> environment variables,
# e.g. MEDIA_HUB_BUCKET=my-media-bucket

profile: default
region: ap-southeast-3

# IAM role MediaConvert assumes to read inputs and write outputs
role_arn: arn:aws:iam::123456789012:role/MediaConvertRole
# Leave empty to discover the account endpoint
mediaconvert_endpoint:

# Bucket holding assets (assets/<name>/...) and locator records
bucket: my-media-bucket
asset_prefix: assets/
# Host serving the bucket content (e.g. a CloudFront distribution)
streaming_host:

poll_interval: 10
sas_expiry_seconds: 3600
output_folder: Output

# MediaLive channel role and ingest allow-list
live_role_arn: arn:aws:iam::123456789012:role/MediaLiveAccessRole
live_allowed_cidr: 0.0.0.0/0

content_key:
  policy_name: SharedContentKeyPolicyUsedByAllAssets
  issuer: myIssuer
  audience: myAudience
  key_delivery_url: https://keys.example.com/hls
  token_lifetime_minutes: 60
  # base64 encoded; a random key is generated per run when empty
  signing_key:
"""


class Config:
    """Configuration manager with external file support."""

    def __init__(self, path: Optional[Path] = None, environ=None):
        self.path = Path(path) if path else CONFIG_FILE
        self.environ = os.environ if environ is None else environ
        self._raw: dict[str, Any] = {}
        self._loaded = False

    def _load(self):
        """Load configuration from external file or use defaults."""
        if self._loaded:
            return

        raw = dict(DEFAULT_SETTINGS)

        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    external = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Failed to parse config file {self.path}: {e}") from e
            if not isinstance(external, dict):
                raise ConfigError(f"Config file {self.path} must contain a mapping")
            for key, value in external.items():
                if key == "content_key" and isinstance(value, dict):
                    raw["content_key"] = dict(value)
                elif value is not None:
                    raw[key] = value
        else:
            logger.debug("No config file at %s, using defaults", self.path)

        raw.update(self._env_overrides(raw))

        try:
            self._raw = validate_settings(raw)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self._loaded = True

    def _env_overrides(self, base: dict[str, Any]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        field_names = {f.name for f in dataclasses.fields(MediaSettings)}
        for name, value in self.environ.items():
            if not name.startswith(ENV_PREFIX) or value == "":
                continue
            key = name[len(ENV_PREFIX):].lower()
            if key in field_names and key != "content_key":
                caster = _NUMERIC_KEYS.get(key)
                try:
                    overrides[key] = caster(value) if caster else value
                except ValueError as e:
                    raise ConfigError(f"{name} must be numeric, got {value!r}") from e
            elif key.startswith("content_key_"):
                sub = key[len("content_key_"):]
                if sub in _CONTENT_KEY_FIELDS or sub == "signing_key":
                    overrides.setdefault("content_key", {})[sub] = value
        if "content_key" in overrides:
            merged = dict(base.get("content_key") or {})
            merged.update(overrides["content_key"])
            overrides["content_key"] = merged
        return overrides

    @property
    def raw(self) -> dict[str, Any]:
        self._load()
        return self._raw

    def config_exists(self) -> bool:
        return self.path.exists()

    def settings(self, **overrides) -> MediaSettings:
        """Build the settings object, CLI overrides taking precedence."""
        raw = dict(self.raw)
        for key, value in overrides.items():
            if value is not None:
                raw[key] = value
        content_key = _build_content_key(raw.pop("content_key", None) or {})
        field_names = {f.name for f in dataclasses.fields(MediaSettings)}
        known = {k: v for k, v in raw.items() if k in field_names}
        for key, caster in _NUMERIC_KEYS.items():
            if key in known:
                known[key] = caster(known[key])
        return MediaSettings(content_key=content_key, **known)


def _build_content_key(raw: dict[str, Any]) -> ContentKeySettings:
    kwargs = {k: v for k, v in raw.items() if k in _CONTENT_KEY_FIELDS and v is not None}
    if "token_lifetime_minutes" in kwargs:
        kwargs["token_lifetime_minutes"] = int(kwargs["token_lifetime_minutes"])
    signing_key = raw.get("signing_key")
    if signing_key:
        try:
            kwargs["signing_key"] = base64.b64decode(signing_key, validate=True)
        except ValueError as e:
            raise ConfigError("content_key.signing_key must be base64 encoded") from e
    return ContentKeySettings(**kwargs)


_config: Optional[Config] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def load_settings(**overrides) -> MediaSettings:
    return get_config().settings(**overrides)


def get_sample_config_content() -> str:
    return SAMPLE_CONFIG


def create_sample_config(path: Optional[Path] = None) -> Path:
    """Create a sample configuration file."""
    target = Path(path) if path else CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(SAMPLE_CONFIG, encoding="utf-8")
    return target
