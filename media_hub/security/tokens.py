"""Content keys and the JWT tokens that unlock their delivery."""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone

import jwt

from media_hub.core.models.media_models import ContentKey
from media_hub.core.models.settings import ContentKeySettings

CONTENT_KEY_IDENTIFIER_CLAIM = "urn:media-hub:contentkeyidentifier"
TOKEN_ALGORITHM = "HS256"
NOT_BEFORE_SKEW = timedelta(minutes=5)
AES_KEY_BYTES = 16


def generate_content_key(policy_name=None) -> ContentKey:
    return ContentKey(
        key_id=str(uuid.uuid4()),
        value=secrets.token_bytes(AES_KEY_BYTES),
        policy_name=policy_name,
    )


def get_token(settings: ContentKeySettings, key_identifier: str, now=None) -> str:
    """Signed token carrying the content key identifier claim.

    Valid from five minutes ago until ``token_lifetime_minutes`` from now.
    """
    now = now or datetime.now(timezone.utc)
    claims = {
        "iss": settings.issuer,
        "aud": settings.audience,
        "nbf": now - NOT_BEFORE_SKEW,
        "exp": now + timedelta(minutes=settings.token_lifetime_minutes),
        CONTENT_KEY_IDENTIFIER_CLAIM: key_identifier,
    }
    return jwt.encode(claims, settings.signing_key, algorithm=TOKEN_ALGORITHM)


def verify_token(settings: ContentKeySettings, token: str) -> str:
    """Validate ``token`` against the restriction and return its key identifier.

    Raises ``jwt.InvalidTokenError`` when the token does not satisfy it.
    """
    claims = jwt.decode(
        token,
        settings.signing_key,
        algorithms=[TOKEN_ALGORITHM],
        audience=settings.audience,
        issuer=settings.issuer,
        options={"require": ["exp", "nbf", CONTENT_KEY_IDENTIFIER_CLAIM]},
    )
    return claims[CONTENT_KEY_IDENTIFIER_CLAIM]
