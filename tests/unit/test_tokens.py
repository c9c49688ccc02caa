from datetime import datetime, timedelta, timezone

import jwt
import pytest

from media_hub.core.models.settings import ContentKeySettings
from media_hub.security.tokens import (
    CONTENT_KEY_IDENTIFIER_CLAIM,
    generate_content_key,
    get_token,
    verify_token,
)


def test_generate_content_key_is_random_aes128():
    first = generate_content_key(policy_name="Shared")
    second = generate_content_key(policy_name="Shared")

    assert len(first.value) == 16
    assert first.key_id != second.key_id
    assert first.policy_name == "Shared"


def test_token_round_trips_key_identifier():
    settings = ContentKeySettings()

    token = get_token(settings, "key-1")

    assert verify_token(settings, token) == "key-1"


def test_token_claims_follow_settings():
    settings = ContentKeySettings(issuer="issuer-a", audience="aud-b", token_lifetime_minutes=30)
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    token = get_token(settings, "key-2", now=now)
    claims = jwt.decode(
        token,
        settings.signing_key,
        algorithms=["HS256"],
        audience="aud-b",
        options={"verify_exp": False, "verify_nbf": False},
    )

    assert claims["iss"] == "issuer-a"
    assert claims[CONTENT_KEY_IDENTIFIER_CLAIM] == "key-2"
    assert claims["nbf"] == int((now - timedelta(minutes=5)).timestamp())
    assert claims["exp"] == int((now + timedelta(minutes=30)).timestamp())


def test_token_signed_with_other_key_is_rejected():
    issued = get_token(ContentKeySettings(), "key-3")

    with pytest.raises(jwt.InvalidSignatureError):
        verify_token(ContentKeySettings(), issued)


def test_expired_token_is_rejected():
    settings = ContentKeySettings()
    long_ago = datetime.now(timezone.utc) - timedelta(hours=3)

    token = get_token(settings, "key-4", now=long_ago)

    with pytest.raises(jwt.ExpiredSignatureError):
        verify_token(settings, token)


def test_wrong_audience_is_rejected():
    token = get_token(ContentKeySettings(signing_key=b"k" * 40), "key-5")

    with pytest.raises(jwt.InvalidAudienceError):
        verify_token(ContentKeySettings(signing_key=b"k" * 40, audience="someone-else"), token)
