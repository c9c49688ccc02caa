"""AWS error detection and conversion for media service calls.

Identifies expired tokens and missing credentials so the CLI can show an
actionable message, and converts botocore failures into ``RemoteQueryFailed``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ProfileNotFound,
)

from media_hub.core.errors import RemoteQueryFailed

logger = logging.getLogger(__name__)

# Error codes returned by AWS STS / SSO / IAM when credentials are bad.
_CREDENTIAL_ERROR_CODES = frozenset(
    {
        "ExpiredTokenException",
        "ExpiredToken",
        "InvalidIdentityToken",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "SignatureDoesNotMatch",
        "AuthFailure",
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
    }
)

# MediaConvert, MediaLive and S3 spell "missing" differently.
_NOT_FOUND_CODES = frozenset(
    {
        "NotFoundException",
        "NoSuchKey",
        "NoSuchBucket",
        "404",
        "ResourceNotFoundException",
    }
)

# Substrings that appear in botocore/SSO error messages for token issues.
_TOKEN_EXPIRED_HINTS = (
    "expired",
    "The SSO session",
    "Unable to load SSO Token",
    "Error when retrieving token",
)


def error_code(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "") or ""
    return ""


def error_message(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Message", "") or str(exc)
    return str(exc)


def is_not_found(exc: BaseException) -> bool:
    return error_code(exc) in _NOT_FOUND_CODES


def is_credential_error(exc: BaseException) -> bool:
    """Return True if *exc* is an AWS credential / token related error."""
    if isinstance(exc, (NoCredentialsError, ProfileNotFound)):
        return True

    if error_code(exc) in _CREDENTIAL_ERROR_CODES:
        return True

    if isinstance(exc, BotoCoreError):
        msg = str(exc).lower()
        return any(hint.lower() in msg for hint in _TOKEN_EXPIRED_HINTS)
    return False


def friendly_credential_message(exc: BaseException, profile: str = "") -> str:
    """Return a user-friendly message for credential/token errors."""
    profile = profile or "default"
    if isinstance(exc, NoCredentialsError):
        return (
            f"AWS credentials not found for profile '{profile}'. "
            f"Run: aws configure --profile {profile} or aws sso login --profile {profile}"
        )

    if isinstance(exc, ProfileNotFound):
        return f"AWS profile '{profile}' not found in ~/.aws/config or ~/.aws/credentials."

    code = error_code(exc)
    if code in ("ExpiredTokenException", "ExpiredToken"):
        return (
            f"AWS session token expired for profile '{profile}'. "
            f"Run: aws sso login --profile {profile}"
        )
    if code == "InvalidClientTokenId":
        return (
            f"Invalid AWS access key for profile '{profile}'. "
            "Check your credentials configuration."
        )
    if code == "SignatureDoesNotMatch":
        return (
            f"AWS secret key mismatch for profile '{profile}'. "
            "Verify your credentials are correct."
        )
    if code in ("AccessDenied", "AccessDeniedException"):
        return (
            f"Access denied for profile '{profile}'. "
            "Check IAM permissions for MediaConvert, MediaLive and S3."
        )

    return (
        f"AWS authentication failed for profile '{profile}': {exc}. "
        f"Try: aws sso login --profile {profile}"
    )


def classify_aws_error(exc: BaseException, profile: str = "") -> dict:
    """Classify an exception and return a structured error dict.

    Returns a dict with keys:
        error_type: 'credential' | 'aws_api' | 'unexpected'
        error: human-readable message
        code: service error code, empty when not a ClientError
        is_credential_error: bool
    """
    if is_credential_error(exc):
        return {
            "error_type": "credential",
            "error": friendly_credential_message(exc, profile),
            "code": error_code(exc),
            "is_credential_error": True,
        }

    if isinstance(exc, (BotoCoreError, ClientError)):
        return {
            "error_type": "aws_api",
            "error": error_message(exc),
            "code": error_code(exc),
            "is_credential_error": False,
        }

    return {
        "error_type": "unexpected",
        "error": str(exc),
        "code": "",
        "is_credential_error": False,
    }


def to_remote_error(exc: BaseException, profile: str = "") -> RemoteQueryFailed:
    info = classify_aws_error(exc, profile)
    return RemoteQueryFailed(
        info["error"],
        code=info["code"],
        error_type=info["error_type"],
        is_credential_error=info["is_credential_error"],
    )


@contextmanager
def remote_call(profile: str = ""):
    """Re-raise botocore failures inside the block as ``RemoteQueryFailed``."""
    try:
        yield
    except (BotoCoreError, ClientError) as exc:
        logger.debug("AWS call failed: %s", exc)
        raise to_remote_error(exc, profile) from exc
