"""Config schema validation helpers."""

_POSITIVE_NUMBERS = ("poll_interval", "sas_expiry_seconds")


def validate_settings(raw):
    if not isinstance(raw, dict):
        raise ValueError("media-hub config must be an object")

    for key in _POSITIVE_NUMBERS:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError(f"{key} must be a non-negative number")

    content_key = raw.get("content_key")
    if content_key is not None and not isinstance(content_key, dict):
        raise ValueError("content_key must be an object")

    bucket = raw.get("bucket")
    if bucket is not None and (not isinstance(bucket, str) or "/" in bucket):
        raise ValueError("bucket must be a bare S3 bucket name")

    return raw
