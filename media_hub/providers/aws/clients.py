"""AWS client factory helpers."""

import logging

import boto3

from media_hub.providers.aws.errors import remote_call

logger = logging.getLogger(__name__)

# account endpoint per (profile, region); describe_endpoints is throttled
_ENDPOINT_CACHE = {}


def get_session(profile_name=None, region_name=None):
    if profile_name:
        return boto3.Session(profile_name=profile_name, region_name=region_name)
    return boto3.Session(region_name=region_name)


def get_client(service_name, profile_name=None, region_name=None, endpoint_url=None):
    session = get_session(profile_name=profile_name, region_name=region_name)
    if endpoint_url:
        return session.client(service_name, region_name=region_name, endpoint_url=endpoint_url)
    return session.client(service_name, region_name=region_name)


def discover_mediaconvert_endpoint(profile_name=None, region_name=None):
    key = (profile_name, region_name)
    if key in _ENDPOINT_CACHE:
        return _ENDPOINT_CACHE[key]

    client = get_client("mediaconvert", profile_name=profile_name, region_name=region_name)
    with remote_call(profile_name):
        resp = client.describe_endpoints()
    url = resp["Endpoints"][0]["Url"]
    logger.debug("MediaConvert endpoint for %s/%s: %s", profile_name, region_name, url)
    _ENDPOINT_CACHE[key] = url
    return url


def mediaconvert_client(settings):
    endpoint = settings.mediaconvert_endpoint or discover_mediaconvert_endpoint(
        profile_name=settings.profile, region_name=settings.region
    )
    return get_client(
        "mediaconvert",
        profile_name=settings.profile,
        region_name=settings.region,
        endpoint_url=endpoint,
    )


def s3_client(settings):
    return get_client("s3", profile_name=settings.profile, region_name=settings.region)


def medialive_client(settings):
    return get_client("medialive", profile_name=settings.profile, region_name=settings.region)
