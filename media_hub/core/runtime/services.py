"""Service bundle shared by the workflows."""

from __future__ import annotations

from dataclasses import dataclass

from media_hub.providers.aws.services.mediaconvert import MediaConvertService
from media_hub.providers.aws.services.medialive import LiveEventService
from media_hub.providers.aws.services.publishing import PublishingService
from media_hub.providers.aws.services.s3 import AssetStore


@dataclass
class MediaServices:
    settings: object
    jobs: MediaConvertService
    assets: AssetStore
    publishing: PublishingService
    live: LiveEventService


def build_services(settings) -> MediaServices:
    """Wire services for ``settings``; AWS clients are created on first use."""
    assets = AssetStore(settings)
    return MediaServices(
        settings=settings,
        jobs=MediaConvertService(settings),
        assets=assets,
        publishing=PublishingService(settings, assets),
        live=LiveEventService(settings),
    )
