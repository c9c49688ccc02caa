"""Live events on AWS Elemental MediaLive.

A live event is an RTMP push input guarded by an input security group and a
single-pipeline channel. The channel's HLS output group is the live output:
it archives the stream into an asset.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from botocore.exceptions import ClientError

from media_hub.core.errors import ConfigError, LiveEventFailed, ResourceNotFound
from media_hub.core.models.media_models import LiveEvent
from media_hub.providers.aws.clients import medialive_client
from media_hub.providers.aws.errors import is_not_found, remote_call, to_remote_error

logger = logging.getLogger(__name__)

LIVE_EVENT_TAG = "media-hub:live-event"
ARCHIVE_DESTINATION_ID = "archive"
SEGMENT_SECONDS = 2
DEFAULT_ARCHIVE_WINDOW_MINUTES = 10
STATE_POLL_INTERVAL = 5.0
STATE_TIMEOUT = 900.0

DELETED = "DELETED"
# CREATE_FAILED, UPDATE_FAILED
FAILED_SUFFIX = "_FAILED"


def client(settings):
    return medialive_client(settings)


def archive_encoder_settings(manifest_name="output", archive_window_minutes=DEFAULT_ARCHIVE_WINDOW_MINUTES):
    keep_segments = max(1, int(archive_window_minutes * 60 / SEGMENT_SECONDS))
    return {
        "TimecodeConfig": {"Source": "SYSTEMCLOCK"},
        "AudioDescriptions": [
            {
                "AudioSelectorName": "default",
                "Name": "audio_1",
                "CodecSettings": {
                    "AacSettings": {
                        "Bitrate": 128000,
                        "SampleRate": 48000,
                        "CodingMode": "CODING_MODE_2_0",
                    }
                },
            }
        ],
        "VideoDescriptions": [
            {
                "Name": "video_720p",
                "Width": 1280,
                "Height": 720,
                "CodecSettings": {
                    "H264Settings": {
                        "RateControlMode": "CBR",
                        "Bitrate": 3_000_000,
                        "GopSize": float(SEGMENT_SECONDS),
                        "GopSizeUnits": "SECONDS",
                    }
                },
            }
        ],
        "OutputGroups": [
            {
                "Name": "archive",
                "OutputGroupSettings": {
                    "HlsGroupSettings": {
                        "Destination": {"DestinationRefId": ARCHIVE_DESTINATION_ID},
                        "HlsCdnSettings": {"HlsS3Settings": {}},
                        "SegmentLength": SEGMENT_SECONDS,
                        "KeepSegments": keep_segments,
                        "Mode": "LIVE",
                    }
                },
                "Outputs": [
                    {
                        "OutputName": "720p",
                        "NameModifier": "_720p",
                        "VideoDescriptionName": "video_720p",
                        "AudioDescriptionNames": ["audio_1"],
                        "OutputSettings": {
                            "HlsOutputSettings": {
                                "HlsSettings": {"StandardHlsSettings": {"M3u8Settings": {}}}
                            }
                        },
                    }
                ],
            }
        ],
    }


class LiveEventService:
    def __init__(self, settings, ml_client=None, sleeper=time.sleep, clock=time.monotonic):
        self.settings = settings
        self._client = ml_client
        self.sleeper = sleeper
        self.clock = clock

    @property
    def client(self):
        if self._client is None:
            self._client = client(self.settings)
        return self._client

    def _find_channel(self, name):
        with remote_call(self.settings.profile):
            paginator = self.client.get_paginator("list_channels")
            for page in paginator.paginate():
                for channel in page.get("Channels", []):
                    if channel.get("Name") == name:
                        return channel
        return None

    def _describe_channel_state(self, channel_id):
        try:
            resp = self.client.describe_channel(ChannelId=channel_id)
        except ClientError as exc:
            if is_not_found(exc):
                return DELETED
            raise to_remote_error(exc, self.settings.profile) from exc
        return resp.get("State", "")

    def _to_live_event(self, channel):
        attachments = channel.get("InputAttachments") or []
        input_id = attachments[0].get("InputId") if attachments else None
        ingest_urls, security_group_id = [], None
        if input_id:
            with remote_call(self.settings.profile):
                inp = self.client.describe_input(InputId=input_id)
            ingest_urls = [d["Url"] for d in inp.get("Destinations", []) if d.get("Url")]
            groups = inp.get("SecurityGroups") or []
            security_group_id = groups[0] if groups else None
        return LiveEvent(
            name=channel.get("Name", ""),
            channel_id=channel["Id"],
            input_id=input_id,
            security_group_id=security_group_id,
            state=channel.get("State", ""),
            ingest_urls=ingest_urls,
            archive_asset=channel.get("Tags", {}).get("media-hub:archive-asset"),
        )

    def get_live_event(self, name: str) -> LiveEvent:
        channel = self._find_channel(name)
        if channel is None:
            raise ResourceNotFound(f"live event not found: {name}")
        return self._to_live_event(channel)

    def list_live_events(self) -> list[LiveEvent]:
        events = []
        with remote_call(self.settings.profile):
            paginator = self.client.get_paginator("list_channels")
            pages = list(paginator.paginate())
        for page in pages:
            for channel in page.get("Channels", []):
                if LIVE_EVENT_TAG in (channel.get("Tags") or {}):
                    events.append(self._to_live_event(channel))
        return events

    def create_live_event(
        self,
        name: str,
        archive_asset,
        auto_start: bool = True,
        manifest_name: str = "output",
        archive_window_minutes: int = DEFAULT_ARCHIVE_WINDOW_MINUTES,
    ) -> LiveEvent:
        if not self.settings.live_role_arn:
            raise ConfigError("live_role_arn is required to create live events")

        tags = {LIVE_EVENT_TAG: name, "media-hub:archive-asset": archive_asset.name}
        with remote_call(self.settings.profile):
            group = self.client.create_input_security_group(
                WhitelistRules=[{"Cidr": self.settings.live_allowed_cidr}],
                Tags=tags,
            )["SecurityGroup"]
            inp = self.client.create_input(
                Name=f"{name}-input",
                Type="RTMP_PUSH",
                InputSecurityGroups=[group["Id"]],
                Destinations=[{"StreamName": f"{name}/live"}],
                Tags=tags,
            )["Input"]
            channel = self.client.create_channel(
                Name=name,
                ChannelClass="SINGLE_PIPELINE",
                RoleArn=self.settings.live_role_arn,
                InputAttachments=[
                    {
                        "InputId": inp["Id"],
                        "InputAttachmentName": f"{name}-input",
                        "InputSettings": {"SourceEndBehavior": "CONTINUE"},
                    }
                ],
                InputSpecification={
                    "Codec": "AVC",
                    "Resolution": "HD",
                    "MaximumBitrate": "MAX_10_MBPS",
                },
                Destinations=[
                    {
                        "Id": ARCHIVE_DESTINATION_ID,
                        "Settings": [{"Url": f"{archive_asset.uri}{manifest_name}"}],
                    }
                ],
                EncoderSettings=archive_encoder_settings(manifest_name, archive_window_minutes),
                Tags=tags,
            )["Channel"]
        logger.info("Created live event %s (channel %s)", name, channel["Id"])

        event = LiveEvent(
            name=name,
            channel_id=channel["Id"],
            input_id=inp["Id"],
            security_group_id=group["Id"],
            state=channel.get("State", "CREATING"),
            ingest_urls=[d["Url"] for d in inp.get("Destinations", []) if d.get("Url")],
            archive_asset=archive_asset.name,
        )
        event.state = self.wait_for_live_state(event.channel_id, ("IDLE",))
        if auto_start:
            self._start(event)
        return event

    def _start(self, event):
        with remote_call(self.settings.profile):
            self.client.start_channel(ChannelId=event.channel_id)
        event.state = self.wait_for_live_state(event.channel_id, ("RUNNING",))

    def start_live_event(self, name: str) -> LiveEvent:
        event = self.get_live_event(name)
        if not event.running:
            self._start(event)
        return event

    def stop_live_event(self, name: str) -> LiveEvent:
        event = self.get_live_event(name)
        if event.state in ("RUNNING", "STARTING"):
            with remote_call(self.settings.profile):
                self.client.stop_channel(ChannelId=event.channel_id)
            event.state = self.wait_for_live_state(event.channel_id, ("IDLE",))
        return event

    def delete_live_event(self, name: str) -> None:
        """Stop the channel if needed, then delete channel, input and security group."""
        event = self.stop_live_event(name)
        with remote_call(self.settings.profile):
            self.client.delete_channel(ChannelId=event.channel_id)
        self.wait_for_live_state(event.channel_id, (DELETED,))
        with remote_call(self.settings.profile):
            if event.input_id:
                self.client.delete_input(InputId=event.input_id)
            if event.security_group_id:
                self.client.delete_input_security_group(InputSecurityGroupId=event.security_group_id)
        logger.info("Deleted live event %s", name)

    def cleanup_live_events(self, prefix: str = "") -> list[str]:
        deleted = []
        for event in self.list_live_events():
            if prefix and not event.name.startswith(prefix):
                continue
            self.delete_live_event(event.name)
            deleted.append(event.name)
        return deleted

    def wait_for_live_state(
        self,
        channel_id: str,
        states: Iterable[str],
        interval: float = STATE_POLL_INTERVAL,
        timeout: Optional[float] = STATE_TIMEOUT,
    ) -> str:
        targets = set(states)
        deadline = self.clock() + timeout if timeout is not None else None
        while True:
            state = self._describe_channel_state(channel_id)
            if state in targets:
                return state
            if state == DELETED:
                raise ResourceNotFound(f"live event channel {channel_id} was deleted")
            if state.endswith(FAILED_SUFFIX):
                raise LiveEventFailed(f"live event channel {channel_id} is {state}")
            if deadline is not None and self.clock() >= deadline:
                raise LiveEventFailed(
                    f"channel {channel_id} still {state} after {timeout:.0f}s, wanted {sorted(targets)}"
                )
            logger.debug("Channel %s is %s, waiting for %s", channel_id, state, sorted(targets))
            self.sleeper(interval)
