import pytest
from botocore.exceptions import ClientError

from media_hub.core.errors import ConfigError, LiveEventFailed, ResourceNotFound
from media_hub.core.models.media_models import Asset
from media_hub.core.models.settings import MediaSettings
from media_hub.providers.aws.services.medialive import (
    LIVE_EVENT_TAG,
    LiveEventService,
    archive_encoder_settings,
)

LIVE_ROLE = "arn:aws:iam::123456789012:role/MediaLiveAccessRole"


class _FakeMediaLive:
    """Channels move to their target state after one extra describe."""

    def __init__(self):
        self.channels = {}
        self.inputs = {}
        self.calls = []
        self._pending = {}

    def _record(self, name, **kwargs):
        self.calls.append((name, kwargs))

    def create_input_security_group(self, **kwargs):
        self._record("create_input_security_group", **kwargs)
        return {"SecurityGroup": {"Id": "sg-1"}}

    def create_input(self, **kwargs):
        self._record("create_input", **kwargs)
        inp = {
            "Id": "in-1",
            "SecurityGroups": kwargs["InputSecurityGroups"],
            "Destinations": [{"Url": f"rtmp://198.51.100.7:1935/{kwargs['Destinations'][0]['StreamName']}"}],
        }
        self.inputs[inp["Id"]] = inp
        return {"Input": inp}

    def describe_input(self, InputId):
        return self.inputs[InputId]

    def create_channel(self, **kwargs):
        self._record("create_channel", **kwargs)
        channel = {
            "Id": "ch-1",
            "Name": kwargs["Name"],
            "State": "CREATING",
            "Tags": kwargs["Tags"],
            "InputAttachments": [{"InputId": kwargs["InputAttachments"][0]["InputId"]}],
        }
        self.channels["ch-1"] = channel
        self._pending["ch-1"] = "IDLE"
        return {"Channel": dict(channel)}

    def describe_channel(self, ChannelId):
        channel = self.channels.get(ChannelId)
        if channel is None:
            raise ClientError({"Error": {"Code": "NotFoundException", "Message": "gone"}}, "DescribeChannel")
        state = channel["State"]
        if ChannelId in self._pending:
            channel["State"] = self._pending.pop(ChannelId)
        return {"State": state}

    def start_channel(self, ChannelId):
        self._record("start_channel", ChannelId=ChannelId)
        self.channels[ChannelId]["State"] = "STARTING"
        self._pending[ChannelId] = "RUNNING"

    def stop_channel(self, ChannelId):
        self._record("stop_channel", ChannelId=ChannelId)
        self.channels[ChannelId]["State"] = "STOPPING"
        self._pending[ChannelId] = "IDLE"

    def delete_channel(self, ChannelId):
        self._record("delete_channel", ChannelId=ChannelId)
        self.channels.pop(ChannelId)

    def delete_input(self, InputId):
        self._record("delete_input", InputId=InputId)

    def delete_input_security_group(self, InputSecurityGroupId):
        self._record("delete_input_security_group", InputSecurityGroupId=InputSecurityGroupId)

    def get_paginator(self, name):
        channels = self.channels

        class _Paginator:
            def paginate(self):
                yield {"Channels": [dict(c) for c in channels.values()]}

        return _Paginator()

    def names(self):
        return [name for name, _ in self.calls]


ARCHIVE = Asset(name="archive-1", bucket="media", prefix="assets/archive-1/")


def _service(**kwargs):
    kwargs.setdefault("live_role_arn", LIVE_ROLE)
    fake = _FakeMediaLive()
    sleeps = []
    service = LiveEventService(MediaSettings(**kwargs), ml_client=fake, sleeper=sleeps.append)
    return service, fake, sleeps


def test_archive_settings_keep_window_of_segments():
    settings = archive_encoder_settings("output", archive_window_minutes=10)

    hls = settings["OutputGroups"][0]["OutputGroupSettings"]["HlsGroupSettings"]
    assert hls["KeepSegments"] == 300
    assert hls["Destination"] == {"DestinationRefId": "archive"}


def test_create_live_event_starts_channel():
    service, fake, sleeps = _service(live_allowed_cidr="203.0.113.0/24")

    event = service.create_live_event("liveevent-1", ARCHIVE)

    assert event.running is True
    assert event.ingest_urls == ["rtmp://198.51.100.7:1935/liveevent-1/live"]
    assert event.archive_asset == "archive-1"
    assert fake.names() == [
        "create_input_security_group",
        "create_input",
        "create_channel",
        "start_channel",
    ]
    group_kwargs = fake.calls[0][1]
    assert group_kwargs["WhitelistRules"] == [{"Cidr": "203.0.113.0/24"}]
    channel_kwargs = fake.calls[2][1]
    assert channel_kwargs["Destinations"][0]["Settings"] == [{"Url": "s3://media/assets/archive-1/output"}]
    assert channel_kwargs["Tags"][LIVE_EVENT_TAG] == "liveevent-1"
    assert sleeps and all(s == 5.0 for s in sleeps)


def test_create_live_event_without_auto_start_stays_idle():
    service, fake, _ = _service()

    event = service.create_live_event("liveevent-2", ARCHIVE, auto_start=False)

    assert event.state == "IDLE"
    assert "start_channel" not in fake.names()


def test_create_live_event_requires_role():
    service, fake, _ = _service(live_role_arn=None)

    with pytest.raises(ConfigError):
        service.create_live_event("liveevent-3", ARCHIVE)
    assert fake.calls == []


def test_get_live_event_reads_input_details():
    service, _, _ = _service()
    service.create_live_event("liveevent-4", ARCHIVE, auto_start=False)

    event = service.get_live_event("liveevent-4")

    assert event.channel_id == "ch-1"
    assert event.security_group_id == "sg-1"
    assert event.input_id == "in-1"
    assert event.archive_asset == "archive-1"


def test_get_missing_live_event():
    service, _, _ = _service()

    with pytest.raises(ResourceNotFound):
        service.get_live_event("nope")


def test_delete_live_event_stops_then_removes_resources():
    service, fake, _ = _service()
    service.create_live_event("liveevent-5", ARCHIVE)

    service.delete_live_event("liveevent-5")

    assert fake.names()[-4:] == [
        "stop_channel",
        "delete_channel",
        "delete_input",
        "delete_input_security_group",
    ]
    assert fake.channels == {}


def test_cleanup_live_events_filters_by_prefix():
    service, fake, _ = _service()
    service.create_live_event("liveevent-6", ARCHIVE, auto_start=False)

    assert service.cleanup_live_events(prefix="other-") == []
    assert service.cleanup_live_events(prefix="liveevent-") == ["liveevent-6"]
    assert "stop_channel" not in fake.names()


def test_wait_for_live_state_times_out():
    now = {"t": 0.0}
    fake = _FakeMediaLive()
    fake.channels["ch-9"] = {"Id": "ch-9", "State": "STARTING"}

    def _advance(seconds):
        now["t"] += seconds

    service = LiveEventService(MediaSettings(), ml_client=fake, sleeper=_advance, clock=lambda: now["t"])

    with pytest.raises(LiveEventFailed, match="still STARTING"):
        service.wait_for_live_state("ch-9", ("RUNNING",), interval=5, timeout=12)
    assert now["t"] == 15


def test_failed_channel_stops_waiting_at_once():
    fake = _FakeMediaLive()
    fake.channels["ch-7"] = {"Id": "ch-7", "State": "CREATE_FAILED"}
    sleeps = []
    service = LiveEventService(MediaSettings(), ml_client=fake, sleeper=sleeps.append)

    with pytest.raises(LiveEventFailed, match="CREATE_FAILED"):
        service.wait_for_live_state("ch-7", ("IDLE",))
    assert sleeps == []


def test_create_live_event_reports_failed_channel():
    class _FailingChannel(_FakeMediaLive):
        def create_channel(self, **kwargs):
            resp = super().create_channel(**kwargs)
            self._pending["ch-1"] = "CREATE_FAILED"
            return resp

    fake = _FailingChannel()
    service = LiveEventService(
        MediaSettings(live_role_arn=LIVE_ROLE), ml_client=fake, sleeper=lambda seconds: None
    )

    with pytest.raises(LiveEventFailed):
        service.create_live_event("liveevent-8", ARCHIVE)
    assert "start_channel" not in fake.names()
