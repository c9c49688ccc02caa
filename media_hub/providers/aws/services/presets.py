"""MediaConvert output group recipes used as transform definitions.

Output group destinations are left empty here; they are filled with the
output asset location when a job is submitted.
"""

from __future__ import annotations

CUSTOM_TRANSFORM_NAME = "Custom_TwoLayerMp4_Png"
ADAPTIVE_TRANSFORM_NAME = "AdaptiveBitrate"
ADAPTIVE_HLS_TRANSFORM_NAME = "AdaptiveBitrateHls"

GOP_SECONDS = 2

# (label, width, height, bitrate)
TWO_LAYER_MP4 = (
    ("HD", 1280, 720, 1_000_000),
    ("SD", 640, 480, 600_000),
)

ABR_LADDER = (
    ("1080p", 1920, 1080, 6_000_000),
    ("720p", 1280, 720, 3_400_000),
    ("540p", 960, 540, 2_000_000),
    ("360p", 640, 360, 800_000),
)


def aac_audio(bitrate=128_000, sample_rate=48_000, channels=2):
    return {
        "AudioSourceName": "Audio Selector 1",
        "CodecSettings": {
            "Codec": "AAC",
            "AacSettings": {
                "Bitrate": bitrate,
                "SampleRate": sample_rate,
                "CodingMode": "CODING_MODE_2_0" if channels == 2 else "CODING_MODE_1_0",
                "CodecProfile": "LC",
            },
        },
    }


def h264_video(width, height, bitrate, gop_seconds=GOP_SECONDS):
    return {
        "Width": width,
        "Height": height,
        "CodecSettings": {
            "Codec": "H_264",
            "H264Settings": {
                "RateControlMode": "CBR",
                "Bitrate": bitrate,
                "GopSize": float(gop_seconds),
                "GopSizeUnits": "SECONDS",
                "CodecProfile": "MAIN",
            },
        },
    }


def _file_group(name, outputs):
    return {
        "Name": name,
        "OutputGroupSettings": {
            "Type": "FILE_GROUP_SETTINGS",
            "FileGroupSettings": {"Destination": ""},
        },
        "Outputs": outputs,
    }


def two_layer_mp4_with_thumbnails():
    """AAC stereo plus two H.264 layers muxed to MP4, and JPEG thumbnails.

    Files are named ``<basename>_Video-<label>-<bitrate>.mp4`` and
    ``<basename>_Thumbnail.<index>.jpg``.
    """
    mp4_outputs = [
        {
            "NameModifier": f"_Video-{label}-{bitrate}",
            "ContainerSettings": {"Container": "MP4", "Mp4Settings": {}},
            "VideoDescription": h264_video(width, height, bitrate),
            "AudioDescriptions": [aac_audio()],
        }
        for label, width, height, bitrate in TWO_LAYER_MP4
    ]
    # MediaConvert captures on a fixed cadence, not at percentages of duration.
    thumbnails = {
        "NameModifier": "_Thumbnail",
        "ContainerSettings": {"Container": "RAW"},
        "VideoDescription": {
            "Width": 640,
            "Height": 360,
            "CodecSettings": {
                "Codec": "FRAME_CAPTURE",
                "FrameCaptureSettings": {
                    "FramerateNumerator": 1,
                    "FramerateDenominator": 10,
                    "MaxCaptures": 3,
                    "Quality": 80,
                },
            },
        },
    }
    return [
        _file_group("Mp4", mp4_outputs),
        _file_group("Thumbnails", [thumbnails]),
    ]


def hls_aes_encryption(content_key, key_delivery_url):
    """HLS AES-128 encryption with a static key served from ``key_delivery_url``."""
    return {
        "EncryptionMethod": "AES128",
        "Type": "STATIC_KEY",
        "StaticKeyProvider": {
            "StaticKeyValue": content_key.value.hex(),
            "Url": f"{key_delivery_url.rstrip('/')}/{content_key.key_id}",
        },
    }


def adaptive_streaming(include_dash=True):
    """HLS (and optionally DASH) output groups over an H.264 ladder plus one AAC rendition."""
    hls_settings = {
        "Destination": "",
        "SegmentLength": 6,
        "MinSegmentLength": 0,
        "DirectoryStructure": "SINGLE_DIRECTORY",
        "ManifestDurationFormat": "INTEGER",
        "OutputSelection": "MANIFESTS_AND_SEGMENTS",
    }
    hls_outputs = [
        {
            "NameModifier": f"_{label}",
            "ContainerSettings": {"Container": "M3U8", "M3u8Settings": {}},
            "VideoDescription": h264_video(width, height, bitrate),
            "OutputSettings": {"HlsSettings": {}},
        }
        for label, width, height, bitrate in ABR_LADDER
    ]
    hls_outputs.append(
        {
            "NameModifier": "_audio",
            "ContainerSettings": {"Container": "M3U8", "M3u8Settings": {}},
            "AudioDescriptions": [aac_audio()],
            "OutputSettings": {"HlsSettings": {"AudioGroupId": "program_audio"}},
        }
    )

    dash_outputs = [
        {
            "NameModifier": f"_{label}",
            "ContainerSettings": {"Container": "MPD"},
            "VideoDescription": h264_video(width, height, bitrate),
        }
        for label, width, height, bitrate in ABR_LADDER
    ]
    dash_outputs.append(
        {
            "NameModifier": "_audio",
            "ContainerSettings": {"Container": "MPD"},
            "AudioDescriptions": [aac_audio()],
        }
    )

    groups = [
        {
            "Name": "Hls",
            "OutputGroupSettings": {"Type": "HLS_GROUP_SETTINGS", "HlsGroupSettings": hls_settings},
            "Outputs": hls_outputs,
        },
    ]
    if include_dash:
        groups.append(
            {
                "Name": "Dash",
                "OutputGroupSettings": {
                    "Type": "DASH_ISO_GROUP_SETTINGS",
                    "DashIsoGroupSettings": {
                        "Destination": "",
                        "SegmentLength": 6,
                        "FragmentLength": 2,
                    },
                },
                "Outputs": dash_outputs,
            }
        )
    return groups


def set_destination(output_groups, destination):
    """Return a copy of ``output_groups`` writing into ``destination``."""
    updated = []
    for group in output_groups:
        group = dict(group)
        settings = dict(group.get("OutputGroupSettings", {}))
        for key, value in list(settings.items()):
            if key.endswith("GroupSettings") and isinstance(value, dict):
                value = dict(value)
                value["Destination"] = destination
                settings[key] = value
        group["OutputGroupSettings"] = settings
        updated.append(group)
    return updated


def apply_hls_encryption(output_groups, encryption):
    """Return a copy of ``output_groups`` with ``encryption`` on every HLS group.

    DASH ISO groups only accept SPEKE encryption, so they are rejected here.
    """
    updated = []
    for group in output_groups:
        settings = group.get("OutputGroupSettings", {})
        if settings.get("Type") == "DASH_ISO_GROUP_SETTINGS":
            raise ValueError("static key encryption is only supported for HLS output groups")
        if settings.get("Type") == "HLS_GROUP_SETTINGS":
            hls = dict(settings.get("HlsGroupSettings", {}))
            hls["Encryption"] = encryption
            group = dict(group)
            group["OutputGroupSettings"] = dict(settings, HlsGroupSettings=hls)
        updated.append(group)
    return updated
