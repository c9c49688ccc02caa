"""
End-to-end media workflows.
Each one sequences control-plane calls, waits on the job with the remote job
monitor, and reports through the rich console.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Callable, Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from media_hub.core.engine import CancellationToken, RemoteJobMonitor
from media_hub.core.errors import ConfigError
from media_hub.core.formatting.reports import (
    format_job_error,
    format_job_status,
    format_streaming_urls,
    player_url,
)
from media_hub.core.models.job_models import JobHandle, JobState, WaitResult
from media_hub.core.models.media_models import JobInputAsset, JobInputHttp
from media_hub.core.runtime.ui import (
    ICONS,
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    print_workflow_header,
)
from media_hub.providers.aws.services import presets
from media_hub.providers.aws.services.publishing import CLEAR_KEY, CLEAR_STREAMING_ONLY
from media_hub.security.tokens import generate_content_key, get_token

logger = logging.getLogger(__name__)

DEFAULT_INPUT_BASE_URI = "https://storage.googleapis.com/gtv-videos-bucket/sample/"
DEFAULT_INPUT_FILE = "BigBuckBunny.mp4"

WORKFLOWS = ("encode-custom", "publish-clear", "publish-aes", "encode-local", "live")

Pause = Callable[[str], object]


def unique_suffix() -> str:
    return str(uuid.uuid4())[:13]


def console_pause(message: str) -> None:
    console.input(f"[bold yellow]{message}[/bold yellow] [dim](Enter)[/dim] ")


def wait_for_job(
    services,
    handle: JobHandle,
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
    cancellation: Optional[CancellationToken] = None,
    sleeper=None,
) -> WaitResult:
    """Block until the job is terminal, rendering progress on the console."""
    interval = services.settings.poll_interval if interval is None else interval

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold cyan]{task.description}[/bold cyan]"),
        BarColumn(bar_width=40),
        TaskProgressColumn(),
        TextColumn("[dim]{task.fields[current]}[/dim]"),
        console=console,
    ) as progress:
        task = progress.add_task(f"{ICONS['job']} {handle}", total=100, current="Submitted")

        def _on_progress(event):
            status = event.status
            progress.update(task, completed=status.progress or 0, current=status.state.value)
            for line in format_job_status(status):
                logger.debug(line)

        monitor = RemoteJobMonitor(
            services.jobs.get_job,
            interval=interval,
            sleeper=sleeper,
            on_progress=_on_progress,
        )
        result = monitor.wait_for_completion(handle, cancellation=cancellation, timeout=timeout)

        if result.state is JobState.FINISHED:
            progress.update(task, completed=100, current="Finished")
        else:
            progress.update(task, current=result.state.value if result.state else "Cancelled")

    return result


def report_job_result(result: WaitResult) -> None:
    if result.cancelled:
        print_warning(f"Stopped waiting on job {result.handle}: {result.reason}")
        return
    if result.state is JobState.FINISHED:
        print_success(f"Job {result.handle} finished.")
    elif result.state is JobState.ERROR:
        for line in format_job_error(result.status):
            console.print(f"[red]{line}[/red]")
    else:
        print_warning(f"Job {result.handle} was canceled.")


def _summary(result: WaitResult, **extra) -> dict:
    summary = {
        "status": "success" if result.state is JobState.FINISHED else "error",
        "job": result.handle,
        "state": result.state.value if result.state else None,
        "outcome": result.outcome.value,
        "polls": result.polls,
    }
    if result.status and result.status.failed:
        summary["error"] = result.status.first_error()
    summary.update(extra)
    return summary


def _download_if_finished(services, result, asset_name):
    if result.state is not JobState.FINISHED:
        return []
    print_info(f"{ICONS['download']} Downloading results to {Path(services.settings.output_folder) / asset_name}")
    files = services.assets.download_results(asset_name, services.settings.output_folder)
    print_success(f"Download complete ({len(files)} files).")
    return files


def run_encode_custom(
    services,
    base_uri: str = DEFAULT_INPUT_BASE_URI,
    files=(DEFAULT_INPUT_FILE,),
    timeout: Optional[float] = None,
    cancellation: Optional[CancellationToken] = None,
    sleeper=None,
) -> dict:
    """Encode an HTTPS input with the custom two-layer MP4 transform and download it."""
    print_workflow_header("Encode with a custom transform", services.settings)

    services.jobs.ensure_transform(
        presets.CUSTOM_TRANSFORM_NAME,
        presets.two_layer_mp4_with_thumbnails(),
        description="A simple custom encoding transform with 2 MP4 bitrates",
    )

    suffix = unique_suffix()
    job_name = f"job-{suffix}"
    output_asset_name = f"output-{suffix}"

    job_input = JobInputHttp(base_uri=base_uri, files=tuple(files))
    output_asset = services.assets.create_asset(output_asset_name)
    handle = services.jobs.submit_job(
        presets.CUSTOM_TRANSFORM_NAME, job_name, job_input, output_asset
    )

    result = wait_for_job(services, handle, timeout=timeout, cancellation=cancellation, sleeper=sleeper)
    report_job_result(result)
    downloaded = _download_if_finished(services, result, output_asset_name)
    return _summary(result, output_asset=output_asset_name, downloaded=downloaded)


def run_encode_local(
    services,
    file_path,
    timeout: Optional[float] = None,
    cancellation: Optional[CancellationToken] = None,
    sleeper=None,
) -> dict:
    """Upload a local file into an input asset, encode it and download the outputs."""
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"input file not found: {path}")

    print_workflow_header(f"Encode local file {path.name}", services.settings)

    services.jobs.ensure_transform(
        presets.CUSTOM_TRANSFORM_NAME,
        presets.two_layer_mp4_with_thumbnails(),
        description="A simple custom encoding transform with 2 MP4 bitrates",
    )

    suffix = unique_suffix()
    job_name = f"job-{suffix}"
    input_asset_name = f"input-{suffix}"
    output_asset_name = f"output-{suffix}"

    services.assets.create_asset(input_asset_name)
    blob = services.assets.upload_file(input_asset_name, path)
    print_info(f"Uploaded {blob.name} to asset {input_asset_name}")

    job_input = JobInputAsset(asset_name=input_asset_name, files=(blob.name,))
    output_asset = services.assets.create_asset(output_asset_name)

    correlation_data = {
        "customData1": "some custom data to pass through the job",
        "customId": str(uuid.uuid4()),
    }
    handle = services.jobs.submit_job(
        presets.CUSTOM_TRANSFORM_NAME,
        job_name,
        job_input,
        output_asset,
        assets=services.assets,
        correlation_data=correlation_data,
    )

    result = wait_for_job(services, handle, timeout=timeout, cancellation=cancellation, sleeper=sleeper)
    report_job_result(result)
    downloaded = _download_if_finished(services, result, output_asset_name)
    return _summary(
        result,
        input_asset=input_asset_name,
        output_asset=output_asset_name,
        downloaded=downloaded,
    )


def run_publish_clear(
    services,
    base_uri: str = DEFAULT_INPUT_BASE_URI,
    files=(DEFAULT_INPUT_FILE,),
    pause: Pause = console_pause,
    timeout: Optional[float] = None,
    cancellation: Optional[CancellationToken] = None,
    sleeper=None,
) -> dict:
    """Encode to adaptive HLS and DASH, publish it in the clear, then clean up."""
    print_workflow_header("Encode and publish adaptive streaming", services.settings)

    services.jobs.ensure_transform(
        presets.ADAPTIVE_TRANSFORM_NAME,
        presets.adaptive_streaming(include_dash=True),
        description="Adaptive bitrate HLS and DASH ladder",
    )

    suffix = unique_suffix()
    job_name = f"job-{suffix}"
    output_asset_name = f"output-{suffix}"
    locator_name = f"locator-{suffix}"

    job_input = JobInputHttp(base_uri=base_uri, files=tuple(files), label="input1")
    output_asset = services.assets.create_asset(output_asset_name)
    handle = services.jobs.submit_job(
        presets.ADAPTIVE_TRANSFORM_NAME, job_name, job_input, output_asset
    )

    result = wait_for_job(services, handle, timeout=timeout, cancellation=cancellation, sleeper=sleeper)
    report_job_result(result)

    urls, locator = {}, None
    if result.state is JobState.FINISHED:
        locator = services.publishing.create_streaming_locator(
            locator_name, output_asset_name, streaming_policy=CLEAR_STREAMING_ONLY
        )
        urls = services.publishing.build_streaming_urls(locator_name)
        console.print(f"\n{ICONS['link']} The urls to stream the output from a client:\n")
        for line in format_streaming_urls(urls):
            console.print(line, highlight=False)
        for url in urls.get("Hls", [])[:1]:
            console.print(f"\nPlay it back:\n\t{player_url(url)}\n")

    pause("Try streaming the content now. When finished, press Enter to clean up.")

    console.print("Cleaning up...")
    if locator is not None:
        services.publishing.delete_streaming_locator(locator_name)
    services.assets.delete_asset(output_asset_name)

    return _summary(result, output_asset=output_asset_name, locator=locator_name if locator else None, urls=urls)


def run_publish_aes(
    services,
    base_uri: str = DEFAULT_INPUT_BASE_URI,
    files=(DEFAULT_INPUT_FILE,),
    pause: Pause = console_pause,
    timeout: Optional[float] = None,
    cancellation: Optional[CancellationToken] = None,
    sleeper=None,
) -> dict:
    """Encode to adaptive HLS with AES-128, publish it and print a playback token.

    Everything created here (asset, locator, key, policy) is removed after the
    final pause.
    """
    settings = services.settings
    key_settings = settings.content_key
    if not key_settings.key_delivery_url:
        raise ConfigError("content_key.key_delivery_url is required for AES publishing")

    print_workflow_header("Encode and publish with AES-128 encryption", settings)

    services.publishing.ensure_content_key_policy(key_settings)
    content_key = generate_content_key(policy_name=key_settings.policy_name)
    services.publishing.store_content_key(content_key)

    services.jobs.ensure_transform(
        presets.ADAPTIVE_HLS_TRANSFORM_NAME,
        presets.adaptive_streaming(include_dash=False),
        description="Adaptive bitrate HLS ladder",
    )

    suffix = unique_suffix()
    job_name = f"job-{suffix}"
    output_asset_name = f"output-{suffix}"
    locator_name = f"locator-{suffix}"

    job_input = JobInputHttp(base_uri=base_uri, files=tuple(files), label="input1")
    output_asset = services.assets.create_asset(output_asset_name)
    handle = services.jobs.submit_job(
        presets.ADAPTIVE_HLS_TRANSFORM_NAME,
        job_name,
        job_input,
        output_asset,
        hls_encryption=presets.hls_aes_encryption(content_key, key_settings.key_delivery_url),
    )

    result = wait_for_job(services, handle, timeout=timeout, cancellation=cancellation, sleeper=sleeper)
    report_job_result(result)

    urls, token, locator = {}, "", None
    if result.state is JobState.FINISHED:
        locator = services.publishing.create_streaming_locator(
            locator_name,
            output_asset_name,
            streaming_policy=CLEAR_KEY,
            content_key_policy=key_settings.policy_name,
            content_keys=[content_key],
        )
        key_identifier = services.publishing.list_content_keys(locator_name)[0]
        token = get_token(key_settings, key_identifier)
        urls = services.publishing.build_streaming_urls(locator_name)

        console.print(f"\n{ICONS['link']} The urls to stream the output from a client:\n")
        for line in format_streaming_urls(urls, token=token):
            console.print(line, highlight=False)
        for url in urls.get("Hls", [])[:1]:
            console.print(f"\nPlay it back (send the bearer token to the key server):\n\t{player_url(url)}\n")

    pause("Try streaming the content now. When finished, press Enter to clean up.")

    console.print("Cleaning up...")
    if locator is not None:
        services.publishing.delete_streaming_locator(locator_name)
    services.assets.delete_asset(output_asset_name)
    services.publishing.delete_content_key(content_key.key_id)
    services.publishing.delete_content_key_policy(key_settings.policy_name)

    return _summary(result, output_asset=output_asset_name, locator=locator_name if locator else None, urls=urls, token=token)


def _cleanup_live(services, live_event_name, locator_name, asset_name):
    services.live.delete_live_event(live_event_name)
    services.publishing.delete_streaming_locator(locator_name)
    services.assets.delete_asset(asset_name)


def run_live(services, pause: Pause = console_pause) -> dict:
    """Create a live event archiving into an asset, publish it, then tear it down."""
    print_workflow_header("Live streaming", services.settings)

    suffix = unique_suffix()
    live_event_name = f"liveevent-{suffix}"
    asset_name = f"archive-{suffix}"
    locator_name = f"locator-{suffix}"

    if not services.settings.live_role_arn:
        raise ConfigError("live_role_arn is required to create live events")

    console.print(f"{ICONS['live']} Creating a live event named {live_event_name}")
    asset = services.assets.create_asset(asset_name)
    console.print("Creating the live event, be patient this can take time...")
    try:
        event = services.live.create_live_event(live_event_name, asset, auto_start=True)
    except Exception:
        logger.debug("Live event %s was not created, removing asset %s", live_event_name, asset_name)
        services.assets.delete_asset(asset_name)
        raise

    console.print("\nThe ingest url to configure the on premise encoder with is:")
    for url in event.ingest_urls:
        console.print(f"\t{url}", highlight=False)
    console.print()

    pause(
        "Start the live stream now, sending the input to the ingest url. "
        "Make sure the video is flowing before continuing."
    )

    services.publishing.create_streaming_locator(locator_name, asset_name, streaming_policy=CLEAR_STREAMING_ONLY)
    urls = services.publishing.build_streaming_urls(locator_name)

    if not urls:
        print_warning("No streaming paths were detected. Has the stream been started?")
        console.print("Cleaning up and exiting...")
        _cleanup_live(services, live_event_name, locator_name, asset_name)
        return {
            "status": "error",
            "live_event": live_event_name,
            "error": "no streaming paths",
            "urls": {},
        }

    console.print(f"\n{ICONS['link']} The urls to stream the output from a client:\n")
    for line in format_streaming_urls(urls):
        console.print(line, highlight=False)
    for url in urls.get("Hls", [])[:1]:
        console.print(f"\nOpen the following URL to play back the recording:\n\t{player_url(url)}\n")

    pause("Continue experimenting with the stream. Press Enter to stop the live event.")
    services.live.delete_live_event(live_event_name)
    console.print("The live event is deleted. The archive can still be streamed.")

    pause("Press Enter to finish cleanup.")
    services.publishing.delete_streaming_locator(locator_name)
    services.assets.delete_asset(asset_name)

    return {
        "status": "success",
        "live_event": live_event_name,
        "archive_asset": asset_name,
        "urls": urls,
    }


def run_wait(services, job_id: str, timeout: Optional[float] = None, sleeper=None) -> dict:
    handle = JobHandle(job_id=job_id)
    result = wait_for_job(services, handle, timeout=timeout, sleeper=sleeper)
    report_job_result(result)
    return _summary(result)


def run_cancel(services, job_id: str) -> dict:
    handle = JobHandle(job_id=job_id)
    services.jobs.cancel_job(handle)
    print_success(f"Cancel requested for job {job_id}.")
    return {"status": "success", "job": handle}


def split_input_url(input_url: str):
    """Split an HTTPS file URL into the base URI and file name a job input takes."""
    base, _, name = input_url.rpartition("/")
    if not base or not name:
        raise ValueError(f"input url must point at a file: {input_url}")
    return base + "/", (name,)


def run_workflow(
    name: str,
    services,
    file_path=None,
    input_url: Optional[str] = None,
    pause: Pause = console_pause,
    timeout=None,
) -> dict:
    base_uri, files = DEFAULT_INPUT_BASE_URI, (DEFAULT_INPUT_FILE,)
    if input_url:
        base_uri, files = split_input_url(input_url)

    if name == "encode-custom":
        return run_encode_custom(services, base_uri=base_uri, files=files, timeout=timeout)
    if name == "encode-local":
        if not file_path:
            raise ValueError("encode-local needs --file")
        return run_encode_local(services, file_path, timeout=timeout)
    if name == "publish-clear":
        return run_publish_clear(services, base_uri=base_uri, files=files, pause=pause, timeout=timeout)
    if name == "publish-aes":
        return run_publish_aes(services, base_uri=base_uri, files=files, pause=pause, timeout=timeout)
    if name == "live":
        return run_live(services, pause=pause)
    print_error(f"Unknown workflow '{name}'")
    raise ValueError(f"unknown workflow: {name}")
