"""Plain-text rendering of job status, job errors and streaming URLs."""

from __future__ import annotations

from urllib.parse import quote

PLAYER_URL = "https://hls-js.netlify.app/demo/?src={url}"


def format_job_status(status) -> list[str]:
    lines = [f"Job is {status.state.value}."]
    for index, output in enumerate(status.outputs):
        line = f"\tJobOutput[{index}] {output.label} is {output.state.value}."
        if output.progress is not None and output.state.value == "Processing":
            line += f"  Progress: {output.progress}"
        lines.append(line)
    return lines


def format_job_error(status) -> list[str]:
    error = status.first_error()
    if error is None:
        return ["ERROR: Job finished with an unknown error."]
    lines = [f"ERROR: Job finished with error {error.code}: {error.message}"]
    for detail in error.details:
        lines.append(f"ERROR:     detail: {detail}")
    return lines


def format_streaming_urls(urls: dict, token: str = "") -> list[str]:
    lines = []
    for protocol, protocol_urls in urls.items():
        lines.append(f"{protocol}:")
        for url in protocol_urls:
            lines.append(f"\t{url}")
    if token:
        lines.append("")
        lines.append(f"Authorization: Bearer {token}")
    return lines


def player_url(stream_url: str) -> str:
    return PLAYER_URL.format(url=quote(stream_url, safe=""))
