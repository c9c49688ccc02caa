"""Interactive menu for Media Hub."""

import questionary
from questionary import Style
from rich import box
from rich.table import Table

from media_hub.core.errors import MediaHubError, RemoteQueryFailed
from media_hub.core.runtime.ui import (
    ICONS,
    VERSION,
    console,
    print_error,
    print_info,
    print_warning,
)
from media_hub.core.runtime.workflows import run_cancel, run_wait, run_workflow
from media_hub.providers.aws.auth import describe_settings_identity

CUSTOM_STYLE = Style(
    [
        ("qmark", "fg:#00b894 bold"),
        ("question", "bold"),
        ("answer", "fg:#00cec9 bold"),
        ("pointer", "fg:#00e0a3 bold"),
        ("highlighted", "fg:#00e0a3 bold"),
        ("selected", "fg:#0a0a0a bg:#00e0a3"),
        ("separator", "fg:#636e72"),
        ("instruction", "fg:#b2bec3"),
    ]
)

MAIN_CHOICES = [
    questionary.Choice(f"{ICONS['job']} Encode with a custom transform", value="encode-custom"),
    questionary.Choice(f"{ICONS['job']} Encode a local file", value="encode-local"),
    questionary.Choice(f"{ICONS['link']} Encode and publish HLS and DASH", value="publish-clear"),
    questionary.Choice(f"{ICONS['key']} Encode and publish with AES-128", value="publish-aes"),
    questionary.Choice(f"{ICONS['live']} Live streaming", value="live"),
    questionary.Choice(f"{ICONS['info']} Wait on an existing job", value="wait"),
    questionary.Choice(f"{ICONS['error']} Cancel a job", value="cancel"),
    questionary.Choice(f"{ICONS['settings']} Show settings", value="settings"),
    questionary.Choice(f"{ICONS['exit']} Exit", value="exit"),
]


def _select_prompt(prompt, choices):
    try:
        ans = questionary.select(
            prompt,
            choices=choices,
            style=CUSTOM_STYLE,
            instruction="(Use arrow keys, Enter to select)",
        ).ask()
    except KeyboardInterrupt:
        return None
    return ans or None


def _text_prompt(prompt, default=""):
    try:
        ans = questionary.text(prompt, default=default, style=CUSTOM_STYLE).ask()
    except KeyboardInterrupt:
        return None
    return (ans or "").strip() or None


def questionary_pause(message):
    """Pause used by workflows that wait on the operator."""
    console.print()
    questionary.press_any_key_to_continue(message=message, style=CUSTOM_STYLE).ask()


def _render_settings(settings):
    identity = describe_settings_identity(settings)
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Key", style="bold cyan")
    table.add_column("Value")
    table.add_row("Profile", identity["profile_name"])
    table.add_row("Region", identity["region"])
    table.add_row("Job role", identity["service_role_arn"] or "-")
    table.add_row("Bucket", settings.bucket or "-")
    table.add_row("Streaming host", settings.streaming_endpoint if settings.bucket else "-")
    table.add_row("Poll interval", f"{settings.poll_interval:g}s")
    table.add_row("Key delivery URL", settings.content_key.key_delivery_url or "-")
    table.add_row("Live role", identity["live_role_arn"] or "-")
    console.print(table)


def _run_choice(choice, services):
    if choice == "settings":
        _render_settings(services.settings)
        return
    if choice in ("wait", "cancel"):
        job_id = _text_prompt("Job id:")
        if not job_id:
            return
        if choice == "wait":
            run_wait(services, job_id)
        else:
            run_cancel(services, job_id)
        return

    file_path = None
    if choice == "encode-local":
        file_path = _text_prompt("Path to the media file:")
        if not file_path:
            print_warning("No file given.")
            return
    run_workflow(choice, services, file_path=file_path, pause=questionary_pause)


def run_interactive(services_factory):
    """Main menu loop; services are built once, on the first action that needs them."""
    console.print(f"\n[bold cyan]Media Hub[/bold cyan] [dim]v{VERSION}[/dim]\n")
    services = None

    while True:
        choice = _select_prompt(f"{ICONS['star']} What do you want to do?", MAIN_CHOICES)
        if choice is None or choice == "exit":
            console.print(f"\n[bold green]{ICONS['exit']} Bye![/bold green]\n")
            return

        try:
            if services is None:
                services = services_factory()
            _run_choice(choice, services)
        except RemoteQueryFailed as exc:
            print_error(f"API call failed: {exc}")
            if exc.is_credential_error:
                print_info("Refresh your credentials (aws sso login) and try again.")
        except (MediaHubError, FileNotFoundError, ValueError) as exc:
            print_error(str(exc))
        except KeyboardInterrupt:
            print_warning("Interrupted, back to the main menu.")
        console.print()
