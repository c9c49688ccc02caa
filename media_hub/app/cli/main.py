#!/usr/bin/env python3
"""
media-hub CLI
Encoding transforms, jobs, publishing and live events on AWS media services
"""

import argparse
import logging
import sys

from media_hub.configs.loader import (
    CONFIG_FILE,
    create_sample_config,
    get_config,
    get_sample_config_content,
)
from media_hub.core.errors import ConfigError, MediaHubError, RemoteQueryFailed, ResourceNotFound
from media_hub.core.runtime.ui import (
    ICONS,
    VERSION,
    console,
    print_error,
    print_info,
    print_success,
)
from media_hub.core.runtime.workflows import WORKFLOWS, run_cancel, run_wait, run_workflow

logger = logging.getLogger(__name__)


def show_version():
    """Display version information."""
    console.print(f"""
[bold cyan]Media Hub[/bold cyan] v{VERSION}

[dim]Transforms, jobs, streaming locators and live events on AWS media services[/dim]
""")


def init_config():
    """Initialize sample configuration file."""
    config = get_config()

    if config.config_exists():
        print_error(f"Config file already exists at {CONFIG_FILE}")
        console.print("[dim]Delete it first if you want to recreate.[/dim]")
        return False

    path = create_sample_config()
    print_success(f"Config file created at {path}")
    console.print()
    console.print("[dim]Sample config content:[/dim]")
    console.print(f"[cyan]{get_sample_config_content()}[/cyan]")
    console.print()
    print_info("Edit this file with your bucket, roles and key delivery URL.")
    return True


def build_parser():
    parser = argparse.ArgumentParser(
        prog="media-hub",
        description="Media Hub - drive AWS media services from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
{ICONS["star"]} Examples:

  # Interactive mode (default)
  media-hub

  # Encode a sample HTTPS input with the custom transform
  media-hub --workflow encode-custom

  # Encode a local file. encode-local replaces the AnalyzeLocalFile
  # video analysis sample, which has no MediaConvert counterpart
  media-hub --workflow encode-local --file ./clip.mp4

  # Encode to adaptive HLS and DASH and stream it in the clear
  media-hub --workflow publish-clear

  # Wait on an existing job, giving up after 10 minutes
  media-hub --wait 1700000000000-abcdef --timeout 600

{ICONS["settings"]} Config file: {CONFIG_FILE}
        """,
    )

    parser.add_argument("--version", "-V", action="store_true", help="Show version information")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Create sample config file at ~/.media-hub/config.yaml",
    )
    parser.add_argument(
        "--workflow",
        choices=WORKFLOWS,
        help="Run a workflow end to end (encode-local replaces the AnalyzeLocalFile analysis sample)",
    )
    parser.add_argument("--file", help="Local media file for encode-local")
    parser.add_argument("--input-url", help="HTTPS media file for encode-custom, publish-clear and publish-aes")
    parser.add_argument("--wait", metavar="JOB_ID", help="Wait for an existing job to finish")
    parser.add_argument("--cancel", metavar="JOB_ID", help="Cancel an existing job")
    parser.add_argument("--interactive", action="store_true", help="Run interactive mode with menu")

    parser.add_argument("--profile", help="AWS profile name")
    parser.add_argument("--region", default=None, help="AWS region override")
    parser.add_argument("--bucket", default=None, help="Media bucket override")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between job status polls (default: poll_interval from config)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop waiting on a job after this many seconds",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _configure_logging(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run_interactive(services_factory):
    try:
        from media_hub.app.tui.interactive import run_interactive
    except ModuleNotFoundError as exc:
        if "questionary" not in (exc.name or str(exc)):
            raise
        print_error("Interactive mode needs questionary.")
        print_info("Install TUI dependencies: pip install questionary (or run with --workflow)")
        return 2
    run_interactive(services_factory)
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.version:
        show_version()
        sys.exit(0)

    if args.init_config:
        success = init_config()
        sys.exit(0 if success else 1)

    def services_factory():
        from media_hub.core.runtime.services import build_services

        settings = get_config().settings(
            profile=args.profile,
            region=args.region,
            bucket=args.bucket,
            poll_interval=args.interval,
        )
        return build_services(settings)

    if args.interactive or not any([args.workflow, args.wait, args.cancel]):
        sys.exit(_run_interactive(services_factory))

    if args.workflow == "encode-local" and not args.file:
        print_error("--workflow encode-local requires --file")
        sys.exit(1)

    try:
        services = services_factory()
        if args.cancel:
            result = run_cancel(services, args.cancel)
        elif args.wait:
            result = run_wait(services, args.wait, timeout=args.timeout)
        else:
            result = run_workflow(
                args.workflow,
                services,
                file_path=args.file,
                input_url=args.input_url,
                timeout=args.timeout,
            )
    except RemoteQueryFailed as exc:
        print_error(f"API call failed: {exc}")
        sys.exit(1)
    except (ConfigError, ResourceNotFound, FileNotFoundError, ValueError) as exc:
        print_error(str(exc))
        sys.exit(1)
    except MediaHubError as exc:
        logger.debug("media-hub failure", exc_info=True)
        print_error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print(f"\n[bold yellow]{ICONS['warning']} Interrupted[/bold yellow]")
        sys.exit(130)

    sys.exit(0 if result.get("status") == "success" else 1)


if __name__ == "__main__":
    main()
