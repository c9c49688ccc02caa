"""Console script entrypoint."""

from media_hub.app.cli.main import main


def run_cli():
    return main()


__all__ = ["main", "run_cli"]
