"""Console helpers shared by the CLI, workflows and interactive mode."""

from rich.console import Console
from rich.panel import Panel

VERSION = "1.0.0"

ICONS = {
    "check": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "star": "⭐",
    "job": "🎬",
    "live": "📡",
    "key": "🔑",
    "download": "📥",
    "link": "🔗",
    "settings": "⚙️",
    "exit": "👋",
}

console = Console()


def print_success(message):
    console.print(f"[bold green]{ICONS['check']} {message}[/bold green]")


def print_info(message):
    console.print(f"[cyan]{ICONS['info']} {message}[/cyan]")


def print_warning(message):
    console.print(f"[bold yellow]{ICONS['warning']} {message}[/bold yellow]")


def print_error(message):
    console.print(f"[bold red]{ICONS['error']} ERROR[/bold red]: {message}")


def print_workflow_header(title, settings):
    body = (
        f"[bold]{title}[/bold]\n"
        f"[dim]Profile: {settings.profile or 'default'} | Region: {settings.region} | "
        f"Bucket: {settings.bucket or '-'}[/dim]"
    )
    console.print(Panel(body, border_style="cyan", expand=False))
