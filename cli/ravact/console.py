from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import ServiceStatus

console = Console()

STATUS_STYLES = {
    ServiceStatus.RUNNING: "green",
    ServiceStatus.STOPPED: "yellow",
    ServiceStatus.FAILED: "red",
    ServiceStatus.INSTALLED: "cyan",
    ServiceStatus.NOT_INSTALLED: "dim",
}


def _tagged(tag: str, msg: str) -> None:
    console.print(f"{tag} {escape(msg)}")


def info(msg: str) -> None:
    _tagged("[bold cyan]•[/]", msg)


def ok(msg: str) -> None:
    _tagged("[bold green]OK[/]", msg)


def warn(msg: str) -> None:
    _tagged("[bold yellow]WARN[/]", msg)


def err(msg: str) -> None:
    _tagged("[bold red]ERR[/]", msg)


def line(text: str) -> None:
    """Print text as-is: no markup, no highlighting (paths, command output)."""
    console.print(text, markup=False, highlight=False)


def print_json(data) -> None:
    console.print_json(data=data)


def table(title: str, *columns: str) -> Table:
    t = Table(title=title)
    for idx, name in enumerate(columns):
        t.add_column(name, style="bold" if idx == 0 else None)
    return t


def status_label(state: ServiceStatus) -> str:
    style = STATUS_STYLES.get(state)
    return f"[{style}]{state.label}[/]" if style else state.label


def show(renderable) -> None:
    console.print(renderable)
