from __future__ import annotations

from dataclasses import asdict
from pathlib import Path

import typer

from .. import console
from ..catalog import SETUP_PACKAGES
from ..config import load_config
from ..errors import ValidationError
from ..runner import CommandRunner, list_scripts, run_script, validate_script
from ..system.detector import Detector, format_bytes, recommended_worker_connections

scripts_app = typer.Typer(help="Setup scripts from the configured scripts directory.")


def info(
        json_output: bool = typer.Option(False, "--json", help="Output JSON only."),
) -> None:
    """Show system information."""
    detector = Detector(CommandRunner())
    sysinfo = detector.system_info()
    if json_output:
        console.print_json({**asdict(sysinfo), "primary_ip": detector.primary_ip()})
        return
    table = console.table("System Information", "Property", "Value")
    table.add_row("Hostname", sysinfo.hostname)
    table.add_row("IP", detector.primary_ip())
    table.add_row("OS", f"{sysinfo.distribution} {sysinfo.version}".strip())
    table.add_row("Kernel", sysinfo.kernel or "-")
    table.add_row("Arch", sysinfo.arch)
    table.add_row("CPU", f"{sysinfo.cpu_count} cores")
    table.add_row("RAM", format_bytes(sysinfo.total_ram))
    table.add_row("Disk", format_bytes(sysinfo.total_disk))
    table.add_row("Root", "yes" if sysinfo.is_root else "no")
    table.add_row("Nginx worker_connections", str(recommended_worker_connections(sysinfo.total_ram)))
    console.show(table)


def status() -> None:
    """Show the status of managed services."""
    detector = Detector(CommandRunner())
    table = console.table("Services", "id", "name", "service", "status")
    for pkg in SETUP_PACKAGES:
        state = detector.service_status(pkg.service)
        table.add_row(pkg.id, pkg.name, pkg.service, console.status_label(state))
    console.show(table)


def _scripts_dir(override: str | None) -> Path:
    directory = override or load_config().scripts_dir
    if not directory:
        console.err("No scripts directory configured. Run `ravact settings set --scripts-dir ...` first.")
        raise typer.Exit(code=2)
    return Path(directory).expanduser()


@scripts_app.command("list")
def list_cmd(
        scripts_dir: str | None = typer.Option(None, "--dir", help="Scripts directory (defaults to settings)."),
) -> None:
    directory = _scripts_dir(scripts_dir)
    scripts = list_scripts(directory)
    if not scripts:
        console.warn(f"No scripts found in {directory}")
        return
    for path in scripts:
        console.line(path.stem)


@scripts_app.command("run")
def run_cmd(
        name: str = typer.Argument(..., help="Script name without .sh"),
        scripts_dir: str | None = typer.Option(None, "--dir", help="Scripts directory (defaults to settings)."),
        env: list[str] = typer.Option([], "--env", "-e", help="Extra environment as KEY=VALUE."),
) -> None:
    directory = _scripts_dir(scripts_dir)
    path = directory / (name if name.endswith(".sh") else f"{name}.sh")
    overlay: dict[str, str] = {}
    for item in env:
        key, sep, value = item.partition("=")
        if not sep or not key:
            console.err(f"Invalid environment entry: {item}")
            raise typer.Exit(code=2)
        overlay[key] = value
    if path.is_file():
        try:
            validate_script(path)
        except ValidationError as exc:
            console.err(exc.message)
            raise typer.Exit(code=2)
    console.info(f"Running {path}")
    result = run_script(path, env=overlay, on_line=console.line)
    if not result.success:
        console.err(result.error)
        raise typer.Exit(code=result.exit_code if result.exit_code > 0 else 1)
    console.ok(f"{path.name} finished in {result.duration:.1f}s")
