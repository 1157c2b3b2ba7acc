from __future__ import annotations

import typer

from .commands import settings_cmd, system_cmd
from .config import load_config, log_path
from .logging_ import setup_logging
from .version import app_version


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"Ravact version {app_version()}")
        raise typer.Exit()


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="ravact",
        help="Linux server administration for web stacks.",
        no_args_is_help=False,
    )

    app.add_typer(settings_cmd.app, name="settings")
    app.add_typer(system_cmd.scripts_app, name="script")
    app.command("info")(system_cmd.info)
    app.command("status")(system_cmd.status)

    @app.callback(invoke_without_command=True)
    def _main(
            ctx: typer.Context,
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
            version: bool = typer.Option(
                False, "-V", "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
            ),
    ):
        if ctx.invoked_subcommand is not None:
            setup_logging(verbose)
            return
        setup_logging(verbose, log_file=log_path())
        from .context import build_context
        from .tui import run_tui

        run_tui(build_context(load_config()))
        raise typer.Exit(code=0)

    return app


app = _build_app()
