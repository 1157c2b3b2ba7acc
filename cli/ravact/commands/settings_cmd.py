from __future__ import annotations

import os

import typer

from .. import console
from ..config import EDITORS, PATH_KEYS, THEMES, config_path, load_config, save_config

app = typer.Typer(help="Manage local preferences (~/.config/ravact/config.toml).")

KEYS = ("editor", "project_path", "theme", "command_timeout", "scripts_dir")


@app.command("show")
def show_settings():
    cfg = load_config()
    console.line(f"config={config_path()}")
    console.line(
        f"editor={cfg.editor} theme={cfg.theme} command_timeout={cfg.command_timeout} "
        f"project_path={cfg.project_path or '(current directory)'} scripts_dir={cfg.scripts_dir or '(none)'}"
    )
    for key in PATH_KEYS:
        if key in cfg.paths:
            console.line(f"paths.{key}={cfg.paths[key]}")


@app.command("get")
def get_setting(
        key: str = typer.Argument(..., help="Setting key (editor, project_path, theme, command_timeout, "
                                            "scripts_dir, paths.<name>)."),
):
    cfg = load_config()
    k = key.strip().lower()
    if k in KEYS:
        console.line(str(getattr(cfg, k)))
        return
    if k.startswith("paths.") and k[6:] in PATH_KEYS:
        console.line(cfg.paths.get(k[6:], ""))
        return
    console.err(f"Unknown setting: {key}")
    raise typer.Exit(code=2)


@app.command("set")
def set_setting(
        editor: str | None = typer.Option(None, "--editor", help=f"Editor for config files ({', '.join(EDITORS)})."),
        theme: str | None = typer.Option(None, "--theme", help=f"Colour theme ({', '.join(THEMES)})."),
        project_path: str | None = typer.Option(None, "--project-path", help="Working directory for project "
                                                                              "commands (empty for current)."),
        command_timeout: int | None = typer.Option(None, "--command-timeout", min=1, help="Command timeout in "
                                                                                          "seconds."),
        scripts_dir: str | None = typer.Option(None, "--scripts-dir", help="Directory with setup scripts."),
        path: list[str] = typer.Option([], "--path", help="Config location override as name=value, e.g. "
                                                          "nginx_dir=/etc/nginx."),
):
    cfg = load_config()
    if editor is not None:
        cfg.editor = editor.strip() or cfg.editor
    if theme is not None:
        t = theme.strip().lower()
        if t not in THEMES:
            console.err(f"Unknown theme: {theme} (choose {', '.join(THEMES)})")
            raise typer.Exit(code=2)
        cfg.theme = t
    if project_path is not None:
        p = os.path.expanduser(project_path.strip())
        if p and not os.path.isdir(p):
            console.err(f"Directory not found: {p}")
            raise typer.Exit(code=2)
        cfg.project_path = os.path.abspath(p) if p else ""
    if command_timeout is not None:
        cfg.command_timeout = command_timeout
    if scripts_dir is not None:
        cfg.scripts_dir = os.path.expanduser(scripts_dir.strip())
    for item in path:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or name not in PATH_KEYS:
            console.err(f"Invalid path override: {item} (names: {', '.join(PATH_KEYS)})")
            raise typer.Exit(code=2)
        if value.strip():
            cfg.paths[name] = value.strip()
        else:
            cfg.paths.pop(name, None)
    saved = save_config(cfg)
    console.ok(f"Settings updated: {saved}")
