from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

import tomli_w
from platformdirs import user_config_dir, user_log_dir

APP_NAME = "ravact"
CONFIG_FILENAME = "config.toml"
LOG_FILENAME = "ravact.log"
THEMES = ("dark", "light")
EDITORS = ("nano", "vi")
DEFAULT_TIMEOUT = 600

# Overridable locations of the managed config files.
PATH_KEYS = (
    "nginx_dir",
    "php_root",
    "postgresql_dir",
    "redis_conf",
    "mysql_conf",
    "supervisor_conf",
    "supervisor_programs",
    "systemd_dir",
    "frankenphp_dir",
    "sudoers_dir",
)


@dataclass
class AppConfig:
    editor: str = "nano"
    project_path: str = ""
    theme: str = "dark"
    command_timeout: int = DEFAULT_TIMEOUT
    scripts_dir: str = ""
    paths: dict[str, str] = field(default_factory=dict)

    def working_dir(self) -> str:
        return self.project_path or os.getcwd()


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def log_path() -> str:
    return f"{user_log_dir(APP_NAME)}/{LOG_FILENAME}"


def default_config() -> AppConfig:
    return AppConfig()


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def to_toml(cfg: AppConfig) -> dict[str, Any]:
    return {
        "editor": cfg.editor,
        "project_path": cfg.project_path,
        "theme": cfg.theme,
        "command_timeout": cfg.command_timeout,
        "scripts_dir": cfg.scripts_dir,
        "paths": dict(cfg.paths),
    }


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    editor = str(data.get("editor") or "").strip()
    if editor:
        cfg.editor = editor
    cfg.project_path = str(data.get("project_path") or "").strip()
    theme = str(data.get("theme") or "").strip().lower()
    if theme in THEMES:
        cfg.theme = theme
    timeout = data.get("command_timeout")
    if isinstance(timeout, int) and not isinstance(timeout, bool) and timeout > 0:
        cfg.command_timeout = timeout
    cfg.scripts_dir = str(data.get("scripts_dir") or "").strip()
    paths_raw = data.get("paths") or {}
    if isinstance(paths_raw, dict):
        for key, value in paths_raw.items():
            if key in PATH_KEYS and isinstance(value, str) and value.strip():
                cfg.paths[key] = value.strip()
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return from_toml(data)
    except FileNotFoundError:
        return default_config()


def save_config(cfg: AppConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
