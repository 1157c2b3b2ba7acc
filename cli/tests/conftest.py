from __future__ import annotations

import subprocess

import pytest

from ravact import config
from ravact.config import AppConfig
from ravact.context import ScreenContext, build_managers
from ravact.runner import CommandRunner
from ravact.theme import get_theme


class FakeRunner(CommandRunner):
    """Records argv lists and answers with scripted results.

    Responses are matched by argv prefix; the most recently registered match
    wins. Unmatched commands succeed with empty output.
    """

    def __init__(self, binaries=()):
        super().__init__(timeout=None)
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self.binaries = set(binaries)
        self._responses: list[tuple[tuple[str, ...], int, str, str]] = []

    def on(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self._responses.append((prefix, returncode, stdout, stderr))

    def run(self, args, *, input=None, cwd=None):
        args = list(args)
        self.calls.append(args)
        self.inputs.append(input)
        for prefix, code, out, err in reversed(self._responses):
            if tuple(args[:len(prefix)]) == prefix:
                return subprocess.CompletedProcess(args, code, out, err)
        return subprocess.CompletedProcess(args, 0, "", "")

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.binaries else None

    def ran(self, *prefix: str) -> bool:
        return any(tuple(call[:len(prefix)]) == prefix for call in self.calls)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    home = tmp_path / "config-home"

    def _config_dir(_: str) -> str:
        return str(home)

    monkeypatch.setattr(config, "user_config_dir", _config_dir)
    return home


@pytest.fixture
def etc(tmp_path):
    """Scratch /etc layout used as the managed config locations."""
    root = tmp_path / "etc"
    root.mkdir()
    return root


@pytest.fixture
def ctx(runner, etc, tmp_path, config_home) -> ScreenContext:
    paths = {
        "nginx_dir": str(etc / "nginx"),
        "php_root": str(etc / "php"),
        "postgresql_dir": str(etc / "postgresql"),
        "redis_conf": str(etc / "redis" / "redis.conf"),
        "mysql_conf": str(etc / "mysql" / "my.cnf"),
        "supervisor_conf": str(etc / "supervisor" / "supervisord.conf"),
        "supervisor_programs": str(etc / "supervisor" / "conf.d"),
        "systemd_dir": str(etc / "systemd"),
        "frankenphp_dir": str(etc / "frankenphp"),
        "sudoers_dir": str(etc / "sudoers.d"),
    }
    project = tmp_path / "project"
    project.mkdir()
    cfg = AppConfig(project_path=str(project), paths=paths)
    copied: list[str] = []

    def _clipboard(text: str) -> str:
        copied.append(text)
        return "fake"

    context = ScreenContext(
        theme=get_theme("dark"),
        config=cfg,
        runner=runner,
        managers=build_managers(runner, paths),
        clipboard=_clipboard,
    )
    context.copied = copied
    return context
