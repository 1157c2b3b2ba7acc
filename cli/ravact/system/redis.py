from __future__ import annotations

import logging
from pathlib import Path

from ..errors import CommandError, NotInstalledError
from ..parsers import RedisConfig, parse_redis_config
from ..runner import CommandRunner
from .files import first_existing, parse_port, read_lines, read_text, write_lines

log = logging.getLogger(__name__)

CONFIG_PATHS = ("/etc/redis/redis.conf", "/etc/redis.conf", "/usr/local/etc/redis.conf")
UNITS = ("redis-server", "redis")


class RedisManager:
    def __init__(self, runner: CommandRunner | None = None, config_paths=CONFIG_PATHS):
        self.runner = runner or CommandRunner()
        self.config_paths = tuple(config_paths)

    def config_path(self) -> Path:
        path = first_existing(self.config_paths)
        if path is None:
            raise NotInstalledError("Redis config file not found")
        return path

    def get_config(self) -> RedisConfig:
        path = self.config_path()
        cfg = parse_redis_config(read_text(path))
        cfg.config_path = str(path)
        return cfg

    def set_password(self, password: str) -> None:
        path = self.config_path()
        lines = read_lines(path)
        directive = f"requirepass {password}"
        idx = _find_directive(lines, "requirepass")
        if idx is not None:
            if password:
                lines[idx] = directive
            else:
                del lines[idx]
        elif password:
            port_idx = _find_directive(lines, "port")
            if port_idx is not None:
                lines.insert(port_idx + 1, directive)
            else:
                lines.append(directive)
        write_lines(path, lines)
        log.info("redis password %s in %s", "updated" if password else "cleared", path)

    def set_port(self, port: str | int) -> None:
        value = parse_port(port)
        path = self.config_path()
        lines = read_lines(path)
        idx = _find_directive(lines, "port")
        if idx is not None:
            lines[idx] = f"port {value}"
        else:
            lines.insert(0, f"port {value}")
        write_lines(path, lines)
        log.info("redis port set to %s in %s", value, path)

    def test_connection(self) -> None:
        cfg = self.get_config()
        args = ["redis-cli", "-p", cfg.port]
        if cfg.password:
            args += ["--no-auth-warning", "-a", cfg.password]
        res = self.runner.run(args + ["ping"])
        reply = (res.stdout or "").strip()
        if res.returncode != 0 or reply != "PONG":
            detail = (res.stderr or reply or f"exit status {res.returncode}").strip()
            raise CommandError(f"Redis connection failed: {detail}", output=reply, exit_code=res.returncode)

    def restart(self) -> None:
        last = ""
        for unit in UNITS:
            res = self.runner.run(["systemctl", "restart", unit])
            if res.returncode == 0:
                return
            last = (res.stderr or res.stdout or "").strip()
        raise CommandError(f"failed to restart Redis: {last}")

    def status(self) -> str:
        for unit in UNITS:
            state = self.runner.output(["systemctl", "is-active", unit])
            if state == "active":
                return state
        return state or "unknown"


def _find_directive(lines: list[str], name: str) -> int | None:
    for idx, line in enumerate(lines):
        parts = line.strip().split()
        if parts and parts[0].lower() == name:
            return idx
    return None
