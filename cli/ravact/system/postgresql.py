from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..parsers import PostgreSQLConfig, parse_postgresql_config
from ..runner import CommandRunner
from .files import backup, parse_port, read_lines, read_text, write_lines

log = logging.getLogger(__name__)

BASE_DIR = "/etc/postgresql"
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_BUFFERS_RE = re.compile(r"^\d+(kB|MB|GB|TB)?$")


def _psql_quote(value: str) -> str:
    return value.replace("'", "''")


def _version_key(path: Path) -> tuple[int, ...]:
    parts = path.parent.parent.name.split(".")
    return tuple(int(p) if p.isdigit() else 0 for p in parts)


def _validate_name(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValidationError("", f"{label} cannot be empty")
    if not _NAME_RE.match(value):
        raise ValidationError("", f"invalid {label}: {value}")
    return value


class PostgreSQLManager:
    service = "postgresql"

    def __init__(self, runner: CommandRunner | None = None, base_dir: str = BASE_DIR):
        self.runner = runner or CommandRunner()
        self.base_dir = Path(base_dir)

    def config_path(self) -> Path:
        candidates = sorted(self.base_dir.glob("*/main/postgresql.conf"), key=_version_key, reverse=True)
        if not candidates:
            raise NotInstalledError("PostgreSQL config file not found")
        return candidates[0]

    def get_config(self) -> PostgreSQLConfig:
        path = self.config_path()
        cfg = parse_postgresql_config(read_text(path))
        cfg.config_path = str(path)
        cfg.hba_path = str(path.with_name("pg_hba.conf"))
        cfg.version = path.parent.parent.name
        return cfg

    def _update_value(self, key: str, value: str) -> None:
        path = self.config_path()
        backup(path)
        lines = read_lines(path)
        active = re.compile(rf"^\s*{re.escape(key)}\s*=")
        commented = re.compile(rf"^\s*#\s*{re.escape(key)}\s*=")
        idx = next((i for i, line in enumerate(lines) if active.match(line)), None)
        if idx is None:
            idx = next((i for i, line in enumerate(lines) if commented.match(line)), None)
        if idx is None:
            lines.insert(0, f"{key} = {value}")
        else:
            lines[idx] = f"{key} = {value}"
        write_lines(path, lines)
        log.info("postgresql %s set to %s in %s", key, value, path)

    def change_port(self, port: str | int) -> None:
        self._update_value("port", str(parse_port(port, low=1024)))

    def update_max_connections(self, value: str | int) -> None:
        try:
            count = int(str(value).strip())
        except ValueError:
            raise ValidationError("", "max connections must be a number") from None
        if count < 10 or count > 10000:
            raise ValidationError("", "max connections must be between 10 and 10000")
        self._update_value("max_connections", str(count))

    def update_shared_buffers(self, value: str) -> None:
        value = value.strip()
        if not _BUFFERS_RE.match(value):
            raise ValidationError("", "shared buffers must look like 128MB or 1GB")
        self._update_value("shared_buffers", value)

    def _psql(self, sql: str, *, message: str, tuples_only: bool = False) -> str:
        args = ["sudo", "-u", "postgres", "psql"]
        if tuples_only:
            args.append("-t")
        return self.runner.check(args + ["-c", sql], message=message)

    def change_password(self, password: str) -> None:
        if not password:
            raise ValidationError("", "password cannot be empty")
        self._psql(
            f"ALTER USER postgres WITH PASSWORD '{_psql_quote(password)}';",
            message="failed to change postgres password",
        )

    def restart(self) -> None:
        self.runner.check(["systemctl", "restart", self.service], message="failed to restart PostgreSQL")

    def status(self) -> str:
        res = self.runner.run(["systemctl", "status", self.service, "--no-pager"])
        return (res.stdout or res.stderr or "").rstrip()

    def create_database(self, name: str, owner: str = "", password: str = "") -> None:
        name = _validate_name(name, "database name")
        if owner:
            owner = _validate_name(owner, "username")
            if not password:
                raise ValidationError("", "password cannot be empty")
            try:
                self._psql(
                    f"CREATE USER {owner} WITH PASSWORD '{_psql_quote(password)}';",
                    message="failed to create user",
                )
            except CommandError as exc:
                if "already exists" not in str(exc):
                    raise
        sql = f"CREATE DATABASE {name}" + (f" OWNER {owner}" if owner else "") + ";"
        try:
            self._psql(sql, message="failed to create database")
        except CommandError as exc:
            if "already exists" not in str(exc):
                raise

    def list_databases(self) -> list[str]:
        out = self._psql(
            "SELECT datname FROM pg_database WHERE datistemplate = false;",
            message="failed to list databases",
            tuples_only=True,
        )
        names = [line.strip() for line in out.splitlines() if line.strip()]
        return [n for n in names if n != "postgres"]

    def export_command(self, name: str, target: str) -> str:
        name = _validate_name(name, "database name")
        return f"sudo -u postgres pg_dump {shlex.quote(name)} > {shlex.quote(target)}"
