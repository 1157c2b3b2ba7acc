from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..parsers import MySQLConfig, parse_mysql_config
from ..runner import CommandRunner
from .files import backup, first_existing, parse_port, read_lines, read_text, restore, write_lines

log = logging.getLogger(__name__)

CONFIG_PATHS = (
    "/etc/mysql/mysql.conf.d/mysqld.cnf",
    "/etc/mysql/my.cnf",
    "/etc/my.cnf",
    "/usr/etc/my.cnf",
)
DEBIAN_CNF = "/etc/mysql/debian.cnf"
SYSTEM_DATABASES = {"information_schema", "mysql", "performance_schema", "sys"}
_NAME_RE = re.compile(r"^[A-Za-z0-9_]{1,64}$")


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def validate_identifier(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValidationError("", f"{label} cannot be empty")
    if not _NAME_RE.match(value):
        raise ValidationError("", f"{label} may only contain letters, digits and underscores")
    return value


class MySQLManager:
    service = "mysql"

    def __init__(self, runner: CommandRunner | None = None, config_paths=CONFIG_PATHS, debian_cnf: str = DEBIAN_CNF):
        self.runner = runner or CommandRunner()
        self.config_paths = tuple(config_paths)
        self.debian_cnf = Path(debian_cnf)

    def config_path(self) -> Path:
        path = first_existing(self.config_paths)
        if path is None:
            raise NotInstalledError("MySQL config file not found")
        return path

    def get_config(self) -> MySQLConfig:
        path = self.config_path()
        cfg = parse_mysql_config(read_text(path))
        cfg.config_path = str(path)
        return cfg

    def change_port(self, port: str | int) -> None:
        value = parse_port(port, low=1024)
        path = self.config_path()
        saved = backup(path)
        lines = read_lines(path)
        section = ""
        replaced = False
        mysqld_idx: int | None = None
        for idx, line in enumerate(lines):
            stripped = line.strip()
            if stripped.startswith("[") and stripped.endswith("]"):
                section = stripped[1:-1].strip().lower()
                if section == "mysqld" and mysqld_idx is None:
                    mysqld_idx = idx
                continue
            if section == "mysqld" and stripped.split("=", 1)[0].strip() == "port":
                lines[idx] = f"port = {value}"
                replaced = True
                break
        if not replaced:
            if mysqld_idx is None:
                lines += ["", "[mysqld]", f"port = {value}"]
            else:
                lines.insert(mysqld_idx + 1, f"port = {value}")
        try:
            write_lines(path, lines)
        except CommandError:
            restore(saved, path)
            raise
        log.info("mysql port set to %s in %s", value, path)

    def _client(self) -> list[str]:
        if self.debian_cnf.exists():
            return ["mysql", f"--defaults-file={self.debian_cnf}"]
        return ["mysql", "-u", "root"]

    def _sql(self, statement: str, *, message: str) -> str:
        return self.runner.check(self._client() + ["-e", statement], message=message)

    def is_running(self) -> bool:
        return self.runner.output(["systemctl", "is-active", self.service]) == "active"

    def change_root_password(self, password: str) -> None:
        if not password:
            raise ValidationError("", "password cannot be empty")
        if not self.is_running():
            raise CommandError("MySQL service is not running")
        self._sql(
            f"ALTER USER 'root'@'localhost' IDENTIFIED BY '{_quote(password)}';",
            message="failed to change root password",
        )
        self._sql("FLUSH PRIVILEGES;", message="failed to flush privileges")

    def restart(self) -> None:
        self.runner.check(["systemctl", "restart", self.service], message="failed to restart MySQL")

    def status(self) -> str:
        res = self.runner.run(["systemctl", "status", self.service, "--no-pager"])
        return (res.stdout or res.stderr or "").rstrip()

    def is_installed(self) -> bool:
        return self.runner.which("mysql") is not None

    def version(self) -> str:
        return self.runner.output(["mysql", "--version"])

    def create_database(self, name: str, user: str = "", password: str = "") -> None:
        name = validate_identifier(name, "database name")
        self._sql(
            f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;",
            message="failed to create database",
        )
        if not user:
            return
        user = validate_identifier(user, "username")
        if not password:
            raise ValidationError("", "password cannot be empty")
        self._sql(
            f"CREATE USER IF NOT EXISTS '{user}'@'localhost' IDENTIFIED BY '{_quote(password)}';"
            f" GRANT ALL PRIVILEGES ON `{name}`.* TO '{user}'@'localhost'; FLUSH PRIVILEGES;",
            message="failed to create user",
        )

    def list_databases(self) -> list[str]:
        out = self._sql("SHOW DATABASES;", message="failed to list databases")
        names = [line.strip() for line in out.splitlines()[1:] if line.strip()]
        return [n for n in names if n not in SYSTEM_DATABASES]

    def export_command(self, name: str, target: str) -> str:
        name = validate_identifier(name, "database name")
        args = ["mysqldump", *self._client()[1:], name]
        return f"{shlex.join(args)} > {shlex.quote(target)}"
