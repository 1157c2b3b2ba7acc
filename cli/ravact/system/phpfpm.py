from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..parsers import PHPFPMPool, parse_php_pool
from ..runner import CommandRunner
from .files import backup, list_dir, read_text, remove, write_text

log = logging.getLogger(__name__)

DEFAULT_VERSION = "8.3"
KNOWN_VERSIONS = ("8.3", "8.2", "8.1", "8.0", "7.4")
PHP_ROOT = "/etc/php"
PM_MODES = ("dynamic", "static", "ondemand")
_POOL_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def render_pool(pool: PHPFPMPool) -> str:
    lines = [
        f"; Pool: {pool.name}",
        "; Generated by Ravact",
        "",
        f"[{pool.name}]",
        f"user = {pool.user}",
        f"group = {pool.group}",
        "",
        f"listen = {pool.listen}",
        f"listen.owner = {pool.listen_owner}",
        f"listen.group = {pool.listen_group}",
        f"listen.mode = {pool.listen_mode}",
        "",
        f"pm = {pool.pm}",
        f"pm.max_children = {pool.max_children}",
    ]
    if pool.pm == "dynamic":
        lines += [
            f"pm.start_servers = {pool.start_servers}",
            f"pm.min_spare_servers = {pool.min_spare_servers}",
            f"pm.max_spare_servers = {pool.max_spare_servers}",
        ]
    lines += [
        f"pm.max_requests = {pool.max_requests}",
        "",
        "pm.status_path = /status",
        "ping.path = /ping",
        "ping.response = pong",
    ]
    return "\n".join(lines) + "\n"


def validate_pool(pool: PHPFPMPool) -> None:
    if not pool.name:
        raise ValidationError("name", "pool name is required")
    if not _POOL_RE.match(pool.name):
        raise ValidationError("name", "may only contain letters, digits, dashes and underscores")
    if pool.pm not in PM_MODES:
        raise ValidationError("pm", f"must be one of: {', '.join(PM_MODES)}")
    if pool.max_children < 1:
        raise ValidationError("pm.max_children", "must be at least 1")
    if pool.pm == "dynamic":
        if not pool.min_spare_servers <= pool.start_servers <= pool.max_spare_servers:
            raise ValidationError("pm.start_servers", "must be between min and max spare servers")
        if pool.max_spare_servers > pool.max_children:
            raise ValidationError("pm.max_spare_servers", "cannot exceed pm.max_children")


class PHPFPMManager:
    def __init__(self, runner: CommandRunner | None = None, version: str | None = None, php_root: str = PHP_ROOT):
        self.runner = runner or CommandRunner()
        self.php_root = Path(php_root)
        self.version = version or DEFAULT_VERSION

    @property
    def pool_dir(self) -> Path:
        return self.php_root / self.version / "fpm" / "pool.d"

    @property
    def service(self) -> str:
        return f"php{self.version}-fpm"

    def detect_version(self) -> str:
        for version in KNOWN_VERSIONS:
            if (self.php_root / version / "fpm" / "pool.d").is_dir():
                self.version = version
                return version
        raise NotInstalledError("no PHP-FPM installation found")

    def list_pools(self) -> list[PHPFPMPool]:
        if not self.pool_dir.is_dir():
            raise NotInstalledError(f"pool directory not found: {self.pool_dir}")
        pools: list[PHPFPMPool] = []
        for path in list_dir(self.pool_dir, "*.conf"):
            try:
                pool = self.read_pool(path)
            except (CommandError, NotInstalledError) as exc:
                log.warning("skipping pool %s: %s", path, exc)
                continue
            if pool.name:
                pools.append(pool)
        return pools

    def read_pool(self, path: Path) -> PHPFPMPool:
        pool = parse_php_pool(read_text(path))
        pool.config_path = str(path)
        return pool

    def get_pool(self, name: str) -> PHPFPMPool:
        path = self.pool_dir / f"{name}.conf"
        if not path.exists():
            raise CommandError(f"pool '{name}' not found")
        return self.read_pool(path)

    def default_listen(self, name: str) -> str:
        return f"/run/php/php{self.version}-{name}-fpm.sock"

    def create_pool(self, pool: PHPFPMPool) -> PHPFPMPool:
        pool = replace(pool, name=pool.name.strip())
        validate_pool(pool)
        if not pool.listen or pool.listen == PHPFPMPool().listen:
            pool.listen = self.default_listen(pool.name)
        path = self.pool_dir / f"{pool.name}.conf"
        if path.exists():
            raise CommandError(f"pool '{pool.name}' already exists")
        write_text(path, render_pool(pool))
        pool.config_path = str(path)
        log.info("created php-fpm pool %s", pool.name)
        return pool

    def update_pool(self, pool: PHPFPMPool) -> None:
        validate_pool(pool)
        path = self.pool_dir / f"{pool.name}.conf"
        if not path.exists():
            raise CommandError(f"pool '{pool.name}' not found")
        backup(path)
        write_text(path, render_pool(pool))
        log.info("updated php-fpm pool %s", pool.name)

    def delete_pool(self, name: str) -> None:
        if name == "www":
            raise CommandError("cannot delete the default 'www' pool")
        path = self.pool_dir / f"{name}.conf"
        if not path.exists():
            raise CommandError(f"pool '{name}' not found")
        remove(path)
        log.info("deleted php-fpm pool %s", name)

    def restart(self) -> None:
        self.runner.check(["systemctl", "restart", self.service], message="failed to restart PHP-FPM")

    def reload(self) -> None:
        self.runner.check(["systemctl", "reload", self.service], message="failed to reload PHP-FPM")

    def status(self) -> str:
        res = self.runner.run(["systemctl", "status", self.service, "--no-pager"])
        return (res.stdout or res.stderr or "").rstrip()
