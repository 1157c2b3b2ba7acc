from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from .clipboard import copy_to_clipboard
from .config import AppConfig
from .runner import CommandRunner
from .system.detector import Detector
from .system.firewall import FirewallManager
from .system.frankenphp import CONFIG_DIR as FRANKENPHP_DIR, SYSTEMD_DIR, FrankenPHPManager
from .system.git import GitManager
from .system.mysql import CONFIG_PATHS as MYSQL_CONFIGS, MySQLManager
from .system.nginx import NGINX_DIR, NginxManager
from .system.node import NodeManager
from .system.php import PHPManager
from .system.phpfpm import PHP_ROOT, PHPFPMManager
from .system.postgresql import BASE_DIR as POSTGRESQL_DIR, PostgreSQLManager
from .system.redis import CONFIG_PATHS as REDIS_CONFIGS, RedisManager
from .system.sshkeys import SSHKeyManager
from .system.supervisor import MAIN_CONFIGS as SUPERVISOR_CONFIGS, PROGRAM_DIR, SupervisorManager
from .system.users import UserManager
from .theme import Theme, get_theme


@dataclass
class Managers:
    detector: Detector
    nginx: NginxManager
    redis: RedisManager
    mysql: MySQLManager
    postgresql: PostgreSQLManager
    phpfpm: PHPFPMManager
    php: PHPManager
    supervisor: SupervisorManager
    firewall: FirewallManager
    users: UserManager
    frankenphp: FrankenPHPManager
    git: GitManager
    sshkeys: SSHKeyManager
    node: NodeManager


@dataclass
class ScreenContext:
    """Everything a screen needs besides its route."""

    theme: Theme
    config: AppConfig
    runner: CommandRunner
    managers: Managers
    clipboard: Callable[[str], str] = field(default=copy_to_clipboard)


def _override(paths: dict[str, str], key: str, default):
    value = paths.get(key)
    if not value:
        return default
    return (value,) if isinstance(default, tuple) else value


def build_managers(runner: CommandRunner, paths: dict[str, str] | None = None) -> Managers:
    paths = paths or {}
    return Managers(
        detector=Detector(runner),
        nginx=NginxManager(runner, _override(paths, "nginx_dir", NGINX_DIR)),
        redis=RedisManager(runner, _override(paths, "redis_conf", REDIS_CONFIGS)),
        mysql=MySQLManager(runner, _override(paths, "mysql_conf", MYSQL_CONFIGS)),
        postgresql=PostgreSQLManager(runner, _override(paths, "postgresql_dir", POSTGRESQL_DIR)),
        phpfpm=PHPFPMManager(runner, php_root=_override(paths, "php_root", PHP_ROOT)),
        php=PHPManager(runner),
        supervisor=SupervisorManager(
            runner,
            _override(paths, "supervisor_conf", SUPERVISOR_CONFIGS),
            _override(paths, "supervisor_programs", PROGRAM_DIR),
        ),
        firewall=FirewallManager(runner),
        users=UserManager(runner, sudoers_dir=_override(paths, "sudoers_dir", "/etc/sudoers.d")),
        frankenphp=FrankenPHPManager(
            runner,
            _override(paths, "systemd_dir", SYSTEMD_DIR),
            config_dir=_override(paths, "frankenphp_dir", FRANKENPHP_DIR),
            nginx_dir=_override(paths, "nginx_dir", NGINX_DIR),
        ),
        git=GitManager(runner),
        sshkeys=SSHKeyManager(runner),
        node=NodeManager(runner),
    )


def build_context(config: AppConfig, runner: CommandRunner | None = None) -> ScreenContext:
    runner = runner or CommandRunner()
    return ScreenContext(
        theme=get_theme(config.theme),
        config=config,
        runner=runner,
        managers=build_managers(runner, config.paths),
    )
