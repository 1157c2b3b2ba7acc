from __future__ import annotations

from pathlib import Path

import pytest

from ravact.errors import CommandError, NotInstalledError
from ravact.parsers import PHPFPMPool
from ravact.screens.base import Screen
from ravact.screens.common import ConfirmScreen
from ravact.screens.navigator import Navigator
from ravact.screens.phpfpm import PoolFormScreen
from ravact.screens.redis import RedisConfigScreen
from ravact.screens.routes import PoolFormRoute, RedisConfigRoute, SiteDetailsRoute, TextDisplayRoute
from ravact.system import files, mysql as mysql_module
from ravact.system.mysql import MySQLManager
from ravact.system.nginx import NginxManager
from ravact.system.phpfpm import PHPFPMManager
from ravact.system.postgresql import PostgreSQLManager
from ravact.system.redis import RedisManager
from ravact.system.supervisor import SupervisorManager
from ravact.system.users import UserManager


def _deny_writes(monkeypatch) -> None:
    def _write_text(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "write_text", _write_text)


def _deny_unlink(monkeypatch) -> None:
    def _unlink(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "unlink", _unlink)


def test_read_text_errors(tmp_path) -> None:
    with pytest.raises(NotInstalledError, match="not found"):
        files.read_text(tmp_path / "missing.conf")
    with pytest.raises(CommandError, match=r"^cannot read .*: Is a directory"):
        files.read_text(tmp_path)


def test_write_text_under_a_file(tmp_path) -> None:
    blocker = tmp_path / "conf.d"
    blocker.write_text("not a directory\n", encoding="utf-8")

    with pytest.raises(CommandError, match=r"^cannot write .*conf\.d/app\.conf"):
        files.write_text(blocker / "app.conf", "x\n")


def test_remove_reports_permission_error(tmp_path, monkeypatch) -> None:
    target = tmp_path / "site"
    target.write_text("server {}\n", encoding="utf-8")
    _deny_unlink(monkeypatch)

    with pytest.raises(CommandError, match="Permission denied"):
        files.remove(target)


def test_redis_config_unreadable(runner, tmp_path) -> None:
    conf = tmp_path / "redis.conf"
    conf.mkdir()

    with pytest.raises(CommandError, match="cannot read"):
        RedisManager(runner, (str(conf),)).get_config()


def test_mysql_port_write_failure_restores_backup(runner, tmp_path, monkeypatch) -> None:
    cnf = tmp_path / "my.cnf"
    cnf.write_text("[mysqld]\nport = 3306\n", encoding="utf-8")

    def _fail(path, lines):
        raise CommandError(f"cannot write {path}: No space left on device")

    monkeypatch.setattr(mysql_module, "write_lines", _fail)

    with pytest.raises(CommandError, match="No space left"):
        MySQLManager(runner, (str(cnf),)).change_port(3307)
    assert cnf.read_text(encoding="utf-8") == "[mysqld]\nport = 3306\n"
    assert not (tmp_path / "my.cnf.bak").exists()


def test_postgresql_config_unreadable(runner, tmp_path) -> None:
    (tmp_path / "16" / "main" / "postgresql.conf").mkdir(parents=True)

    with pytest.raises(CommandError, match="cannot read"):
        PostgreSQLManager(runner, str(tmp_path)).get_config()


def test_nginx_enable_site_without_writable_enabled_dir(runner, tmp_path) -> None:
    nginx = NginxManager(runner, str(tmp_path))
    nginx.create_site("shop", "shop.test", "/srv/shop")
    (tmp_path / "sites-enabled").write_text("", encoding="utf-8")

    with pytest.raises(CommandError, match="cannot link"):
        nginx.enable_site("shop")


def test_nginx_create_site_write_denied(runner, tmp_path, monkeypatch) -> None:
    nginx = NginxManager(runner, str(tmp_path))
    _deny_writes(monkeypatch)

    with pytest.raises(CommandError, match=r"cannot write .*sites-available/shop: Permission denied"):
        nginx.create_site("shop", "shop.test", "/srv/shop")


def test_phpfpm_create_pool_into_a_file(runner, tmp_path) -> None:
    fpm_dir = tmp_path / "8.2" / "fpm"
    fpm_dir.mkdir(parents=True)
    (fpm_dir / "pool.d").write_text("", encoding="utf-8")
    fpm = PHPFPMManager(runner, version="8.2", php_root=str(tmp_path))

    with pytest.raises(CommandError, match="cannot write"):
        fpm.create_pool(PHPFPMPool(name="shop"))


def test_supervisor_unreadable_program(runner, tmp_path) -> None:
    programs = tmp_path / "conf.d"
    (programs / "broken.conf").mkdir(parents=True)
    supervisor = SupervisorManager(runner, (str(tmp_path / "supervisord.conf"),), str(programs))

    with pytest.raises(CommandError, match=r"cannot read .*broken\.conf"):
        supervisor.list_programs()


def test_users_missing_passwd_and_blocked_sudoers(runner, tmp_path) -> None:
    (tmp_path / "group").write_text("sudo:x:27:\n", encoding="utf-8")
    (tmp_path / "sudoers.d").write_text("", encoding="utf-8")
    users = UserManager(runner, passwd=str(tmp_path / "passwd"), group=str(tmp_path / "group"),
                        sudoers_dir=str(tmp_path / "sudoers.d"))

    with pytest.raises(NotInstalledError):
        users.list_users()
    with pytest.raises(CommandError, match="cannot write"):
        users.grant_sudo_nopasswd("deploy")
    assert not runner.ran("visudo")


# screen boundary

def test_unreadable_config_shows_banner(ctx, etc) -> None:
    (etc / "redis" / "redis.conf").mkdir(parents=True)
    nav = Navigator(ctx)

    nav.start(RedisConfigRoute())

    assert nav.running
    assert isinstance(nav.current, RedisConfigScreen)
    assert nav.current.error.startswith("cannot read ")
    assert nav.current.error.endswith("Is a directory")


def test_form_submit_write_denied_keeps_form_open(ctx, etc, monkeypatch) -> None:
    nav = Navigator(ctx)
    nav.start(PoolFormRoute())
    form = nav.current
    form.fields[0].value = "site"
    form.focus = len(form.fields) - 1
    _deny_writes(monkeypatch)

    nav.handle_key("enter")

    assert nav.running
    assert nav.current is form
    assert isinstance(form, PoolFormScreen)
    pool_file = etc / "php" / "8.3" / "fpm" / "pool.d" / "site.conf"
    assert form.error == f"cannot write {pool_file}: Permission denied"


def test_confirm_delete_failure_stays_on_confirm(ctx, monkeypatch) -> None:
    ctx.managers.nginx.create_site("blog", "blog.test", "/srv/blog")
    nav = Navigator(ctx)
    nav.start(SiteDetailsRoute("blog"))
    nav.current.cursor = [item.key for item in nav.current.entries].index("delete")
    nav.handle_key("enter")
    assert isinstance(nav.current, ConfirmScreen)
    _deny_unlink(monkeypatch)

    nav.handle_key("y")

    assert nav.running
    assert isinstance(nav.current, ConfirmScreen)
    assert nav.current.error.startswith("cannot remove ")
    assert nav.current.error.endswith("Permission denied")


class _ShadowScreen(Screen):
    def on_mount(self):
        raise PermissionError(13, "Permission denied", "/etc/shadow")


def test_os_error_from_any_screen_becomes_banner(ctx) -> None:
    nav = Navigator(ctx, screens={TextDisplayRoute: _ShadowScreen})

    nav.start(TextDisplayRoute("Shadow", ""))

    assert nav.running
    assert nav.current.error == "/etc/shadow: Permission denied"
    nav.handle_key("x")
    assert nav.current.error == ""
