from __future__ import annotations

from dataclasses import replace

import pytest

from ravact.errors import CommandError, NotInstalledError, ValidationError
from ravact.parsers import PHPFPMPool
from ravact.screens.phpfpm import PHPFPMManagementScreen
from ravact.screens.routes import PHPFPMManagementRoute
from ravact.system.phpfpm import PHPFPMManager, render_pool, validate_pool


@pytest.fixture
def php_root(tmp_path):
    root = tmp_path / "php"
    (root / "8.2" / "fpm" / "pool.d").mkdir(parents=True)
    return root


def test_detect_version_picks_installed(runner, php_root) -> None:
    mgr = PHPFPMManager(runner, php_root=str(php_root))

    assert mgr.detect_version() == "8.2"
    assert mgr.service == "php8.2-fpm"


def test_detect_version_without_install(runner, tmp_path) -> None:
    with pytest.raises(NotInstalledError):
        PHPFPMManager(runner, php_root=str(tmp_path)).detect_version()


def test_create_pool_fills_socket_and_parses_back(runner, php_root) -> None:
    mgr = PHPFPMManager(runner, "8.2", str(php_root))

    created = mgr.create_pool(PHPFPMPool(name=" shop ", max_children=10, start_servers=3,
                                         min_spare_servers=2, max_spare_servers=5))

    assert created.listen == "/run/php/php8.2-shop-fpm.sock"
    [pool] = mgr.list_pools()
    assert pool.name == "shop"
    assert pool.max_children == 10
    assert pool.listen == created.listen

    with pytest.raises(CommandError, match="already exists"):
        mgr.create_pool(PHPFPMPool(name="shop"))


def test_update_pool_keeps_backup(runner, php_root) -> None:
    mgr = PHPFPMManager(runner, "8.2", str(php_root))
    mgr.create_pool(PHPFPMPool(name="api"))

    mgr.update_pool(replace(mgr.get_pool("api"), pm="static", max_children=8))

    pool = mgr.get_pool("api")
    assert (pool.pm, pool.max_children) == ("static", 8)
    assert (php_root / "8.2" / "fpm" / "pool.d" / "api.conf.bak").exists()


def test_default_pool_cannot_be_deleted(runner, php_root) -> None:
    mgr = PHPFPMManager(runner, "8.2", str(php_root))
    mgr.create_pool(PHPFPMPool(name="www"))
    mgr.create_pool(PHPFPMPool(name="extra"))

    with pytest.raises(CommandError, match="default 'www' pool"):
        mgr.delete_pool("www")
    mgr.delete_pool("extra")

    assert [p.name for p in mgr.list_pools()] == ["www"]


def test_validate_pool_spare_servers() -> None:
    with pytest.raises(ValidationError) as exc:
        validate_pool(PHPFPMPool(name="x", start_servers=5, min_spare_servers=1, max_spare_servers=3))
    assert exc.value.field == "pm.start_servers"

    with pytest.raises(ValidationError):
        validate_pool(PHPFPMPool(name="bad name"))

    validate_pool(PHPFPMPool(name="ok", pm="static", start_servers=50))


def test_render_static_pool_omits_spare_settings() -> None:
    text = render_pool(PHPFPMPool(name="ok", pm="static"))

    assert "pm = static" in text
    assert "pm.start_servers" not in text


def test_pool_management_without_pools_reports_error(ctx, etc) -> None:
    (etc / "php" / "8.3" / "fpm" / "pool.d").mkdir(parents=True)
    screen = PHPFPMManagementScreen(ctx, PHPFPMManagementRoute())
    screen.on_mount()

    edit = next(i for i, item in enumerate(screen.items()) if item.key == "edit")
    screen.cursor = edit
    assert screen.handle_key("enter") is None
    assert screen.error == "no pools available to edit"
