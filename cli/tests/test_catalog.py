from __future__ import annotations

import pytest

from ravact import catalog
from ravact.errors import ValidationError
from ravact.models import ServiceStatus


def test_php_opens_version_manager() -> None:
    [action] = catalog.setup_actions(catalog.get_package("php"), ServiceStatus.RUNNING)

    assert action.title == "Manage PHP Versions"
    assert action.command == ""


def test_not_installed_offers_install() -> None:
    [action] = catalog.setup_actions(catalog.get_package("redis"), ServiceStatus.NOT_INSTALLED)

    assert action.title == "Install"
    assert "apt-get install -y redis-server" in action.command


def test_binary_only_packages() -> None:
    actions = catalog.setup_actions(catalog.get_package("git"), ServiceStatus.INSTALLED)

    assert [a.title for a in actions] == ["Reinstall / Update", "Remove"]


def test_running_service_actions() -> None:
    actions = catalog.setup_actions(catalog.get_package("nginx"), ServiceStatus.RUNNING)

    assert [a.title for a in actions] == ["Restart Service", "Stop Service", "Reinstall / Update", "Remove"]
    assert actions[0].command == "systemctl restart nginx"
    assert actions[-1].command.startswith("systemctl stop nginx && ")


def test_install_prefers_setup_script(tmp_path) -> None:
    script = tmp_path / "nginx.sh"
    script.write_text("#!/bin/bash\napt-get install -y nginx\n", encoding="utf-8")

    [action] = catalog.setup_actions(catalog.get_package("nginx"), ServiceStatus.NOT_INSTALLED, tmp_path)

    assert action.command == f"/bin/bash {script}"
    assert catalog.install_command(catalog.get_package("mysql"), tmp_path) == catalog.get_package("mysql").install


def test_setup_script_needs_shebang(tmp_path) -> None:
    (tmp_path / "redis.sh").write_text("apt-get install -y redis-server\n", encoding="utf-8")

    with pytest.raises(ValidationError, match="must start with"):
        catalog.install_command(catalog.get_package("redis"), tmp_path)


def test_toolkit_categories_are_populated() -> None:
    for category in catalog.TOOLKIT_CATEGORIES:
        commands = catalog.toolkit_commands(category)
        assert commands
        assert {c.category for c in commands} == {category}


def test_unknown_package() -> None:
    with pytest.raises(KeyError):
        catalog.get_package("apache")
