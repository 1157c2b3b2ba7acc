from __future__ import annotations

import pytest

from ravact.errors import CommandError, ValidationError
from ravact.system.users import UserManager, validate_name

PASSWD = """\
root:x:0:0:root:/root:/bin/bash
daemon:x:1:1:daemon:/usr/sbin:/usr/sbin/nologin
deploy:x:1000:1000:Deploy,,,:/home/deploy:/bin/bash
alice:x:1001:1001::/home/alice:/bin/zsh
nobody:x:65534:65534:nobody:/nonexistent:/usr/sbin/nologin
"""

GROUP = """\
root:x:0:
sudo:x:27:deploy
deploy:x:1000:
alice:x:1001:
developers:x:1002:alice,deploy
empty:x:1003:
"""


@pytest.fixture
def users(runner, tmp_path) -> UserManager:
    (tmp_path / "passwd").write_text(PASSWD, encoding="utf-8")
    (tmp_path / "group").write_text(GROUP, encoding="utf-8")
    (tmp_path / "sudoers.d").mkdir()
    return UserManager(
        runner,
        passwd=str(tmp_path / "passwd"),
        group=str(tmp_path / "group"),
        sudoers_dir=str(tmp_path / "sudoers.d"),
    )


def test_list_users_skips_system_accounts(users) -> None:
    listed = users.list_users()

    assert [u.username for u in listed] == ["root", "deploy", "alice"]
    by_name = {u.username: u for u in listed}
    assert by_name["root"].has_sudo
    assert by_name["deploy"].has_sudo
    assert by_name["deploy"].groups == ["deploy", "developers", "sudo"]
    assert not by_name["alice"].has_sudo


def test_groups_from_groups_command(runner, users) -> None:
    runner.on("groups", "alice", stdout="alice : alice docker\n")

    assert users.get_user("alice").groups == ["alice", "docker"]


def test_validate_name() -> None:
    assert validate_name(" deploy ") == "deploy"
    with pytest.raises(ValidationError):
        validate_name("Deploy")
    with pytest.raises(ValidationError):
        validate_name("1user")


def test_create_user_sets_password_via_stdin(runner, users) -> None:
    users.create_user("bob", "hunter22", "/bin/zsh")

    assert runner.calls == [["useradd", "-m", "-s", "/bin/zsh", "bob"], ["chpasswd"]]
    assert runner.inputs[-1] == "bob:hunter22\n"


def test_create_user_rolls_back_on_password_failure(runner, users) -> None:
    runner.on("chpasswd", returncode=1, stderr="chpasswd: line 1: user 'bob' does not exist")

    with pytest.raises(CommandError, match="failed to set password"):
        users.create_user("bob", "hunter22")
    assert runner.calls[-1] == ["userdel", "-r", "bob"]


def test_root_cannot_be_deleted(runner, users) -> None:
    with pytest.raises(CommandError, match="cannot delete root"):
        users.delete_user("root")
    assert runner.calls == []


def test_nopasswd_entry_checked_with_visudo(runner, users) -> None:
    users.grant_sudo_nopasswd("alice")

    entry = users.sudoers_dir / "alice"
    assert entry.read_text() == "alice ALL=(ALL) NOPASSWD:ALL\n"
    assert entry.stat().st_mode & 0o777 == 0o440
    assert ["visudo", "-c", "-f", str(entry)] in runner.calls
    assert users.get_user("alice").has_sudo


def test_invalid_sudoers_entry_removed(runner, users) -> None:
    runner.on("visudo", returncode=1, stderr="parse error")

    with pytest.raises(CommandError, match="invalid sudoers entry: parse error"):
        users.grant_sudo_nopasswd("alice")
    assert not (users.sudoers_dir / "alice").exists()


def test_toggle_sudo(runner, users) -> None:
    assert users.toggle_sudo("deploy") is False
    assert ["gpasswd", "-d", "deploy", "sudo"] in runner.calls

    assert users.toggle_sudo("alice") is True
    assert ["usermod", "-aG", "sudo", "alice"] in runner.calls


def test_delete_group_requires_empty(runner, users) -> None:
    with pytest.raises(CommandError, match="not empty"):
        users.delete_group("developers")

    users.delete_group("empty")
    assert runner.calls[-1] == ["groupdel", "empty"]
