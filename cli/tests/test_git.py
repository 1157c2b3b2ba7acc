from __future__ import annotations

import pytest

from ravact.errors import CommandError, ValidationError
from ravact.screens.base import Navigate
from ravact.screens.common import ConfirmScreen, ExecutionScreen
from ravact.screens.git import GitConnectionFormScreen, GitManagementScreen
from ravact.screens.navigator import Navigator
from ravact.screens.routes import (
    GitCloneFormRoute,
    GitConnectionFormRoute,
    GitManagementRoute,
    GitRemoteFormRoute,
    GitUserSelectRoute,
)
from ravact.system.git import GitManager, clone_command, operation_command, validate_url
from ravact.system.sshkeys import SSHKey
from ravact.system.users import UserManager

PASSWD = """\
root:x:0:0:root:/root:/bin/bash
deploy:x:1000:1000::/home/deploy:/bin/bash
svc:x:1001:1001::/opt/svc:/bin/bash
"""


def _repo(runner, path: str, *, remote: str = "origin", url: str = "git@github.com:acme/shop.git") -> None:
    git = ("git", "-C", path)
    runner.on(*git, "rev-parse", "--is-inside-work-tree", stdout="true\n")
    runner.on(*git, "rev-parse", "--abbrev-ref", "HEAD", stdout="main\n")
    runner.on(*git, "remote", stdout=f"{remote}\n" if remote else "")
    runner.on(*git, "remote", "get-url", remote, stdout=f"{url}\n")
    runner.on(*git, "rev-parse", "--short", "HEAD", stdout="1a2b3c4\n")
    runner.on(*git, "log", "-1", "--pretty=%s", stdout="Fix checkout totals\n")
    runner.on(*git, "status", "--porcelain", stdout=" M app/Cart.php\n")
    runner.on(*git, "rev-list", "--left-right", "--count", f"{remote}/main...HEAD", stdout="3\t1\n")


@pytest.fixture
def users_ctx(ctx, runner, tmp_path):
    (tmp_path / "passwd").write_text(PASSWD, encoding="utf-8")
    (tmp_path / "group").write_text("root:x:0:\ndeploy:x:1000:\nsvc:x:1001:\n", encoding="utf-8")
    ctx.managers.users = UserManager(runner, passwd=str(tmp_path / "passwd"), group=str(tmp_path / "group"),
                                     sudoers_dir=str(tmp_path))
    return ctx


def test_info_outside_a_repository(runner) -> None:
    runner.on("git", "-C", "/srv/app", "rev-parse", returncode=128, stderr="fatal: not a git repository")

    info = GitManager(runner).info("/srv/app")

    assert not info.is_repo
    assert info.branch == ""


def test_info_reads_branch_remote_and_sync(runner) -> None:
    _repo(runner, "/srv/shop")

    info = GitManager(runner).info("/srv/shop")

    assert info.is_repo
    assert info.branch == "main"
    assert (info.remote_name, info.remote_url) == ("origin", "git@github.com:acme/shop.git")
    assert info.last_commit == "1a2b3c4"
    assert info.commit_msg == "Fix checkout totals"
    assert info.has_changes
    assert (info.behind, info.ahead) == (3, 1)


def test_long_commit_message_is_shortened(runner) -> None:
    _repo(runner, "/srv/shop")
    runner.on("git", "-C", "/srv/shop", "log", "-1", "--pretty=%s", stdout="x" * 80 + "\n")

    assert GitManager(runner).info("/srv/shop").commit_msg == "x" * 57 + "..."


def test_validate_url() -> None:
    assert validate_url(" https://github.com/acme/shop.git ") == "https://github.com/acme/shop.git"
    with pytest.raises(ValidationError, match="URL cannot be empty"):
        validate_url("  ")
    with pytest.raises(ValidationError, match="invalid URL format"):
        validate_url("github.com/acme/shop")


def test_set_remote_updates_existing(runner) -> None:
    _repo(runner, "/srv/shop")

    notice = GitManager(runner).set_remote("/srv/shop", "git@gitlab.com:acme/shop.git")

    assert notice == "Remote 'origin' URL updated to: git@gitlab.com:acme/shop.git"
    assert runner.calls[-1] == ["git", "-C", "/srv/shop", "remote", "set-url", "origin", "git@gitlab.com:acme/shop.git"]


def test_set_remote_adds_origin(runner) -> None:
    _repo(runner, "/srv/shop", remote="")

    notice = GitManager(runner).set_remote("/srv/shop", "https://github.com/acme/shop.git")

    assert notice == "Remote 'origin' added with URL: https://github.com/acme/shop.git"
    assert runner.calls[-1][-3:] == ["add", "origin", "https://github.com/acme/shop.git"]


def test_set_remote_needs_a_repository(runner) -> None:
    with pytest.raises(CommandError, match="not a git repository"):
        GitManager(runner).set_remote("/srv/app", "git@github.com:acme/app.git")
    assert not runner.ran("git", "-C", "/srv/app", "remote", "add")


def test_remove_remote_runs_as_user(runner) -> None:
    _repo(runner, "/srv/shop")

    assert GitManager(runner).remove_remote("deploy", "/srv/shop") == "Remote 'origin' removed"
    assert runner.calls[-1] == ["su", "-", "deploy", "-c", "cd /srv/shop && git remote remove origin"]


@pytest.mark.parametrize(
    ("output", "returncode", "expected"),
    [
        ("Hi acme! You've successfully authenticated, but GitHub does not provide shell access.", 1, None),
        ("git@github.com: Permission denied (publickey).", 255, "SSH connection failed"),
        ("ssh: Could not resolve hostname github.com", 255, "network error"),
        ("kex_exchange_identification: Connection closed by remote host", 255, "connection test failed"),
    ],
)
def test_connection_outcomes(runner, output, returncode, expected) -> None:
    runner.on("su", "-", "deploy", "-c", stdout=output + "\n", returncode=returncode)
    git = GitManager(runner)

    if expected is None:
        assert git.test_connection("deploy").startswith("SSH connection successful (user deploy, key auto-detect)")
    else:
        with pytest.raises(CommandError, match=expected):
            git.test_connection("deploy", "/home/deploy/.ssh/id_ed25519_github")


def test_connection_with_a_specific_key(runner) -> None:
    runner.on("su", "-", "deploy", "-c", stdout="Hi acme!\n", returncode=1)

    notice = GitManager(runner).test_connection("deploy", "/home/deploy/.ssh/id_ed25519_github")

    assert "key id_ed25519_github" in notice
    script = runner.calls[-1][-1]
    assert "ssh-add /home/deploy/.ssh/id_ed25519_github" in script
    assert "-i /home/deploy/.ssh/id_ed25519_github" in script


def test_operation_command() -> None:
    command, description = operation_command("git_pull", "deploy", "/srv/shop")

    assert command.startswith("su - deploy -c ")
    assert "cd /srv/shop" in command
    assert "git pull 2>&1" in command
    assert description == "Pulling latest changes (as deploy)"
    with pytest.raises(ValueError):
        operation_command("git_push", "deploy", "/srv/shop")


def test_clone_command_fixes_ownership() -> None:
    script = clone_command("deploy", "/var/www/shop", "git@github.com:acme/shop.git")

    assert "git clone --progress git@github.com:acme/shop.git ." in script
    assert "chown -R deploy:www-data /var/www/shop" in script
    assert "chmod -R 775 /var/www/shop/storage /var/www/shop/bootstrap/cache" in script
    assert script.endswith("echo '✓ Clone completed successfully!'")


# screens

def test_management_menu_outside_a_repository(ctx) -> None:
    screen = GitManagementScreen(ctx, GitManagementRoute())
    screen.on_mount()

    assert [item.key for item in screen.entries] == ["clone", "test", "__back__"]


def test_management_menu_in_a_repository(ctx, runner) -> None:
    _repo(runner, ctx.config.project_path)
    screen = GitManagementScreen(ctx, GitManagementRoute())
    screen.on_mount()

    assert [item.key for item in screen.entries] == [
        "git_pull", "git_fetch", "git_status", "remote", "remove_remote", "test", "__back__",
    ]
    summary = "".join(text for _, text in screen.render_summary())
    assert "1 ahead, 3 behind" in summary
    assert "uncommitted changes" in summary


def test_pull_runs_as_selected_user(users_ctx, runner) -> None:
    nav = Navigator(users_ctx)
    nav.start(GitManagementRoute())
    nav.open(GitUserSelectRoute("git_pull"))

    assert [item.key for item in nav.current.entries] == ["root", "deploy", "__back__"]
    nav.current.cursor = 1
    nav.handle_key("enter")

    assert isinstance(nav.current, ExecutionScreen)
    assert len(nav.stack) == 2
    assert nav.current.request.description == "Pulling latest changes (as deploy)"


def test_remove_remote_asks_first(users_ctx, runner) -> None:
    _repo(runner, users_ctx.config.project_path)
    nav = Navigator(users_ctx)
    nav.start(GitManagementRoute())
    nav.open(GitUserSelectRoute("remove_remote"))
    nav.current.cursor = 1
    nav.handle_key("enter")
    assert isinstance(nav.current, ConfirmScreen)

    nav.handle_key("y")

    assert isinstance(nav.current, GitManagementScreen)
    assert nav.current.success == "Remote 'origin' removed"
    assert runner.ran("su", "-", "deploy", "-c")


def test_clone_refused_inside_a_repository(users_ctx, runner) -> None:
    _repo(runner, users_ctx.config.project_path)
    nav = Navigator(users_ctx)
    nav.start(GitCloneFormRoute())
    form = nav.current
    form.fields[0].value = "git@github.com:acme/shop.git"
    form.focus = 1

    nav.handle_key("enter")

    assert form.error == "this directory is already a Git repository"


def test_clone_confirms_then_runs(users_ctx) -> None:
    nav = Navigator(users_ctx)
    nav.start(GitCloneFormRoute())
    form = nav.current
    form.fields[0].value = "git@github.com:acme/shop.git"
    form.focus = 1
    form.handle_key("right")
    assert form.fields[1].value == "deploy"

    nav.handle_key("enter")
    assert isinstance(nav.current, ConfirmScreen)
    nav.handle_key("y")

    assert isinstance(nav.current, ExecutionScreen)
    assert nav.current.request.description == "Cloning git@github.com:acme/shop.git (as deploy)"
    assert "su - deploy -c" in nav.current.request.command


def test_remote_form_saves_url(ctx, runner) -> None:
    _repo(runner, ctx.config.project_path)
    nav = Navigator(ctx)
    nav.start(GitRemoteFormRoute())
    form = nav.current
    assert form.fields[0].value == "git@github.com:acme/shop.git"
    form.fields[0].value = "https://github.com/acme/shop.git"

    nav.handle_key("enter")

    assert form.success == "Remote 'origin' URL updated to: https://github.com/acme/shop.git"


def test_connection_form_lists_keys_of_selected_user(users_ctx, runner, monkeypatch) -> None:
    keys = {"root": [], "deploy": ["id_ed25519_github"]}

    def _list_keys(home):
        user = "root" if home == "/root" else "deploy"
        return [SSHKey("ed25519", "github", f"{home}/.ssh/{name}.pub", f"{home}/.ssh/{name}", has_private=True)
                for name in keys[user]]

    monkeypatch.setattr(users_ctx.managers.sshkeys, "list_keys", _list_keys)
    screen = GitConnectionFormScreen(users_ctx, GitConnectionFormRoute())
    assert screen.fields[1].choices == ("auto",)

    screen.handle_key("right")

    assert screen.fields[0].value == "deploy"
    assert screen.fields[1].choices == ("auto", "id_ed25519_github")
    runner.on("su", "-", "deploy", "-c", stdout="Hi acme!\n", returncode=1)
    screen.focus = 1
    screen.handle_key("right")
    screen.handle_key("enter")

    assert "key id_ed25519_github" in screen.success
    assert "-i /home/deploy/.ssh/id_ed25519_github" in runner.calls[-1][-1]


def test_management_opens_forms(ctx) -> None:
    screen = GitManagementScreen(ctx, GitManagementRoute())
    screen.on_mount()

    assert screen.select(screen.entries[0]) == Navigate(GitCloneFormRoute())
    assert screen.select(screen.entries[1]) == Navigate(GitConnectionFormRoute())
