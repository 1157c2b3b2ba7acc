from __future__ import annotations

from ..errors import ValidationError
from ..models import CommandRequest, MenuItem
from ..parsers import User
from ..system.git import OPERATIONS, GitInfo, clone_command, operation_command, validate_url
from .base import Action, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .forms import Field, FormScreen
from .routes import (
    ConfirmRoute,
    ExecutionRoute,
    GitCloneFormRoute,
    GitConnectionFormRoute,
    GitRemoteFormRoute,
    GitUserSelectRoute,
)

AUTO = "auto"
ACTION_TITLES = {
    "git_pull": "Pull Changes",
    "git_fetch": "Fetch Updates",
    "git_status": "View Status",
    "remove_remote": "Remove Remote",
}


def git_users(screen) -> list[User]:
    """Accounts that can own a checkout: regular users under /home, plus root."""
    users = screen.guard(screen.managers.users.list_users) or []
    return [u for u in users if u.home.startswith("/home/") or u.username == "root"]


class GitManagementScreen(MenuScreen):
    title = "Git Operations"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.path = ""
        self.git = GitInfo()

    def refresh(self) -> None:
        self.path = self.ctx.config.working_dir()
        self.git = self.managers.git.info(self.path)
        super().refresh()

    def items(self) -> list[MenuItem]:
        if not self.git.is_repo:
            return [
                MenuItem("clone", "Clone Repository", "Clone a remote repository into this directory"),
                MenuItem("test", "Test SSH Connection", "Check that a user's keys are accepted by GitHub"),
                back_item(),
            ]
        out = [
            MenuItem("git_pull", ACTION_TITLES["git_pull"], "git pull as the selected user"),
            MenuItem("git_fetch", ACTION_TITLES["git_fetch"], "git fetch --all as the selected user"),
            MenuItem("git_status", ACTION_TITLES["git_status"]),
            MenuItem("remote", "Change Remote URL" if self.git.remote_url else "Add Remote URL"),
        ]
        if self.git.remote_url:
            out.append(MenuItem("remove_remote", ACTION_TITLES["remove_remote"],
                                f"git remote remove {self.git.remote_name}"))
        out.append(MenuItem("test", "Test SSH Connection", "Check that a user's keys are accepted by GitHub"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "clone":
            return Navigate(GitCloneFormRoute())
        if item.key == "remote":
            return Navigate(GitRemoteFormRoute())
        if item.key == "test":
            return Navigate(GitConnectionFormRoute())
        return Navigate(GitUserSelectRoute(item.key))

    def render_summary(self):
        git = self.git
        if not git.is_repo:
            return kv_lines([("Directory", self.path), ("Repository", "not a git repository")])
        if git.ahead or git.behind:
            sync = f"{git.ahead} ahead, {git.behind} behind"
        else:
            sync = "up to date"
        return kv_lines([
            ("Directory", self.path),
            ("Branch", git.branch or "(detached)"),
            ("Remote", f"{git.remote_name} → {git.remote_url}" if git.remote_url else "(none)"),
            ("Last commit", f"{git.last_commit} {git.commit_msg}".strip() or "(none)"),
            ("Changes", "uncommitted changes" if git.has_changes else "clean"),
            ("Sync", sync),
        ])


class GitUserSelectScreen(MenuScreen):
    subtitle = "Git runs as this user so their SSH keys are used"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.action = route.action
        self.title = f"{ACTION_TITLES.get(self.action, 'Git')}: Select User"
        self.users: list[User] = []

    def refresh(self) -> None:
        self.users = git_users(self)
        super().refresh()

    def items(self) -> list[MenuItem]:
        return [MenuItem(u.username, u.username, u.home) for u in self.users] + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        path = self.ctx.config.working_dir()
        user = item.key
        if self.action in OPERATIONS:
            command, description = operation_command(self.action, user, path)
            return Navigate(ExecutionRoute(CommandRequest(command, description)), replace=True)
        return Navigate(ConfirmRoute(f"Remove the git remote from {path}?",
                                     lambda: self.managers.git.remove_remote(user, path)), replace=True)

    def empty_text(self) -> str:
        return "No users with a home directory under /home"


class _GitUserForm(FormScreen):
    def __init__(self, ctx, route):
        self.users: list[User] = []
        super().__init__(ctx, route)

    def user_field(self) -> Field:
        self.users = git_users(self)
        names = tuple(u.username for u in self.users)
        return Field("user", "Run as user", names[0] if names else "", choices=names)

    def home_of(self, username: str) -> str:
        for u in self.users:
            if u.username == username:
                return u.home
        return ""


class GitConnectionFormScreen(_GitUserForm):
    title = "Test SSH Connection"
    subtitle = "ssh -T git@github.com as the selected user"
    submit_label = "Test"
    back_on_success = False

    def __init__(self, ctx, route):
        self.key_paths: dict[str, str] = {}
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        user = self.user_field()
        return [user, Field("key", "SSH key", AUTO, choices=self.key_choices(user.value))]

    def key_choices(self, username: str) -> tuple[str, ...]:
        home = self.home_of(username)
        keys = self.guard(self.managers.sshkeys.list_keys, home) if home else None
        self.key_paths = {k.name: k.private_path for k in keys or () if k.has_private}
        return (AUTO, *self.key_paths)

    def on_key(self, key: str) -> Action | None:
        before = self.fields[0].value
        action = super().on_key(key)
        if self.fields[0].value != before:
            key_field = self.fields[1]
            key_field.choices = self.key_choices(self.fields[0].value)
            key_field.value = AUTO
        return action

    def apply(self, values: dict[str, str]) -> str:
        user = values["user"].strip()
        if not user:
            raise ValidationError("user", "select a user")
        return self.managers.git.test_connection(user, self.key_paths.get(values["key"], ""))


class GitCloneFormScreen(_GitUserForm):
    title = "Clone Repository"
    submit_label = "Clone"

    def build_fields(self) -> list[Field]:
        return [Field("url", "Repository URL", placeholder="git@github.com:user/repo.git"), self.user_field()]

    def apply(self, values: dict[str, str]) -> Action:
        url = validate_url(values["url"])
        user = values["user"].strip()
        if not user:
            raise ValidationError("user", "select a user")
        path = self.ctx.config.working_dir()
        if self.managers.git.info(path).is_repo:
            raise ValidationError("", "this directory is already a Git repository")
        request = CommandRequest(clone_command(user, path, url), f"Cloning {url} (as {user})")
        return Navigate(ConfirmRoute(f"Clone {url} into {path} as {user}?", lambda: ExecutionRoute(request)),
                        replace=True)

    def render_intro(self):
        return kv_lines([("Directory", self.ctx.config.working_dir())]) + [("", "\n")]


class GitRemoteFormScreen(FormScreen):
    title = "Remote URL"

    def build_fields(self) -> list[Field]:
        current = self.managers.git.info(self.ctx.config.working_dir())
        return [Field("url", "Remote URL", current.remote_url, placeholder="git@github.com:user/repo.git")]

    def apply(self, values: dict[str, str]) -> str:
        return self.managers.git.set_remote(self.ctx.config.working_dir(), values["url"])

    def footer(self):
        return keys_help(("Enter", "save"), ("Esc", "cancel"))
