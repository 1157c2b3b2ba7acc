from __future__ import annotations

from ..errors import RavactError, ValidationError
from ..models import MenuItem
from ..parsers import Group, User
from ..system.users import SHELLS, validate_name
from .base import Action, Back, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .forms import Field, FormScreen
from .routes import (
    AddGroupRoute,
    AddUserRoute,
    ConfirmRoute,
    GroupDetailsRoute,
    PromptRoute,
    SSHKeysRoute,
    UserDetailsRoute,
)

USERS = "users"
GROUPS = "groups"
SUDO_CHOICES = ("no", "yes", "nopasswd")


class UserManagementScreen(MenuScreen):
    title = "User Management"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.view = USERS
        self.users: list[User] = []
        self.groups: list[Group] = []

    def refresh(self) -> None:
        users = self.managers.users
        try:
            self.users = users.list_users()
            self.groups = users.list_groups()
        except RavactError as exc:
            self.fail(exc)
        super().refresh()

    def items(self) -> list[MenuItem]:
        if self.view == USERS:
            return [
                MenuItem(u.username,
                         f"{u.username:<16} {u.uid:<6} {'Yes' if u.has_sudo else 'No':<5} {', '.join(u.groups)[:30]:<30}",
                         u.home)
                for u in self.users
            ]
        return [
            MenuItem(g.name, f"{g.name:<20} {g.gid:<6} {len(g.members) or '0 (empty)'}",
                     ", ".join(g.members) or "(no members)")
            for g in self.groups
        ]

    def select(self, item: MenuItem) -> Action | None:
        if self.view == USERS:
            return Navigate(UserDetailsRoute(item.key))
        return Navigate(GroupDetailsRoute(item.key))

    def on_other_key(self, key: str) -> Action | None:
        if key == "tab":
            self.view = GROUPS if self.view == USERS else USERS
            self.cursor = 0
            self.offset = 0
            self.refresh()
        elif key == "r":
            self.refresh()
        elif key == "a":
            return Navigate(AddUserRoute() if self.view == USERS else AddGroupRoute())
        return None

    def render_summary(self):
        tabs = [
            ("class:tab.active" if self.view == USERS else "class:tab", " Users "), ("", " "),
            ("class:tab.active" if self.view == GROUPS else "class:tab", " Groups "), ("", "\n\n"),
        ]
        if self.view == USERS:
            header = f"  {'Username':<16} {'UID':<6} {'Sudo':<5} Groups"
        else:
            header = f"  {'Group Name':<20} {'GID':<6} Members"
        return tabs + [("class:label", header), ("", "\n")]

    def empty_text(self) -> str:
        return "No users found" if self.view == USERS else "No groups found"

    def footer(self):
        add = "add user" if self.view == USERS else "add group"
        return keys_help(("Enter", "details"), ("a", add), ("r", "refresh"), ("Tab", "switch view"),
                         ("Esc", "back"), ("q", "quit"))


class UserDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.username = route.username
        self.title = f"User: {self.username}"
        self.user: User | None = None
        self.deleted = False

    def refresh(self) -> None:
        self.user = self.guard(self.managers.users.get_user, self.username)
        super().refresh()

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def items(self) -> list[MenuItem]:
        if self.user is None:
            return [back_item()]
        return [
            MenuItem("sudo", "Toggle Sudo Access", "Add to or remove from the sudo group"),
            MenuItem("nopasswd", "Grant Passwordless Sudo", "Write /etc/sudoers.d entry (checked with visudo)"),
            MenuItem("password", "Change Password"),
            MenuItem("shell", "Change Shell", " ".join(SHELLS)),
            MenuItem("add_group", "Add to Group"),
            MenuItem("remove_group", "Remove from Group"),
            MenuItem("ssh", "SSH Key Management", "Keys in ~/.ssh and authorized_keys"),
            MenuItem("delete", "Delete User", "Remove the account and its home directory"),
            back_item(),
        ]

    def select(self, item: MenuItem) -> Action | None:
        users = self.managers.users
        name = self.username
        if item.key == "sudo":
            granted = self.guard(users.toggle_sudo, name)
            if granted is not None:
                self.success = f"Sudo access {'granted to' if granted else 'revoked from'} {name}"
            self.refresh()
        elif item.key == "nopasswd":
            self.guard(users.grant_sudo_nopasswd, name)
            if not self.error:
                self.success = f"Passwordless sudo granted to {name}"
            self.refresh()
        elif item.key == "password":
            return Navigate(PromptRoute("Change Password", "New password", self.change_password, secret=True))
        elif item.key == "shell":
            return Navigate(PromptRoute("Change Shell", "Shell", self.change_shell, value=self.user.shell))
        elif item.key == "add_group":
            return Navigate(PromptRoute("Add to Group", "Group", self.add_group))
        elif item.key == "remove_group":
            return Navigate(PromptRoute("Remove from Group", "Group", self.remove_group))
        elif item.key == "ssh":
            return Navigate(SSHKeysRoute(name, self.user.home))
        elif item.key == "delete":
            return Navigate(ConfirmRoute(f"Delete user '{name}' and its home directory?", self.delete))
        return None

    def change_password(self, password: str) -> str:
        self.managers.users.change_password(self.username, password)
        return f"Password changed for {self.username}"

    def change_shell(self, shell: str) -> str:
        shell = shell.strip()
        if not shell.startswith("/"):
            raise ValidationError("shell", "must be an absolute path")
        self.managers.users.change_shell(self.username, shell)
        return f"Shell changed to {shell}"

    def add_group(self, group: str) -> str:
        group = validate_name(group, "group")
        self.managers.users.add_to_group(self.username, group)
        return f"{self.username} added to {group}"

    def remove_group(self, group: str) -> str:
        group = validate_name(group, "group")
        self.managers.users.remove_from_group(self.username, group)
        return f"{self.username} removed from {group}"

    def delete(self) -> str:
        self.managers.users.delete_user(self.username, remove_home=True)
        self.deleted = True
        return f"User '{self.username}' deleted"

    def render_summary(self):
        user = self.user
        if user is None:
            return []
        return kv_lines([
            ("UID/GID", f"{user.uid}/{user.gid}"),
            ("Home", user.home),
            ("Shell", user.shell),
            ("Groups", ", ".join(user.groups) or "(none)"),
            ("Sudo", "Yes" if user.has_sudo else "No"),
        ])


class AddUserScreen(FormScreen):
    title = "Add User"

    def build_fields(self) -> list[Field]:
        return [
            Field("username", "Username"),
            Field("password", "Password", secret=True, placeholder="empty for passwordless"),
            Field("shell", "Shell", SHELLS[0], choices=SHELLS),
            Field("sudo", "Sudo", "no", choices=SUDO_CHOICES),
        ]

    def apply(self, values: dict[str, str]) -> str:
        users = self.managers.users
        username = validate_name(values["username"])
        if values["password"]:
            users.create_user(username, values["password"], values["shell"])
        else:
            users.create_user_passwordless(username, values["shell"])
        if values["sudo"] == "yes":
            users.grant_sudo(username)
        elif values["sudo"] == "nopasswd":
            users.grant_sudo_nopasswd(username)
        return f"User '{username}' created"


class AddGroupScreen(FormScreen):
    title = "Add Group"

    def build_fields(self) -> list[Field]:
        return [Field("name", "Group name")]

    def apply(self, values: dict[str, str]) -> str:
        self.managers.users.create_group(values["name"])
        return f"Group '{values['name'].strip()}' created"


class GroupDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.name = route.group
        self.title = f"Group: {self.name}"
        self.group: Group | None = None
        self.deleted = False

    def refresh(self) -> None:
        self.group = self.guard(self.managers.users.get_group, self.name)
        super().refresh()

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("add", "Add Member"),
            MenuItem("remove", "Remove Member"),
            MenuItem("delete", "Delete Group", "Only empty groups can be deleted"),
            back_item(),
        ]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "add":
            return Navigate(PromptRoute("Add Member", "Username", self.add_member))
        if item.key == "remove":
            return Navigate(PromptRoute("Remove Member", "Username", self.remove_member))
        return Navigate(ConfirmRoute(f"Delete group '{self.name}'?", self.delete))

    def add_member(self, username: str) -> str:
        username = validate_name(username)
        self.managers.users.add_to_group(username, self.name)
        return f"{username} added to {self.name}"

    def remove_member(self, username: str) -> str:
        username = validate_name(username)
        self.managers.users.remove_from_group(username, self.name)
        return f"{username} removed from {self.name}"

    def delete(self) -> str:
        self.managers.users.delete_group(self.name)
        self.deleted = True
        return f"Group '{self.name}' deleted"

    def render_summary(self):
        grp = self.group
        if grp is None:
            return []
        return kv_lines([("GID", str(grp.gid)), ("Members", ", ".join(grp.members) or "(no members)")])
