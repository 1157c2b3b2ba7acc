from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import CommandError, ValidationError
from ..parsers import Group, User, parse_group, parse_passwd
from ..runner import CommandRunner
from .files import read_text, remove, write_text

log = logging.getLogger(__name__)

SUDO_GROUPS = {"sudo", "wheel", "admin"}
SHELLS = ("/bin/bash", "/bin/sh", "/bin/zsh", "/usr/sbin/nologin")
_NAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


def validate_name(value: str, label: str = "username") -> str:
    value = value.strip()
    if not value:
        raise ValidationError(label, "cannot be empty")
    if not _NAME_RE.match(value):
        raise ValidationError(label, "must start with a lowercase letter and contain only a-z, 0-9, - and _")
    return value


class UserManager:
    def __init__(
            self,
            runner: CommandRunner | None = None,
            *,
            passwd: str = "/etc/passwd",
            group: str = "/etc/group",
            sudoers_dir: str = "/etc/sudoers.d",
    ):
        self.runner = runner or CommandRunner()
        self.passwd = Path(passwd)
        self.group = Path(group)
        self.sudoers_dir = Path(sudoers_dir)

    def list_users(self) -> list[User]:
        groups = self.list_groups()
        users = [u for u in parse_passwd(read_text(self.passwd)) if u.uid >= 1000 or u.uid == 0]
        users = [u for u in users if u.username != "nobody"]
        for user in users:
            user.groups = self._groups_for(user, groups)
            user.has_sudo = user.uid == 0 or bool(SUDO_GROUPS & set(user.groups)) or self.has_nopasswd(user.username)
        return users

    def get_user(self, username: str) -> User:
        for user in self.list_users():
            if user.username == username:
                return user
        raise CommandError(f"user not found: {username}")

    def _groups_for(self, user: User, groups: list[Group]) -> list[str]:
        out = self.runner.output(["groups", user.username])
        if out:
            _, _, names = out.rpartition(":")
            return names.split()
        names = [g.name for g in groups if g.gid == user.gid or user.username in g.members]
        return sorted(set(names))

    def list_groups(self) -> list[Group]:
        return parse_group(read_text(self.group))

    def get_group(self, name: str) -> Group:
        for grp in self.list_groups():
            if grp.name == name:
                return grp
        raise CommandError(f"group not found: {name}")

    def create_user(self, username: str, password: str, shell: str = "/bin/bash") -> None:
        username = validate_name(username)
        if not password:
            raise ValidationError("password", "cannot be empty")
        self.runner.check(["useradd", "-m", "-s", shell, username], message="failed to create user")
        try:
            self.runner.check(["chpasswd"], input=f"{username}:{password}\n", message="failed to set password")
        except CommandError:
            self.runner.run(["userdel", "-r", username])
            raise
        log.info("created user %s", username)

    def create_user_passwordless(self, username: str, shell: str = "/bin/bash") -> None:
        username = validate_name(username)
        self.runner.check(["useradd", "-m", "-s", shell, username], message="failed to create user")
        self.runner.check(["passwd", "-d", username], message="failed to clear password")
        log.info("created passwordless user %s", username)

    def delete_user(self, username: str, remove_home: bool = False) -> None:
        if username == "root":
            raise CommandError("cannot delete root")
        args = ["userdel", "-r", username] if remove_home else ["userdel", username]
        self.runner.check(args, message="failed to delete user")
        remove(self.sudoers_dir / username)
        log.info("deleted user %s", username)

    def grant_sudo(self, username: str) -> None:
        self.runner.check(["usermod", "-aG", "sudo", username], message="failed to grant sudo")

    def has_nopasswd(self, username: str) -> bool:
        return (self.sudoers_dir / username).exists()

    def grant_sudo_nopasswd(self, username: str) -> None:
        self.grant_sudo(username)
        path = self.sudoers_dir / username
        write_text(path, f"{username} ALL=(ALL) NOPASSWD:ALL\n", mode=0o440)
        res = self.runner.run(["visudo", "-c", "-f", str(path)])
        if res.returncode != 0:
            remove(path)
            raise CommandError(f"invalid sudoers entry: {(res.stderr or res.stdout).strip()}")
        log.info("granted passwordless sudo to %s", username)

    def revoke_sudo(self, username: str) -> None:
        self.runner.check(["gpasswd", "-d", username, "sudo"], message="failed to revoke sudo")
        remove(self.sudoers_dir / username)

    def toggle_sudo(self, username: str) -> bool:
        user = self.get_user(username)
        if user.has_sudo:
            self.revoke_sudo(username)
            return False
        self.grant_sudo(username)
        return True

    def change_password(self, username: str, password: str) -> None:
        if not password:
            raise ValidationError("password", "cannot be empty")
        self.runner.check(["chpasswd"], input=f"{username}:{password}\n", message="failed to change password")

    def change_shell(self, username: str, shell: str) -> None:
        self.runner.check(["usermod", "-s", shell, username], message="failed to change shell")

    def create_group(self, name: str) -> None:
        name = validate_name(name, "group name")
        self.runner.check(["groupadd", name], message="failed to create group")

    def delete_group(self, name: str) -> None:
        grp = self.get_group(name)
        if grp.members:
            raise CommandError(f"group is not empty (has {len(grp.members)} members)")
        self.runner.check(["groupdel", name], message="failed to delete group")

    def add_to_group(self, username: str, group: str) -> None:
        self.runner.check(["usermod", "-aG", group, username], message="failed to add user to group")

    def remove_from_group(self, username: str, group: str) -> None:
        self.runner.check(["gpasswd", "-d", username, group], message="failed to remove user from group")
