from __future__ import annotations

from dataclasses import replace

from ..models import MenuItem
from ..system.sshkeys import GENERATE_TYPES, SSHKey
from .base import Action, Back, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .common import CopyBanner
from .forms import Field, FormScreen
from .routes import ConfirmRoute, SSHKeyDetailsRoute, SSHKeyGenerateRoute, TextDisplayRoute

GENERATE = "generate"


class SSHKeysScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.username = route.username
        self.home = route.home
        self.title = f"SSH Keys: {self.username}"
        self.subtitle = f"{self.home}/.ssh"
        self.keys: list[SSHKey] = []

    def refresh(self) -> None:
        self.keys = self.guard(self.managers.sshkeys.list_keys, self.home) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = []
        for idx, key in enumerate(self.keys):
            login = "  [login]" if key.is_login else ""
            out.append(MenuItem(str(idx), f"{key.label}{login}", key.fingerprint or key.public_path))
        out.append(MenuItem(GENERATE, "Generate New Key", f"ssh-keygen into {self.home}/.ssh"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == GENERATE:
            return Navigate(SSHKeyGenerateRoute(self.username, self.home))
        return Navigate(SSHKeyDetailsRoute(self.username, self.home, self.keys[int(item.key)]))

    def on_other_key(self, key: str) -> Action | None:
        if key == "r":
            self.refresh()
        elif key == "g":
            return Navigate(SSHKeyGenerateRoute(self.username, self.home))
        return None

    def render_summary(self):
        if self.keys:
            return []
        return [("class:description", "No SSH keys found"), ("", "\n")]

    def footer(self):
        return keys_help(("Enter", "details"), ("g", "generate"), ("r", "refresh"), ("Esc", "back"))


class SSHKeyDetailsScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.username = route.username
        self.home = route.home
        self.key = replace(route.key)
        self.title = f"SSH Key: {self.key.name}"
        self.copied = CopyBanner()
        self.deleted = False

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def items(self) -> list[MenuItem]:
        login = "Remove from authorized_keys" if self.key.is_login else "Allow Login with this Key"
        out = [
            MenuItem("view", "View Public Key"),
            MenuItem("copy", "Copy Public Key", "Copy to the clipboard"),
            MenuItem("login", login, f"{self.home}/.ssh/authorized_keys"),
        ]
        if self.key.has_private:
            out += [
                MenuItem("pem", "Export Private Key (PEM)", "Converted copy; the key file is not changed"),
                MenuItem("ppk", "Export Private Key (PPK)", "PuTTY format, needs puttygen"),
            ]
        out.append(MenuItem("delete", "Delete Key", "Remove the private and public key files"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        sshkeys = self.managers.sshkeys
        if item.key == "view":
            return Navigate(TextDisplayRoute(self.key.public_path, sshkeys.public_key(self.key)))
        if item.key == "copy":
            return self.copied.copy(self.ctx, sshkeys.public_key(self.key), f"{self.key.name}.pub")
        if item.key == "login":
            if self.key.is_login:
                sshkeys.unauthorize(self.home, self.key)
                self.success = f"{self.key.name} removed from authorized_keys"
            else:
                sshkeys.authorize(self.username, self.home, self.key)
                self.success = f"{self.key.name} added to authorized_keys"
            self.key.is_login = not self.key.is_login
            self.refresh()
            return None
        if item.key == "pem":
            return Navigate(TextDisplayRoute(f"{self.key.name} (PEM)", sshkeys.export_pem(self.key)))
        if item.key == "ppk":
            return Navigate(TextDisplayRoute(f"{self.key.name}.ppk", sshkeys.export_ppk(self.key)))
        if item.key == "delete":
            return Navigate(ConfirmRoute(f"Delete SSH key '{self.key.name}'?", self.delete))
        return None

    def delete(self) -> str:
        self.managers.sshkeys.delete(self.home, self.key)
        self.deleted = True
        return f"SSH key '{self.key.name}' deleted"

    def on_tick(self) -> Action | None:
        return self.copied.tick()

    def render_summary(self):
        key = self.key
        lines = kv_lines([
            ("Type", key.type.upper()),
            ("Comment", key.identifier or "(none)"),
            ("Fingerprint", key.fingerprint or "unknown"),
            ("Private key", key.private_path if key.has_private else "missing"),
            ("Login", "allowed" if key.is_login else "no"),
        ])
        if self.copied.text:
            lines += [("", "\n"), ("class:success", self.copied.text), ("", "\n")]
        return lines


class SSHKeyGenerateScreen(FormScreen):
    submit_label = "Generate"

    def __init__(self, ctx, route):
        self.title = f"Generate SSH Key: {route.username}"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        return [
            Field("type", "Key type", GENERATE_TYPES[0], choices=GENERATE_TYPES),
            Field("identifier", "Name", placeholder="github"),
            Field("comment", "Comment", placeholder=f"{self.route.username}@server"),
            Field("passphrase", "Passphrase", secret=True, placeholder="empty for none"),
        ]

    def apply(self, values: dict[str, str]) -> str:
        path = self.managers.sshkeys.generate(self.route.username, self.route.home, values["type"],
                                              values["identifier"], values["comment"], values["passphrase"])
        return f"Key generated: {path}"
