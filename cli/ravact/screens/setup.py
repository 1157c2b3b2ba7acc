from __future__ import annotations

from .. import catalog
from ..models import CommandRequest, MenuItem, ServiceStatus, SetupPackage
from ..system.php import OPTIONAL_EXTENSIONS, PHP_VERSIONS
from .base import BACK_KEYS, Action, MenuScreen, Navigate, back_item, keys_help
from .routes import ConfirmRoute, ExecutionRoute, PHPExtensionsRoute, PHPInstallRoute, SetupActionRoute

BADGES = {
    ServiceStatus.INSTALLED: "[Installed]",
    ServiceStatus.RUNNING: "[✓ Running]",
    ServiceStatus.STOPPED: "[⚠ Stopped]",
    ServiceStatus.FAILED: "[✗ Failed]",
    ServiceStatus.NOT_INSTALLED: "[Not Installed]",
}


def badge(status: ServiceStatus) -> str:
    return BADGES.get(status, "")


class SetupMenuScreen(MenuScreen):
    title = "Package Setup"
    subtitle = "Install and manage server packages"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.statuses: dict[str, ServiceStatus] = {}

    def packages(self) -> list[SetupPackage]:
        return list(catalog.SETUP_PACKAGES)

    def refresh(self) -> None:
        detector = self.managers.detector
        self.statuses = {pkg.id: detector.service_status(pkg.service) for pkg in self.packages()}
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = []
        for pkg in self.packages():
            status = self.statuses.get(pkg.id, ServiceStatus.UNKNOWN)
            out.append(MenuItem(pkg.id, f"{pkg.name} {badge(status)}".rstrip(), pkg.description))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        pkg = catalog.get_package(item.key)
        return Navigate(SetupActionRoute(pkg, self.statuses.get(pkg.id, ServiceStatus.UNKNOWN)))

    def on_other_key(self, key: str) -> Action | None:
        if key == "r":
            self.refresh()
        return None

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "actions"), ("r", "refresh"), ("Esc", "back"), ("q", "quit"))


class InstalledAppsScreen(SetupMenuScreen):
    title = "Installed Applications"
    subtitle = ""

    def items(self) -> list[MenuItem]:
        installed = {
            pid for pid, status in self.statuses.items()
            if status not in (ServiceStatus.NOT_INSTALLED, ServiceStatus.UNKNOWN)
        }
        out = [item for item in super().items() if item.key in installed]
        return out + [back_item()] if out else []

    def render_summary(self):
        count = len([e for e in self.entries if e.key != "__back__"])
        return [("class:info", f"Found {count} installed applications"), ("", "\n")]

    def empty_text(self) -> str:
        return "No applications installed yet. Use the Setup menu to install applications"


class SetupActionScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.package: SetupPackage = route.package
        self.status: ServiceStatus = route.status
        self.title = f"{self.package.name} - Actions"
        self.actions: list[catalog.SetupAction] = []

    def on_resume(self, notice: str = "") -> Action | None:
        self.status = self.managers.detector.service_status(self.package.service)
        return super().on_resume(notice)

    def refresh(self) -> None:
        self.actions = catalog.setup_actions(self.package, self.status, self.ctx.config.scripts_dir)
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = [MenuItem(str(idx), a.title, a.description) for idx, a in enumerate(self.actions)]
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        action = self.actions[int(item.key)]
        if not action.command:
            return Navigate(PHPInstallRoute())
        request = CommandRequest(action.command, f"{action.title}: {self.package.name}")
        if action.title.startswith("Remove"):
            route = ExecutionRoute(request)
            return Navigate(ConfirmRoute(f"Remove {self.package.name}?", lambda: route))
        return Navigate(ExecutionRoute(request))

    def render_summary(self):
        return [
            (self.theme.status_style(self.status.value), f"Current Status: {self.status.label}"), ("", "\n"),
            ("class:warning", "⚠ Actions may require root privileges"), ("", "\n"),
        ]


class PHPInstallScreen(MenuScreen):
    title = "PHP Installation"
    subtitle = "Select a version to install, or select an installed version to remove it."

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.installed: list[str] = []

    def refresh(self) -> None:
        self.installed = self.managers.php.installed_versions()
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = []
        for version, notes in PHP_VERSIONS:
            mark = " [Installed]" if version in self.installed else ""
            out.append(MenuItem(version, f"PHP {version}{mark}", notes, "PHP Versions"))
        out.append(MenuItem("extensions", "Install Extensions", "Add optional extensions to an installed version",
                            "Actions"))
        out.append(MenuItem("__back__", "← Back", "", "Actions"))
        return out

    def select(self, item: MenuItem) -> Action | None:
        php = self.managers.php
        if item.key == "extensions":
            if self.guard(php.require_any) is None:
                return None
            if len(self.installed) == 1:
                return Navigate(PHPExtensionsRoute(self.installed[0]))
            return Navigate(PHPExtensionsRoute())
        if item.key in self.installed:
            route = ExecutionRoute(CommandRequest(php.remove_command(item.key), f"Removing PHP {item.key}"))
            return Navigate(ConfirmRoute(f"Remove PHP {item.key}?", lambda: route))
        request = CommandRequest(php.install_command(item.key), f"Installing PHP {item.key} with common extensions")
        return Navigate(ExecutionRoute(request))

    def render_summary(self):
        if self.installed:
            return [("class:label", "Installed Versions: "), ("class:success", ", ".join(self.installed)),
                    ("", "\n")]
        return [("class:warning", "No PHP versions installed"), ("", "\n")]

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "install/remove"), ("Esc", "back"), ("q", "quit"))


class PHPExtensionsScreen(MenuScreen):
    """Version picker, then a checklist of optional extensions.

    ``space`` toggles, ``/`` filters by name, ``enter`` installs the selection.
    """

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.version = route.version
        self.versions: list[str] = []
        self.present: set[str] = set()
        self.chosen: set[str] = set()
        self.query = ""
        self.searching = False

    @property
    def title(self) -> str:
        if not self.version:
            return "PHP Extensions - Select Version"
        return f"PHP {self.version} Extensions"

    def refresh(self) -> None:
        php = self.managers.php
        if self.version:
            self.present = php.installed_extensions(self.version)
        else:
            self.versions = php.installed_versions()
        super().refresh()

    def items(self) -> list[MenuItem]:
        if not self.version:
            return [MenuItem(v, f"PHP {v}") for v in self.versions]
        out = []
        for name, desc in OPTIONAL_EXTENSIONS:
            if self.query and self.query.lower() not in name:
                continue
            box = "[✓]" if name in self.chosen else "[ ]"
            note = " (installed)" if name in self.present else ""
            out.append(MenuItem(name, f"{box} {name}{note}", desc))
        return out

    def handle_key(self, key: str) -> Action | None:
        if self.searching and not (self.error or self.success):
            if key in ("esc", "enter"):
                self.searching = False
            elif key == "backspace":
                self.query = self.query[:-1]
            elif len(key) == 1 and key.isprintable():
                self.query += key
            self.cursor = 0
            self.offset = 0
            self.refresh()
            return None
        return super().handle_key(key)

    def on_key(self, key: str) -> Action | None:
        if self.version and key == " ":
            item = self.selected
            if item is not None:
                self.chosen ^= {item.key}
                self.refresh()
            return None
        if self.version and key == "enter":
            return self.install()
        if self.version and key in BACK_KEYS and not self.route.version:
            # back to the version list this screen started with
            self.version = ""
            self.chosen = set()
            self.query = ""
            self.cursor = 0
            self.offset = 0
            self.refresh()
            return None
        return super().on_key(key)

    def on_other_key(self, key: str) -> Action | None:
        if self.version and key == "/":
            self.searching = True
        return None

    def select(self, item: MenuItem) -> Action | None:
        self.version = item.key
        self.cursor = 0
        self.refresh()
        return None

    def install(self) -> Action | None:
        chosen = sorted(self.chosen)
        command = self.guard(self.managers.php.extensions_command, self.version, chosen)
        if command is None:
            return None
        route = ExecutionRoute(CommandRequest(command, f"Installing {len(chosen)} extensions for PHP {self.version}"))
        return Navigate(ConfirmRoute(f"Install {', '.join(chosen)} for PHP {self.version}?", lambda: route))

    def render_summary(self):
        if not self.version:
            return [("class:subtitle", "Select PHP version to add extensions:"), ("", "\n")]
        if self.searching:
            search = ("class:input.focused", f"Search: {self.query}_")
        elif self.query:
            search = ("class:info", f"Filter: {self.query} (press / to search)")
        else:
            search = ("class:description", "Press / to search extensions")
        return [search, ("", "\n"), ("class:label", f"Selected: {len(self.chosen)} extensions"), ("", "\n")]

    def empty_text(self) -> str:
        if not self.version:
            return "No PHP versions installed. Please install a PHP version first."
        return "No extensions match your search"

    def footer(self):
        if not self.version:
            return keys_help(("↑/↓", "navigate"), ("Enter", "select"), ("Esc", "back"))
        return keys_help(("↑/↓", "navigate"), ("Space", "toggle"), ("/", "search"), ("Enter", "install"),
                         ("Esc", "back"))
