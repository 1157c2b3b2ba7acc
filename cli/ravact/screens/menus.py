from __future__ import annotations

import platform

from .. import catalog
from ..models import CommandRequest, MenuItem, SystemInfo
from ..system.detector import format_bytes, is_root
from ..version import app_version
from .base import Action, MenuScreen, Navigate, Screen, back_item, keys_help
from .routes import (
    ConfigMenuRoute,
    ConfirmRoute,
    DeveloperToolkitRoute,
    ExecutionRoute,
    FileBrowserRoute,
    FirewallManagementRoute,
    FrankenPHPServicesRoute,
    InstalledAppsRoute,
    MainMenuRoute,
    MySQLManagementRoute,
    NginxSitesRoute,
    PHPFPMManagementRoute,
    PostgreSQLManagementRoute,
    ProjectPathRoute,
    QuickCommandsRoute,
    RedisConfigRoute,
    SetupMenuRoute,
    SiteCommandsRoute,
    SupervisorManagementRoute,
    UserManagementRoute,
)

LOGO = r"""
 ____      ___     __ _    ____ _____
|  _ \    / \ \   / // \  / ___|_   _|
| |_) |  / _ \ \ / // _ \| |     | |
|  _ <  / ___ \ V // ___ \ |___  | |
|_| \_\/_/   \_\_//_/   \_\____| |_|
"""

MAIN_ROUTES = {
    "setup": SetupMenuRoute,
    "installed": InstalledAppsRoute,
    "config": ConfigMenuRoute,
    "site_commands": SiteCommandsRoute,
    "toolkit": DeveloperToolkitRoute,
    "users": UserManagementRoute,
    "quick": QuickCommandsRoute,
    "files": FileBrowserRoute,
    "project": ProjectPathRoute,
}

CONFIG_ROUTES = {
    "nginx": NginxSitesRoute,
    "redis": RedisConfigRoute,
    "mysql": MySQLManagementRoute,
    "postgresql": PostgreSQLManagementRoute,
    "phpfpm": PHPFPMManagementRoute,
    "supervisor": SupervisorManagementRoute,
    "firewall": FirewallManagementRoute,
    "frankenphp": FrankenPHPServicesRoute,
}


class SplashScreen(Screen):
    def handle_key(self, key: str) -> Action | None:
        return Navigate(MainMenuRoute(), replace=True)

    def render(self):
        version = f"Version {app_version()} ({platform.system().lower()}/{platform.machine()})"
        return [
            ("class:title", LOGO),
            ("", "\n"),
            ("class:subtitle", "Linux Server Management TUI"),
            ("", "\n\n"),
            ("class:description", "Power and Control for Your Server Infrastructure"),
            ("", "\n\n"),
            ("class:info", version),
            ("", "\n\n\n"),
            ("class:footer_dim", "Press any key to continue..."),
        ]

    def footer(self):
        return []


class MainMenuScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = f"RAVACT v{app_version()} - Main Menu"
        self.system: SystemInfo | None = None
        self.ip = ""

    def on_mount(self) -> Action | None:
        detector = self.managers.detector
        self.system = detector.system_info()
        self.ip = detector.primary_ip()
        return super().on_mount()

    def items(self) -> list[MenuItem]:
        return [*catalog.MAIN_MENU, MenuItem("__back__", "Exit", "Leave ravact", "")]

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(MAIN_ROUTES[item.key]())

    def render_summary(self):
        info = self.system
        if info is None:
            return []
        rows = [f"Host: {info.hostname} ({self.ip})" if self.ip and self.ip != "N/A" else f"Host: {info.hostname}"]
        if info.distribution:
            rows.append(f"OS: {info.distribution} {info.version}".rstrip())
        else:
            rows.append(f"OS: {info.os}")
        rows.append(f"Arch: {info.arch}")
        rows.append(f"CPU: {info.cpu_count} cores")
        if info.total_ram:
            rows.append(f"RAM: {format_bytes(info.total_ram)}")
        if info.total_disk:
            rows.append(f"Disk: {format_bytes(info.total_disk)}")
        lines = [("class:info", "  ".join(rows)), ("", "\n")]
        if not info.is_root:
            lines += [("class:warning", "⚠ Not running as root"), ("", "\n")]
        return lines


class ConfigMenuScreen(MenuScreen):
    title = "Service Settings"
    subtitle = "Configure installed services"

    def items(self) -> list[MenuItem]:
        return [*catalog.CONFIG_MENU, back_item("← Back to Main Menu")]

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(CONFIG_ROUTES[item.key]())


class QuickCommandsScreen(MenuScreen):
    title = "Quick Commands"

    def items(self) -> list[MenuItem]:
        out = []
        for idx, cmd in enumerate(catalog.QUICK_COMMANDS):
            category = "Nginx Commands" if idx < catalog.NGINX_QUICK_COUNT else "System Commands"
            tags = (" [root]" if cmd.require_root else "") + (" [confirm]" if cmd.confirm else "")
            out.append(MenuItem(cmd.id, cmd.name + tags, cmd.description, category))
        return out

    def select(self, item: MenuItem) -> Action | None:
        cmd = next(c for c in catalog.QUICK_COMMANDS if c.id == item.key)
        route = ExecutionRoute(CommandRequest(cmd.command, cmd.description))
        if cmd.confirm:
            return Navigate(ConfirmRoute(f"Run '{cmd.command}'?", lambda: route))
        return Navigate(route)

    def render_summary(self):
        if is_root():
            return []
        return [("class:warning", "Note: Some commands require root privileges"), ("", "\n")]

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "execute"), ("Esc", "back"), ("q", "quit"))
