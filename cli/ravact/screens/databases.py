from __future__ import annotations

import os
from dataclasses import asdict

from ..models import CommandRequest, MenuItem
from ..system.files import parse_port
from .base import Action, MenuScreen, Navigate, back_item, keys_help
from .forms import Field, FormScreen, PasswordForm, restart_after
from .routes import (
    ConfirmRoute,
    CreateDatabaseRoute,
    DatabaseListRoute,
    ExecutionRoute,
    MySQLPasswordRoute,
    MySQLPortRoute,
    PostgreSQLPasswordRoute,
    PostgreSQLPortRoute,
    PostgreSQLSettingRoute,
    TextDisplayRoute,
)

SETTINGS = {
    "max_connections": ("Max connections", "update_max_connections"),
    "shared_buffers": ("Shared buffers", "update_shared_buffers"),
}


class _DatabaseMenu(MenuScreen):
    engine = ""
    label = ""

    @property
    def manager(self):
        return getattr(self.managers, self.engine)

    def config_text(self) -> str:
        rows = asdict(self.manager.get_config())
        width = max(len(k) for k in rows)
        return "\n".join(f"{k.ljust(width)}  {v}" for k, v in rows.items())

    def common(self, key: str) -> Action | None:
        manager = self.manager
        if key == "config":
            text = self.guard(self.config_text)
            if text is None:
                return None
            return Navigate(TextDisplayRoute(f"{self.label} Configuration", text))
        if key == "restart":
            self.guard(manager.restart)
            if not self.error:
                self.success = f"{self.label} restarted successfully"
        elif key == "status":
            return Navigate(TextDisplayRoute(f"{self.label} Service Status", manager.status()))
        elif key == "create":
            return Navigate(CreateDatabaseRoute(self.engine))
        elif key == "list":
            return Navigate(DatabaseListRoute(self.engine))
        return None


class MySQLManagementScreen(_DatabaseMenu):
    title = "MySQL Management"
    engine = "mysql"
    label = "MySQL"

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("config", "View Current Configuration", "Port, bind address, data directory and socket"),
            MenuItem("password", "Change Root Password", "Set a new password for the MySQL root user"),
            MenuItem("port", "Change Port", "Change the MySQL port (restarts the service)"),
            MenuItem("restart", "Restart MySQL Service", "Restart MySQL"),
            MenuItem("status", "View Service Status", "systemctl status mysql"),
            MenuItem("create", "Create Database", "Create a database and optionally a user"),
            MenuItem("list", "List Databases", "Show user databases"),
            back_item("Back"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "password":
            return Navigate(MySQLPasswordRoute())
        if item.key == "port":
            return Navigate(MySQLPortRoute())
        return self.common(item.key)

    def refresh(self) -> None:
        self.version = self.manager.version()
        super().refresh()

    def render_summary(self):
        return [("class:info", self.version), ("", "\n")] if self.version else []


class MySQLPasswordScreen(PasswordForm):
    title = "Change MySQL Root Password"

    def apply(self, values: dict[str, str]) -> str:
        self.managers.mysql.change_root_password(self.check_password(values))
        return "MySQL root password changed"


class MySQLPortScreen(FormScreen):
    title = "Change MySQL Port"

    def build_fields(self) -> list[Field]:
        cfg = self.guard(self.managers.mysql.get_config)
        return [Field("port", "Port (1024-65535)", str(cfg.port) if cfg else "", placeholder="3306")]

    def apply(self, values: dict[str, str]) -> str:
        mysql = self.managers.mysql
        port = parse_port(values["port"], low=1024)
        mysql.change_port(port)
        return restart_after(f"port set to {port}", mysql.restart)


class PostgreSQLManagementScreen(_DatabaseMenu):
    title = "PostgreSQL Management"
    engine = "postgresql"
    label = "PostgreSQL"

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("config", "View Current Configuration", "Port, connections, buffers and paths"),
            MenuItem("password", "Change Postgres Password", "Set a new password for the postgres user"),
            MenuItem("port", "Change Port", "Change the PostgreSQL port (restarts the service)"),
            MenuItem("max_connections", "Update Max Connections", "Between 10 and 10000"),
            MenuItem("shared_buffers", "Update Shared Buffers", "For example 128MB or 1GB"),
            MenuItem("restart", "Restart", "Restart PostgreSQL"),
            MenuItem("status", "View Service Status", "systemctl status postgresql"),
            MenuItem("create", "Create Database", "Create a database and optionally an owner"),
            MenuItem("list", "List Databases", "Show user databases"),
            back_item("Back"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "password":
            return Navigate(PostgreSQLPasswordRoute())
        if item.key == "port":
            return Navigate(PostgreSQLPortRoute())
        if item.key in SETTINGS:
            return Navigate(PostgreSQLSettingRoute(item.key))
        return self.common(item.key)


class PostgreSQLPasswordScreen(PasswordForm):
    title = "Change Postgres Password"

    def apply(self, values: dict[str, str]) -> str:
        self.managers.postgresql.change_password(self.check_password(values))
        return "postgres password changed"


class PostgreSQLPortScreen(FormScreen):
    title = "Change PostgreSQL Port"

    def build_fields(self) -> list[Field]:
        cfg = self.guard(self.managers.postgresql.get_config)
        return [Field("port", "Port (1024-65535)", str(cfg.port) if cfg else "", placeholder="5432")]

    def apply(self, values: dict[str, str]) -> str:
        pg = self.managers.postgresql
        port = parse_port(values["port"], low=1024)
        pg.change_port(port)
        return restart_after(f"port set to {port}", pg.restart)


class PostgreSQLSettingScreen(FormScreen):
    def __init__(self, ctx, route):
        self.label, self.method = SETTINGS[route.setting]
        self.title = f"Update {self.label}"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        cfg = self.guard(self.managers.postgresql.get_config)
        current = str(getattr(cfg, self.route.setting)) if cfg else ""
        return [Field("value", self.label, current)]

    def apply(self, values: dict[str, str]) -> str:
        pg = self.managers.postgresql
        getattr(pg, self.method)(values["value"])
        return restart_after(f"{self.route.setting} set to {values['value'].strip()}", pg.restart)


class CreateDatabaseScreen(FormScreen):
    def __init__(self, ctx, route):
        self.title = "Create Database" + (" (PostgreSQL)" if route.engine == "postgresql" else " (MySQL)")
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        owner = "Owner" if self.route.engine == "postgresql" else "User"
        return [
            Field("name", "Database name"),
            Field("user", f"{owner} (optional)"),
            Field("password", "Password", secret=True),
        ]

    def apply(self, values: dict[str, str]) -> str:
        manager = getattr(self.managers, self.route.engine)
        name = values["name"].strip()
        user = values["user"].strip()
        manager.create_database(name, user, values["password"])
        if user:
            return f"Database '{name}' created with user '{user}'"
        return f"Database '{name}' created"

    def render_intro(self):
        return [("class:description", "Leave the user empty to only create the database"), ("", "\n\n")]


class DatabaseListScreen(MenuScreen):
    """User databases; Enter exports the selected one into the project directory."""

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = "Databases" + (" (PostgreSQL)" if route.engine == "postgresql" else " (MySQL)")
        self.databases: list[str] = []

    @property
    def manager(self):
        return getattr(self.managers, self.route.engine)

    def refresh(self) -> None:
        self.databases = self.guard(self.manager.list_databases) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        return [MenuItem(name, name, f"Export to {self.target(name)}") for name in self.databases]

    def target(self, name: str) -> str:
        return os.path.join(self.ctx.config.working_dir(), f"{name}.sql")

    def select(self, item: MenuItem) -> Action | None:
        target = self.target(item.key)
        command = self.guard(self.manager.export_command, item.key, target)
        if command is None:
            return None
        route = ExecutionRoute(CommandRequest(command, f"Exporting {item.key} to {target}"))
        return Navigate(ConfirmRoute(f"Export {item.key} to {target}?", lambda: route))

    def render_summary(self):
        return [("class:info", f"{len(self.databases)} databases"), ("", "\n")]

    def empty_text(self) -> str:
        return "No user databases"

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "export"), ("Esc", "back"), ("q", "quit"))
