from __future__ import annotations

from dataclasses import replace

from ..errors import RavactError
from ..models import MenuItem
from ..parsers import SupervisorProgram
from .base import Action, Back, MenuScreen, Navigate, back_item, kv_lines
from .forms import Field, FormScreen, to_int
from .routes import ConfirmRoute, ProgramFormRoute, ProgramSelectRoute, TextDisplayRoute, XMLRPCFormRoute

YES_NO = ("yes", "no")
VERBS = {"start": "started", "stop": "stopped", "restart": "restarted"}


def programs_text(programs: list[SupervisorProgram]) -> str:
    if not programs:
        return "No programs configured"
    width = max(len(p.name) for p in programs)
    lines = [f"{'NAME'.ljust(width)}  {'STATE':<9}  COMMAND"]
    lines += [f"{p.name.ljust(width)}  {p.state:<9}  {p.command}" for p in programs]
    return "\n".join(lines)


class SupervisorManagementScreen(MenuScreen):
    title = "Supervisor Management"

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("list", "List All Programs", "Programs in conf.d with their state"),
            MenuItem("add", "Add New Program", "Create a program configuration"),
            MenuItem("edit", "Edit Program"),
            MenuItem("start", "Start Program"),
            MenuItem("stop", "Stop Program"),
            MenuItem("restart", "Restart Program"),
            MenuItem("delete", "Delete Program"),
            MenuItem("xmlrpc", "Configure XML-RPC", "Enable the [inet_http_server] section"),
            MenuItem("xmlrpc_view", "View XML-RPC Config"),
            MenuItem("restart_supervisor", "Restart Supervisor", "Restart the supervisor service"),
            back_item("Back"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        sup = self.managers.supervisor
        if item.key == "list":
            programs = self.guard(sup.list_programs)
            if programs is None:
                return None
            return Navigate(TextDisplayRoute("Supervisor Programs", programs_text(programs)))
        if item.key == "add":
            return Navigate(ProgramFormRoute())
        if item.key in ("edit", "start", "stop", "restart", "delete"):
            programs = self.guard(sup.list_programs)
            if programs is None:
                return None
            if not programs:
                self.error = f"no programs available to {item.key}"
                return None
            return Navigate(ProgramSelectRoute(item.key, tuple(programs)))
        if item.key == "xmlrpc":
            return Navigate(XMLRPCFormRoute())
        if item.key == "xmlrpc_view":
            cfg = self.guard(sup.get_xmlrpc)
            if cfg is None:
                return None
            rows = [
                f"Enabled:  {'yes' if cfg.enabled else 'no'}",
                f"Address:  {cfg.ip}:{cfg.port}",
                f"Username: {cfg.username or '(none)'}",
                f"Password: {'set' if cfg.password else 'not set'}",
            ]
            return Navigate(TextDisplayRoute("XML-RPC Configuration", "\n".join(rows)))
        if item.key == "restart_supervisor":
            self.guard(sup.restart)
            if not self.error:
                self.success = "Supervisor restarted successfully"
        return None


class ProgramSelectScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = f"Select Program to {route.action.capitalize()}"

    def items(self) -> list[MenuItem]:
        out = [MenuItem(str(idx), f"{p.name:<24} {p.state}", p.command) for idx, p in enumerate(self.route.programs)]
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        sup = self.managers.supervisor
        prog = self.route.programs[int(item.key)]
        action = self.route.action
        if action == "edit":
            return Navigate(ProgramFormRoute(prog), replace=True)
        if action == "delete":
            return Navigate(ConfirmRoute(f"Delete program '{prog.name}'?", lambda: self.delete(prog.name)),
                            replace=True)
        method = sup.restart_program if action == "restart" else getattr(sup, action)
        try:
            method(prog.name)
        except RavactError as exc:
            self.fail(exc)
            return None
        return Back(notice=f"Program '{prog.name}' {VERBS[action]}")

    def delete(self, name: str) -> str:
        self.managers.supervisor.delete_program(name)
        return f"Program '{name}' deleted"


class ProgramFormScreen(FormScreen):
    def __init__(self, ctx, route):
        self.editing: SupervisorProgram | None = route.program
        self.title = f"Edit Program: {route.program.name}" if route.program else "Add New Program"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        prog = self.editing or SupervisorProgram(user="www-data")
        fields = []
        if self.editing is None:
            fields.append(Field("name", "Program name", placeholder="laravel-worker"))
        fields += [
            Field("command", "Command", prog.command, placeholder="php /var/www/app/artisan queue:work"),
            Field("directory", "Directory", prog.directory),
            Field("user", "User", prog.user),
            Field("autostart", "Autostart", "yes" if prog.autostart else "no", choices=YES_NO),
            Field("autorestart", "Autorestart", "yes" if prog.autorestart else "no", choices=YES_NO),
            Field("numprocs", "Processes", str(prog.numprocs)),
        ]
        return fields

    def apply(self, values: dict[str, str]) -> str:
        sup = self.managers.supervisor
        base = self.editing or SupervisorProgram(name=values["name"].strip())
        prog = replace(
            base,
            command=values["command"].strip(),
            directory=values["directory"].strip(),
            user=values["user"].strip(),
            autostart=values["autostart"] == "yes",
            autorestart=values["autorestart"] == "yes",
            numprocs=to_int(values["numprocs"], "numprocs"),
        )
        if self.editing is None:
            sup.create_program(prog)
            return f"Program '{prog.name}' created"
        sup.update_program(prog)
        return f"Program '{prog.name}' updated"


class XMLRPCFormScreen(FormScreen):
    title = "Configure XML-RPC"

    def build_fields(self) -> list[Field]:
        cfg = self.guard(self.managers.supervisor.get_xmlrpc)
        ip = cfg.ip if cfg else "127.0.0.1"
        port = cfg.port if cfg else "9001"
        return [
            Field("ip", "Listen IP", ip),
            Field("port", "Port", port),
            Field("username", "Username", cfg.username if cfg else ""),
            Field("password", "Password", secret=True),
        ]

    def apply(self, values: dict[str, str]) -> str:
        self.managers.supervisor.set_xmlrpc(values["ip"], values["port"], values["username"], values["password"])
        return f"XML-RPC enabled on {values['ip'].strip() or '127.0.0.1'}:{values['port'].strip()}"

    def render_intro(self):
        return kv_lines([("Note", "Supervisor is restarted to apply the change")]) + [("", "\n")]
