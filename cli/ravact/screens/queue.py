from __future__ import annotations

import os
import re
import shlex
from dataclasses import replace

from ..models import CommandRequest, MenuItem
from ..parsers import SupervisorProgram
from ..system.supervisor import LOG_DIR, QUEUE_DEFAULTS, group_target, queue_settings, queue_worker_command
from .base import Action, Back, MenuScreen, Navigate, back_item, keys_help, kv_lines
from .forms import Field, FormScreen, to_int
from .routes import ConfirmRoute, EditorSelectionRoute, ExecutionRoute, QueueWorkerFormRoute, QueueWorkerRoute
from .supervisor import VERBS

ADD = "add"


def default_worker_name(project: str) -> str:
    folder = re.sub(r"[^A-Za-z0-9_-]+", "-", os.path.basename(project.rstrip("/"))).strip("-")
    return f"laravel-queue-{folder or 'app'}"


class LaravelQueueScreen(MenuScreen):
    title = "Laravel Queue Workers"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.project = ""
        self.workers: list[SupervisorProgram] = []

    def refresh(self) -> None:
        self.project = self.ctx.config.working_dir()
        self.subtitle = f"Supervisor programs running artisan queue:work in {self.project}"
        self.workers = self.guard(self.managers.supervisor.queue_workers, self.project) or []
        super().refresh()

    def items(self) -> list[MenuItem]:
        out = [MenuItem(str(idx), f"{p.name:<28} {p.state}", p.command) for idx, p in enumerate(self.workers)]
        out.append(MenuItem(ADD, "Add Queue Worker", "Create a supervisor program for php artisan queue:work"))
        return out + [back_item()]

    def select(self, item: MenuItem) -> Action | None:
        if item.key == ADD:
            return Navigate(QueueWorkerFormRoute())
        return Navigate(QueueWorkerRoute(self.workers[int(item.key)]))

    def on_other_key(self, key: str) -> Action | None:
        if key == "r":
            self.refresh()
        elif key == "a":
            return Navigate(QueueWorkerFormRoute())
        return None

    def render_summary(self):
        if self.workers:
            return []
        return [("class:description", "No queue workers for this project"), ("", "\n")]

    def footer(self):
        return keys_help(("Enter", "manage"), ("a", "add"), ("r", "refresh"), ("Esc", "back"), ("q", "quit"))


class QueueWorkerScreen(MenuScreen):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.program: SupervisorProgram = route.program
        self.title = f"Queue Worker: {self.program.name}"
        self.deleted = False

    def refresh(self) -> None:
        programs = self.guard(self.managers.supervisor.list_programs) or []
        for prog in programs:
            if prog.name == self.program.name:
                self.program = prog
        super().refresh()

    def on_resume(self, notice: str = "") -> Action | None:
        if self.deleted:
            return Back(notice=notice)
        return super().on_resume(notice)

    def items(self) -> list[MenuItem]:
        target = group_target(self.program)
        return [
            MenuItem("start", "Start", f"supervisorctl start {target}"),
            MenuItem("stop", "Stop", f"supervisorctl stop {target}"),
            MenuItem("restart", "Restart", f"supervisorctl restart {target}"),
            MenuItem("status", "View Status"),
            MenuItem("logs", "View Logs", self.log_file()),
            MenuItem("edit", "Edit Configuration (Form)"),
            MenuItem("edit_file", "Edit Configuration (Editor)", self.program.config_path),
            MenuItem("delete", "Delete Worker", "Stop the worker and remove its program file"),
            back_item(),
        ]

    def log_file(self) -> str:
        return f"{LOG_DIR}/{self.program.name}.log"

    def select(self, item: MenuItem) -> Action | None:
        sup = self.managers.supervisor
        target = group_target(self.program)
        if item.key in VERBS:
            method = sup.restart_program if item.key == "restart" else getattr(sup, item.key)
            method(target)
            self.success = f"Worker '{self.program.name}' {VERBS[item.key]}"
            self.refresh()
            return None
        if item.key == "status":
            request = CommandRequest(f"supervisorctl status {shlex.quote(target)}", f"Status of {target}")
            return Navigate(ExecutionRoute(request))
        if item.key == "logs":
            request = CommandRequest(f"tail -n 100 {shlex.quote(self.log_file())}", f"Logs of {self.program.name}")
            return Navigate(ExecutionRoute(request))
        if item.key == "edit":
            return Navigate(QueueWorkerFormRoute(self.program))
        if item.key == "edit_file":
            return Navigate(EditorSelectionRoute(self.program.config_path))
        if item.key == "delete":
            return Navigate(ConfirmRoute(f"Delete queue worker '{self.program.name}'?", self.delete))
        return None

    def delete(self) -> str:
        self.managers.supervisor.delete_program(self.program.name)
        self.deleted = True
        return f"Queue worker '{self.program.name}' deleted"

    def render_summary(self):
        prog = self.program
        settings = queue_settings(prog.command)
        return kv_lines([
            ("State", prog.state),
            ("User", prog.user or "root"),
            ("Directory", prog.directory),
            ("Queue", settings["queue"]),
            ("Workers", str(prog.numprocs)),
            ("Command", prog.command),
        ])


class QueueWorkerFormScreen(FormScreen):
    def __init__(self, ctx, route):
        self.editing: SupervisorProgram | None = route.program
        self.title = f"Edit Queue Worker: {route.program.name}" if route.program else "Add Queue Worker"
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        prog = self.editing
        settings = queue_settings(prog.command) if prog else {**QUEUE_DEFAULTS, "executor": "php"}
        fields = []
        if prog is None:
            fields.append(Field("name", "Worker name", default_worker_name(self.ctx.config.working_dir())))
        fields += [
            Field("user", "Run as user", prog.user if prog else "www-data"),
            Field("executor", "Executor", settings["executor"], placeholder="php or /usr/local/bin/fpcli"),
            Field("queue", "Queue", settings["queue"]),
            Field("sleep", "Sleep (seconds)", settings["sleep"]),
            Field("tries", "Max tries", settings["tries"]),
            Field("timeout", "Timeout (seconds)", settings["timeout"]),
            Field("numprocs", "Workers", str(prog.numprocs) if prog else "1"),
        ]
        return fields

    def apply(self, values: dict[str, str]) -> str:
        sup = self.managers.supervisor
        project = self.editing.directory if self.editing else self.ctx.config.working_dir()
        numbers = {name: str(to_int(values[name], name)) for name in ("sleep", "tries", "timeout")}
        command = queue_worker_command(values["executor"].strip() or "php", project,
                                       values["queue"].strip() or "default", **numbers)
        base = self.editing or SupervisorProgram(name=values["name"].strip())
        prog = replace(
            base,
            command=command,
            directory=project,
            user=values["user"].strip(),
            numprocs=to_int(values["numprocs"], "numprocs"),
        )
        if self.editing is None:
            sup.create_program(prog)
            return f"Queue worker '{prog.name}' created"
        sup.update_program(prog)
        return f"Queue worker '{prog.name}' updated"
