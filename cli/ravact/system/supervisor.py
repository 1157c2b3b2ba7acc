from __future__ import annotations

import logging
import re
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError
from ..parsers import SupervisorProgram, XMLRPCConfig, parse_supervisor_program, parse_xmlrpc_config
from ..runner import CommandRunner
from .files import first_existing, list_dir, parse_port, read_lines, read_text, remove, write_lines, write_text

log = logging.getLogger(__name__)

MAIN_CONFIGS = ("/etc/supervisor/supervisord.conf", "/etc/supervisord.conf")
PROGRAM_DIR = "/etc/supervisor/conf.d"
LOG_DIR = "/var/log/supervisor"
_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
QUEUE_WORK = "queue:work"
QUEUE_DEFAULTS = {"queue": "default", "sleep": "3", "tries": "3", "timeout": "90"}
_QUEUE_FLAG_RE = re.compile(r"--(queue|sleep|tries|timeout)=(\S+)")


def render_program(prog: SupervisorProgram) -> str:
    lines = [
        f"[program:{prog.name}]",
        f"command={prog.command}",
    ]
    if prog.directory:
        lines.append(f"directory={prog.directory}")
    if prog.user:
        lines.append(f"user={prog.user}")
    if prog.numprocs > 1:
        lines += [f"numprocs={prog.numprocs}", "process_name=%(program_name)s_%(process_num)02d"]
    lines += [
        f"autostart={'true' if prog.autostart else 'false'}",
        f"autorestart={'true' if prog.autorestart else 'false'}",
        "redirect_stderr=true",
        f"stdout_logfile={LOG_DIR}/{prog.name}.log",
        "stdout_logfile_maxbytes=10MB",
        "stdout_logfile_backups=10",
    ]
    return "\n".join(lines) + "\n"


def queue_worker_command(executor: str, project: str, queue: str = "default", sleep: str = "3",
                         tries: str = "3", timeout: str = "90") -> str:
    return (f"{executor} {project.rstrip('/')}/artisan {QUEUE_WORK} --queue={queue} --sleep={sleep} "
            f"--tries={tries} --timeout={timeout}")


def queue_settings(command: str) -> dict[str, str]:
    """Executor and queue:work flags of a worker command, with Laravel's defaults filled in."""
    settings = dict(QUEUE_DEFAULTS)
    parts = command.split()
    settings["executor"] = parts[0] if parts else "php"
    settings.update(_QUEUE_FLAG_RE.findall(command))
    return settings


def group_target(prog: SupervisorProgram) -> str:
    """supervisorctl name; programs with numprocs > 1 are addressed as a group."""
    return f"{prog.name}:*" if prog.numprocs > 1 else prog.name


def _render_xmlrpc(cfg: XMLRPCConfig) -> list[str]:
    lines = ["[inet_http_server]", f"port={cfg.ip}:{cfg.port}"]
    if cfg.username:
        lines.append(f"username={cfg.username}")
    if cfg.password:
        lines.append(f"password={cfg.password}")
    return lines


class SupervisorManager:
    service = "supervisor"

    def __init__(
            self,
            runner: CommandRunner | None = None,
            main_configs=MAIN_CONFIGS,
            program_dir: str = PROGRAM_DIR,
    ):
        self.runner = runner or CommandRunner()
        self.main_configs = tuple(main_configs)
        self.program_dir = Path(program_dir)

    def main_config(self) -> Path:
        path = first_existing(self.main_configs)
        if path is None:
            raise NotInstalledError("supervisor config file not found")
        return path

    def list_programs(self) -> list[SupervisorProgram]:
        if not self.program_dir.is_dir():
            raise NotInstalledError(f"supervisor program directory not found: {self.program_dir}")
        programs: list[SupervisorProgram] = []
        for path in list_dir(self.program_dir, "*.conf"):
            prog = parse_supervisor_program(read_text(path))
            if not prog.name:
                prog.name = path.stem
            prog.config_path = str(path)
            prog.state = self.program_state(prog.name)
            programs.append(prog)
        return programs

    def queue_workers(self, project: str) -> list[SupervisorProgram]:
        project = project.rstrip("/")
        return [p for p in self.list_programs()
                if QUEUE_WORK in p.command and p.directory.rstrip("/") == project]

    def program_state(self, name: str) -> str:
        out = self.runner.output(["supervisorctl", "status", name])
        fields = out.split()
        if len(fields) >= 2:
            return fields[1]
        return "UNKNOWN"

    def _ctl(self, action: str, name: str) -> None:
        self.runner.check(["supervisorctl", action, name], message=f"failed to {action} {name}")

    def start(self, name: str) -> None:
        self._ctl("start", name)

    def stop(self, name: str) -> None:
        self._ctl("stop", name)

    def restart_program(self, name: str) -> None:
        self._ctl("restart", name)

    def reread(self) -> None:
        self.runner.check(["supervisorctl", "reread"], message="failed to reread supervisor config")
        self.runner.check(["supervisorctl", "update"], message="failed to update supervisor")

    def _validate(self, prog: SupervisorProgram) -> None:
        if not _NAME_RE.match(prog.name):
            raise ValidationError("name", "may only contain letters, digits, dashes and underscores")
        if not prog.command.strip():
            raise ValidationError("command", "command is required")
        if prog.numprocs < 1:
            raise ValidationError("numprocs", "must be at least 1")

    def create_program(self, prog: SupervisorProgram) -> None:
        self._validate(prog)
        path = self.program_dir / f"{prog.name}.conf"
        if path.exists():
            raise CommandError(f"program already exists: {prog.name}")
        write_text(path, render_program(prog))
        log.info("created supervisor program %s", prog.name)
        self.reread()

    def update_program(self, prog: SupervisorProgram) -> None:
        self._validate(prog)
        path = self.program_dir / f"{prog.name}.conf"
        if not path.exists():
            raise CommandError(f"program not found: {prog.name}")
        write_text(path, render_program(prog))
        log.info("updated supervisor program %s", prog.name)
        self.reread()

    def delete_program(self, name: str) -> None:
        path = self.program_dir / f"{name}.conf"
        if not path.exists():
            raise CommandError(f"program not found: {name}")
        self.runner.run(["supervisorctl", "stop", name])
        remove(path)
        log.info("deleted supervisor program %s", name)
        self.reread()

    def get_xmlrpc(self) -> XMLRPCConfig:
        path = self.main_config()
        return parse_xmlrpc_config(read_text(path))

    def set_xmlrpc(self, ip: str, port: str, username: str = "", password: str = "") -> None:
        ip = ip.strip() or "127.0.0.1"
        cfg = XMLRPCConfig(enabled=True, ip=ip, port=str(parse_port(port)), username=username.strip(), password=password)
        path = self.main_config()
        lines = read_lines(path)
        out: list[str] = []
        skipping = False
        written = False
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("["):
                skipping = stripped == "[inet_http_server]"
                if skipping:
                    out += _render_xmlrpc(cfg)
                    written = True
                    continue
            if skipping:
                if stripped and not stripped.startswith((";", "#")):
                    continue
                if not stripped:
                    out.append(line)
                continue
            out.append(line)
        if not written:
            out += ["", *_render_xmlrpc(cfg)]
        write_lines(path, out)
        log.info("supervisor xml-rpc set to %s:%s", cfg.ip, cfg.port)
        self.restart()

    def restart(self) -> None:
        self.runner.check(["systemctl", "restart", self.service], message="failed to restart supervisor")
