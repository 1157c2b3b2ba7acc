from __future__ import annotations

import logging
import os
import shlex
import shutil
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import Callable

from .errors import CommandError, ValidationError
from .models import CommandRequest, ExecutionResult

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600
SCRIPT_TIMEOUT = 1800
TIMEOUT_EXIT = 124
SHEBANGS = ("#!/bin/bash", "#!/bin/sh", "#!/usr/bin/env bash", "#!/usr/bin/env sh")


class CommandRunner:
    """Runs argv lists for the service managers.

    Spawn failures are folded into a non-zero result so callers only have to
    look at ``returncode``.
    """

    def __init__(self, timeout: float | None = 120):
        self.timeout = timeout

    def run(
            self,
            args: list[str],
            *,
            input: str | None = None,
            cwd: str | None = None,
    ) -> subprocess.CompletedProcess:
        log.debug("run: %s", shlex.join(args))
        try:
            return subprocess.run(
                args,
                text=True,
                input=input,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                cwd=cwd,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return subprocess.CompletedProcess(args, 127, "", f"{args[0]}: command not found")
        except subprocess.TimeoutExpired:
            return subprocess.CompletedProcess(args, TIMEOUT_EXIT, "", f"{args[0]}: timed out")

    def check(self, args: list[str], *, input: str | None = None, message: str = "") -> str:
        res = self.run(args, input=input)
        if res.returncode != 0:
            detail = (res.stderr or res.stdout or "").strip() or f"exit status {res.returncode}"
            raise CommandError(
                f"{message}: {detail}" if message else detail,
                output=(res.stdout or "") + (res.stderr or ""),
                exit_code=res.returncode,
            )
        return res.stdout or ""

    def output(self, args: list[str]) -> str:
        return (self.run(args).stdout or "").strip()

    def which(self, name: str) -> str | None:
        return shutil.which(name)


def _describe_exit(code: int) -> str:
    if code == 127:
        return "command not found (exit status 127)"
    if code == 126:
        return "permission denied (exit status 126)"
    if code < 0:
        return f"terminated by signal {-code}"
    return f"exit status {code}"


def execute(
        request: CommandRequest,
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        on_line: Callable[[str], None] | None = None,
) -> ExecutionResult:
    started = time.monotonic()
    command = request.command.strip()
    if not command:
        return ExecutionResult(success=False, error="No command specified", exit_code=-1)

    log.debug("execute: %s (cwd=%s)", request.description or command, cwd)
    try:
        proc = subprocess.Popen(
            ["bash", "-c", command],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
            env=env,
            start_new_session=True,
        )
    except OSError as exc:
        return ExecutionResult(
            success=False,
            error=f"failed to start command: {exc.strerror or exc}",
            exit_code=127,
            duration=time.monotonic() - started,
        )

    timed_out = threading.Event()

    def _kill() -> None:
        timed_out.set()
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except OSError:
            return

    timer = threading.Timer(timeout, _kill)
    timer.daemon = True
    timer.start()
    lines: list[str] = []
    try:
        assert proc.stdout is not None
        for raw in proc.stdout:
            line = raw.rstrip("\n")
            lines.append(line)
            if on_line is not None:
                on_line(line)
        code = proc.wait()
    finally:
        timer.cancel()

    output = "\n".join(lines)
    duration = time.monotonic() - started
    if timed_out.is_set():
        log.warning("command timed out after %ss: %s", timeout, command)
        return ExecutionResult(
            success=False,
            output=output,
            error=f"Command timed out after {int(timeout)} seconds",
            exit_code=TIMEOUT_EXIT,
            duration=duration,
        )
    if code != 0:
        log.info("command failed (%s): %s", code, command)
        return ExecutionResult(success=False, output=output, error=_describe_exit(code), exit_code=code, duration=duration)
    return ExecutionResult(success=True, output=output, exit_code=0, duration=duration)


class BackgroundExecution:
    """Runs one command on a worker thread and posts events to the UI loop.

    ``post`` must be thread safe, e.g. ``loop.call_soon_threadsafe``.
    """

    def __init__(
            self,
            request: CommandRequest,
            *,
            post: Callable[..., object],
            on_line: Callable[[str], None],
            on_done: Callable[[ExecutionResult], None],
            cwd: str | None = None,
            timeout: float = DEFAULT_TIMEOUT,
    ):
        self.request = request
        self._post = post
        self._on_line = on_line
        self._on_done = on_done
        self._cwd = cwd
        self._timeout = timeout
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        result = execute(
            self.request,
            cwd=self._cwd,
            timeout=self._timeout,
            on_line=lambda line: self._post(self._on_line, line),
        )
        self._post(self._on_done, result)


def list_scripts(scripts_dir: str | Path) -> list[Path]:
    path = Path(scripts_dir)
    if not path.is_dir():
        return []
    return sorted(p for p in path.glob("*.sh") if p.is_file())


def validate_script(path: str | Path) -> None:
    path = Path(path)
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            first = f.readline().strip()
    except OSError as exc:
        raise ValidationError("script", f"cannot read {path}: {exc.strerror or exc}") from exc
    if not first.startswith(SHEBANGS):
        raise ValidationError("script", f"{path.name} must start with #!/bin/bash or #!/bin/sh")


def run_script(
        path: str | Path,
        *,
        env: dict[str, str] | None = None,
        timeout: float = SCRIPT_TIMEOUT,
        on_line: Callable[[str], None] | None = None,
) -> ExecutionResult:
    path = Path(path)
    if not path.is_file():
        return ExecutionResult(success=False, error=f"Script not found: {path}", exit_code=-1)
    merged = {**os.environ, **(env or {})}
    result = execute(
        CommandRequest(command=f"/bin/bash {shlex.quote(str(path))}", description=path.name),
        env=merged,
        timeout=timeout,
        on_line=on_line,
    )
    if not result.success and result.error.startswith("Command timed out"):
        result.error = "Script execution timed out"
    return result
