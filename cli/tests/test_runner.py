from __future__ import annotations

import threading
from pathlib import Path

import pytest

from ravact import runner as runner_mod
from ravact.errors import CommandError, ValidationError
from ravact.models import CommandRequest
from ravact.runner import BackgroundExecution, CommandRunner, execute, list_scripts, run_script, validate_script


def test_execute_empty_command() -> None:
    result = execute(CommandRequest("   "))

    assert not result.success
    assert result.error == "No command specified"
    assert result.exit_code == -1


def test_execute_streams_lines() -> None:
    seen: list[str] = []
    result = execute(CommandRequest("echo one; echo two >&2"), on_line=seen.append)

    assert result.success
    assert seen == ["one", "two"]
    assert result.output == "one\ntwo"


def test_execute_reports_exit_status() -> None:
    result = execute(CommandRequest("exit 3"))

    assert not result.success
    assert result.exit_code == 3
    assert result.error == "exit status 3"


def test_execute_missing_binary() -> None:
    result = execute(CommandRequest("ravact-no-such-binary-here"))

    assert result.exit_code == 127
    assert "command not found" in result.error


def test_execute_timeout_kills_process_group() -> None:
    result = execute(CommandRequest("sleep 5"), timeout=0.3)

    assert not result.success
    assert result.exit_code == runner_mod.TIMEOUT_EXIT
    assert result.error.startswith("Command timed out")


def test_execute_uses_working_directory(tmp_path) -> None:
    result = execute(CommandRequest("pwd"), cwd=str(tmp_path))

    assert Path(result.output).resolve() == tmp_path.resolve()


def test_background_execution_posts_events() -> None:
    lines: list[str] = []
    results = []
    done = threading.Event()

    def post(fn, *args):
        fn(*args)

    def on_done(result) -> None:
        results.append(result)
        done.set()

    BackgroundExecution(CommandRequest("echo hi"), post=post, on_line=lines.append, on_done=on_done).start()

    assert done.wait(10)
    assert lines == ["hi"]
    assert results[0].success


def test_command_runner_missing_binary() -> None:
    res = CommandRunner().run(["ravact-no-such-binary-here"])

    assert res.returncode == 127
    assert "command not found" in res.stderr


def test_command_runner_check_raises_with_message() -> None:
    with pytest.raises(CommandError, match="failed to list: boom") as exc_info:
        CommandRunner().check(["bash", "-c", "echo boom >&2; exit 2"], message="failed to list")

    assert exc_info.value.exit_code == 2


def test_list_scripts_sorted(tmp_path) -> None:
    (tmp_path / "redis.sh").write_text("#!/bin/bash\n")
    (tmp_path / "nginx.sh").write_text("#!/bin/bash\n")
    (tmp_path / "notes.txt").write_text("x")

    assert [p.name for p in list_scripts(tmp_path)] == ["nginx.sh", "redis.sh"]
    assert list_scripts(tmp_path / "missing") == []


def test_validate_script_requires_shebang(tmp_path) -> None:
    script = tmp_path / "bad.sh"
    script.write_text("echo no shebang\n")

    with pytest.raises(ValidationError, match="must start with"):
        validate_script(script)


def test_run_script_with_env_overlay(tmp_path) -> None:
    script = tmp_path / "greet.sh"
    script.write_text("#!/bin/bash\necho \"$GREETING\"\n")

    result = run_script(script, env={"GREETING": "hello"})

    assert result.success
    assert result.output == "hello"


def test_run_script_missing(tmp_path) -> None:
    result = run_script(tmp_path / "nope.sh")

    assert not result.success
    assert result.error.startswith("Script not found:")


def test_run_script_timeout(tmp_path) -> None:
    script = tmp_path / "slow.sh"
    script.write_text("#!/bin/bash\nsleep 5\n")

    result = run_script(script, timeout=0.3)

    assert result.error == "Script execution timed out"
