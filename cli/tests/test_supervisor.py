from __future__ import annotations

import pytest

from ravact.errors import CommandError, NotInstalledError, ValidationError
from ravact.parsers import SupervisorProgram
from ravact.system.supervisor import SupervisorManager


@pytest.fixture
def supervisor(runner, tmp_path) -> SupervisorManager:
    conf = tmp_path / "supervisord.conf"
    conf.write_text(
        "[unix_http_server]\nfile=/var/run/supervisor.sock\n\n"
        "[inet_http_server]\nport=127.0.0.1:9001\nusername=old\n\n"
        "[include]\nfiles = /etc/supervisor/conf.d/*.conf\n",
        encoding="utf-8",
    )
    return SupervisorManager(runner, (str(conf),), str(tmp_path / "conf.d"))


def test_create_program_writes_config_and_rereads(runner, supervisor) -> None:
    supervisor.create_program(SupervisorProgram(name="queue", command="php artisan queue:work",
                                                directory="/srv/app", user="www-data", numprocs=2))

    text = (supervisor.program_dir / "queue.conf").read_text()
    assert text.startswith("[program:queue]\ncommand=php artisan queue:work\n")
    assert "process_name=%(program_name)s_%(process_num)02d" in text
    assert runner.calls[-2:] == [["supervisorctl", "reread"], ["supervisorctl", "update"]]


def test_list_programs_reads_state(runner, supervisor) -> None:
    supervisor.create_program(SupervisorProgram(name="worker", command="/usr/bin/worker"))
    runner.on("supervisorctl", "status", "worker", stdout="worker   RUNNING   pid 42, uptime 0:01:00\n")

    [prog] = supervisor.list_programs()

    assert (prog.name, prog.command, prog.state) == ("worker", "/usr/bin/worker", "RUNNING")


def test_list_programs_without_directory(runner, tmp_path) -> None:
    with pytest.raises(NotInstalledError):
        SupervisorManager(runner, (), str(tmp_path / "none")).list_programs()


def test_program_validation(supervisor) -> None:
    with pytest.raises(ValidationError) as exc:
        supervisor.create_program(SupervisorProgram(name="worker", command="  "))
    assert exc.value.field == "command"

    with pytest.raises(ValidationError):
        supervisor.create_program(SupervisorProgram(name="bad name", command="x"))


def test_delete_program_stops_first(runner, supervisor) -> None:
    supervisor.create_program(SupervisorProgram(name="worker", command="x"))

    supervisor.delete_program("worker")

    assert ["supervisorctl", "stop", "worker"] in runner.calls
    assert not (supervisor.program_dir / "worker.conf").exists()
    with pytest.raises(CommandError, match="program not found"):
        supervisor.delete_program("worker")


def test_update_reread_failure_is_reported(runner, supervisor) -> None:
    supervisor.create_program(SupervisorProgram(name="worker", command="x"))
    runner.on("supervisorctl", "reread", returncode=2, stderr="unix:///var/run/supervisor.sock no such file")

    with pytest.raises(CommandError, match="failed to reread supervisor config"):
        supervisor.update_program(SupervisorProgram(name="worker", command="y"))
    assert "command=y" in (supervisor.program_dir / "worker.conf").read_text()


def test_set_xmlrpc_replaces_section_and_restarts(runner, supervisor) -> None:
    supervisor.set_xmlrpc("*", "9002", "admin", "secret")

    cfg = supervisor.get_xmlrpc()
    assert (cfg.enabled, cfg.ip, cfg.port) == (True, "*", "9002")
    text = supervisor.main_config().read_text()
    assert "username=old" not in text
    assert text.count("[inet_http_server]") == 1
    assert "[include]" in text
    assert runner.calls[-1] == ["systemctl", "restart", "supervisor"]


def test_set_xmlrpc_appends_when_missing(runner, tmp_path) -> None:
    conf = tmp_path / "supervisord.conf"
    conf.write_text("[supervisord]\nlogfile=/var/log/supervisor/supervisord.log\n", encoding="utf-8")
    mgr = SupervisorManager(runner, (str(conf),), str(tmp_path / "conf.d"))

    mgr.set_xmlrpc("", "9001")

    assert conf.read_text().endswith("\n[inet_http_server]\nport=127.0.0.1:9001\n")
