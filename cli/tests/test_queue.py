from __future__ import annotations

import pytest

from ravact.parsers import SupervisorProgram
from ravact.screens.navigator import Navigator
from ravact.screens.queue import LaravelQueueScreen, QueueWorkerFormScreen, QueueWorkerScreen, default_worker_name
from ravact.screens.routes import LaravelQueueRoute, QueueWorkerFormRoute, QueueWorkerRoute
from ravact.system.supervisor import group_target, queue_settings, queue_worker_command


def test_queue_worker_command() -> None:
    assert queue_worker_command("php", "/var/www/shop/", "emails", sleep="5") == (
        "php /var/www/shop/artisan queue:work --queue=emails --sleep=5 --tries=3 --timeout=90"
    )


def test_queue_settings_fill_defaults() -> None:
    settings = queue_settings("/usr/local/bin/fpcli /var/www/shop/artisan queue:work --queue=emails --tries=5")

    assert settings == {"executor": "/usr/local/bin/fpcli", "queue": "emails", "sleep": "3", "tries": "5",
                        "timeout": "90"}


def test_group_target() -> None:
    assert group_target(SupervisorProgram(name="worker")) == "worker"
    assert group_target(SupervisorProgram(name="worker", numprocs=3)) == "worker:*"


@pytest.mark.parametrize(
    ("project", "name"),
    [
        ("/var/www/shop", "laravel-queue-shop"),
        ("/srv/Acme Store/", "laravel-queue-Acme-Store"),
        ("/", "laravel-queue-app"),
    ],
)
def test_default_worker_name(project, name) -> None:
    assert default_worker_name(project) == name


def _worker(ctx, name: str, directory: str, numprocs: int = 1) -> SupervisorProgram:
    prog = SupervisorProgram(name=name, command=queue_worker_command("php", directory), directory=directory,
                             user="www-data", numprocs=numprocs)
    ctx.managers.supervisor.create_program(prog)
    return prog


def test_queue_workers_belong_to_the_project(ctx) -> None:
    project = ctx.config.project_path
    _worker(ctx, "shop-queue", project)
    _worker(ctx, "blog-queue", "/var/www/blog")
    ctx.managers.supervisor.create_program(SupervisorProgram(name="horizon", command="php artisan horizon",
                                                             directory=project))

    assert [p.name for p in ctx.managers.supervisor.queue_workers(project + "/")] == ["shop-queue"]


def test_queue_screen_lists_workers(ctx) -> None:
    _worker(ctx, "shop-queue", ctx.config.project_path)
    screen = LaravelQueueScreen(ctx, LaravelQueueRoute())
    screen.on_mount()

    assert [item.key for item in screen.entries] == ["0", "add", "__back__"]
    assert screen.entries[0].title.startswith("shop-queue")
    assert screen.handle_key("a").route == QueueWorkerFormRoute()


def test_queue_screen_without_workers(ctx) -> None:
    screen = LaravelQueueScreen(ctx, LaravelQueueRoute())
    screen.on_mount()

    summary = "".join(text for _, text in screen.render_summary())
    assert summary.startswith("No queue workers for this project")
    assert screen.error == ""


def test_add_worker_from_form(ctx, runner) -> None:
    nav = Navigator(ctx)
    nav.start(LaravelQueueRoute())
    nav.open(QueueWorkerFormRoute())
    form = nav.current
    fields = {f.name: f for f in form.fields}
    assert fields["name"].value == "laravel-queue-project"
    fields["queue"].value = "emails"
    fields["numprocs"].value = "2"
    form.focus = len(form.fields) - 1

    nav.handle_key("enter")

    assert form.success == "Queue worker 'laravel-queue-project' created"
    conf = ctx.managers.supervisor.program_dir / "laravel-queue-project.conf"
    text = conf.read_text(encoding="utf-8")
    project = ctx.config.project_path
    assert f"command=php {project}/artisan queue:work --queue=emails --sleep=3 --tries=3 --timeout=90\n" in text
    assert f"directory={project}\n" in text
    assert "numprocs=2\n" in text
    assert runner.ran("supervisorctl", "reread")

    nav.handle_key("x")
    assert isinstance(nav.current, LaravelQueueScreen)
    assert [w.name for w in nav.current.workers] == ["laravel-queue-project"]


def test_worker_form_rejects_bad_numbers(ctx) -> None:
    form = QueueWorkerFormScreen(ctx, QueueWorkerFormRoute())
    {f.name: f for f in form.fields}["tries"].value = "often"
    form.focus = len(form.fields) - 1

    form.handle_key("enter")

    assert form.focused.name == "tries"
    assert form.error
    assert not (ctx.managers.supervisor.program_dir / "laravel-queue-project.conf").exists()


def test_edit_worker_keeps_its_settings(ctx) -> None:
    prog = _worker(ctx, "shop-queue", ctx.config.project_path)
    prog.command = queue_worker_command("php", ctx.config.project_path, "emails", timeout="120")
    ctx.managers.supervisor.update_program(prog)

    form = QueueWorkerFormScreen(ctx, QueueWorkerFormRoute(prog))
    fields = {f.name: f.value for f in form.fields}

    assert "name" not in fields
    assert (fields["queue"], fields["timeout"], fields["user"]) == ("emails", "120", "www-data")
    form.fields[-1].value = "4"
    form.focus = len(form.fields) - 1
    form.handle_key("enter")

    assert form.success == "Queue worker 'shop-queue' updated"
    [saved] = ctx.managers.supervisor.queue_workers(ctx.config.project_path)
    assert saved.numprocs == 4
    assert "--queue=emails" in saved.command


def test_worker_start_addresses_the_group(ctx, runner) -> None:
    prog = _worker(ctx, "shop-queue", ctx.config.project_path, numprocs=3)
    screen = QueueWorkerScreen(ctx, QueueWorkerRoute(prog))
    screen.on_mount()
    screen.cursor = [item.key for item in screen.entries].index("start")

    screen.handle_key("enter")

    assert ["supervisorctl", "start", "shop-queue:*"] in runner.calls
    assert screen.success == "Worker 'shop-queue' started"


def test_worker_delete(ctx) -> None:
    prog = _worker(ctx, "shop-queue", ctx.config.project_path)
    nav = Navigator(ctx)
    nav.start(LaravelQueueRoute())
    listing = nav.current
    nav.open(QueueWorkerRoute(prog))
    nav.current.cursor = [item.key for item in nav.current.entries].index("delete")
    nav.handle_key("enter")

    nav.handle_key("y")

    assert nav.current is listing
    assert listing.success == "Queue worker 'shop-queue' deleted"
    assert listing.workers == []


def test_bad_worker_name_is_reported_on_the_field(ctx) -> None:
    form = QueueWorkerFormScreen(ctx, QueueWorkerFormRoute())
    form.fields[0].value = "shop queue"
    form.focus = len(form.fields) - 1

    form.handle_key("enter")

    assert form.focused.name == "name"
    assert "letters, digits" in form.error
    assert not list(ctx.managers.supervisor.program_dir.glob("*.conf"))
