from __future__ import annotations

import pytest

from ravact.models import CommandRequest
from ravact.screens.base import Execute, Tick
from ravact.screens.common import ConfirmScreen, TextDisplayScreen
from ravact.screens.menus import MainMenuScreen, SplashScreen
from ravact.screens.navigator import Navigator
from ravact.screens.routes import (
    ConfirmRoute,
    DeveloperToolkitRoute,
    ExecutionRoute,
    GroupDetailsRoute,
    TextDisplayRoute,
    UserManagementRoute,
)
from ravact.system.users import UserManager


def test_splash_is_replaced_by_main_menu(ctx) -> None:
    nav = Navigator(ctx)
    nav.start()
    assert isinstance(nav.current, SplashScreen)

    nav.handle_key("x")

    assert isinstance(nav.current, MainMenuScreen)
    assert len(nav.stack) == 1


def test_back_on_root_quits(ctx) -> None:
    nav = Navigator(ctx)
    nav.start(TextDisplayRoute("Root", "text"))
    nav.open(TextDisplayRoute("Child", "more"))

    nav.handle_key("esc")
    assert nav.running
    assert nav.current.title == "Root"

    nav.handle_key("esc")
    assert not nav.running
    assert nav.stack == []


def test_ctrl_c_quits_from_any_depth(ctx) -> None:
    nav = Navigator(ctx)
    nav.start(TextDisplayRoute("Root", "text"))
    nav.open(TextDisplayRoute("Child", "more"))

    nav.handle_key("ctrl+c")

    assert not nav.running


def test_confirm_notice_shown_on_parent(ctx) -> None:
    done = []
    nav = Navigator(ctx)
    nav.start(TextDisplayRoute("Log", "a\nb"))
    nav.open(ConfirmRoute("Remove it?", lambda: done.append(1) or "Removed it"))
    assert isinstance(nav.current, ConfirmScreen)

    nav.handle_key("y")

    assert done == [1]
    assert isinstance(nav.current, TextDisplayScreen)
    assert nav.current.success == "Removed it"


def test_deleted_detail_screen_closes_itself(ctx, runner, tmp_path) -> None:
    (tmp_path / "passwd").write_text("root:x:0:0:root:/root:/bin/bash\n", encoding="utf-8")
    (tmp_path / "group").write_text("root:x:0:\nstaff:x:1002:\n", encoding="utf-8")
    ctx.managers.users = UserManager(runner, passwd=str(tmp_path / "passwd"), group=str(tmp_path / "group"),
                                     sudoers_dir=str(tmp_path))
    nav = Navigator(ctx)
    nav.start(UserManagementRoute())
    root = nav.current
    nav.open(GroupDetailsRoute("staff"))

    nav.current.cursor = 2
    nav.handle_key("enter")
    assert isinstance(nav.current, ConfirmScreen)
    nav.handle_key("y")

    assert nav.current is root
    assert root.success == "Group 'staff' deleted"
    assert runner.calls[-1] == ["groupdel", "staff"]


def test_execution_effect_uses_project_dir(ctx) -> None:
    nav = Navigator(ctx)
    request = CommandRequest("ls", "List", needs_path=True)

    nav.start(ExecutionRoute(request))

    [(screen, action)] = nav.take_effects()
    assert screen is nav.current
    assert action == Execute(request, cwd=ctx.config.project_path)
    assert nav.take_effects() == []


def test_tick_after_pop_is_ignored(ctx) -> None:
    nav = Navigator(ctx)
    nav.start(TextDisplayRoute("Root", "text"))
    nav.open(DeveloperToolkitRoute())
    toolkit = nav.current

    nav.handle_key("c")
    assert nav.take_effects() == [(toolkit, Tick(1.0))]
    assert len(ctx.copied) == 1

    nav.tick(toolkit)
    assert nav.take_effects() == [(toolkit, Tick(1.0))]

    nav.handle_key("esc")
    nav.tick(toolkit)
    assert nav.take_effects() == []
    assert toolkit.copied.remaining == 2


def test_unregistered_route(ctx) -> None:
    with pytest.raises(LookupError, match="no screen registered for SplashRoute"):
        Navigator(ctx, screens={}).start()
