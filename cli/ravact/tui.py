from __future__ import annotations

import asyncio
import logging
import subprocess
from typing import Callable

from prompt_toolkit import Application
from prompt_toolkit.application import run_in_terminal
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.widgets import Frame

from .context import ScreenContext
from .runner import BackgroundExecution
from .screens.base import EditFile, Execute, Tick
from .screens.navigator import Navigator
from .version import app_version

log = logging.getLogger(__name__)

KEY_NAMES = {
    Keys.Up: "up",
    Keys.Down: "down",
    Keys.Left: "left",
    Keys.Right: "right",
    Keys.Enter: "enter",
    Keys.ControlJ: "enter",
    Keys.Escape: "esc",
    Keys.Tab: "tab",
    Keys.BackTab: "shift+tab",
    Keys.Backspace: "backspace",
    Keys.PageUp: "pageup",
    Keys.PageDown: "pagedown",
    Keys.Home: "home",
    Keys.End: "end",
    Keys.ControlC: "ctrl+c",
}


def _run_editor(editor: str, path: str) -> str | None:
    try:
        proc = subprocess.run([editor, path])
    except OSError as exc:
        return exc.strerror or str(exc)
    if proc.returncode != 0:
        return f"exit status {proc.returncode}"
    return None


def build_application(ctx: ScreenContext, nav: Navigator) -> tuple[Application, Callable[[], None]]:
    """Application plus the function that applies queued navigator effects."""

    def get_header() -> FormattedText:
        return FormattedText([("class:title", f" Ravact v{app_version()}")])

    def get_body() -> FormattedText:
        screen = nav.current
        if screen is None:
            return FormattedText([])
        return screen.render()

    def get_footer() -> FormattedText:
        screen = nav.current
        if screen is None:
            return FormattedText([])
        return FormattedText(screen.footer())

    def get_frame_title() -> str:
        screen = nav.current
        return screen.title if screen is not None and screen.title else "Ravact"

    def start_command(screen, action: Execute) -> None:
        loop = asyncio.get_running_loop()

        def on_line(line: str) -> None:
            screen.on_output(line)
            app.invalidate()

        def on_done(result) -> None:
            screen.on_complete(result)
            app.invalidate()

        BackgroundExecution(
            action.request,
            post=loop.call_soon_threadsafe,
            on_line=on_line,
            on_done=on_done,
            cwd=action.cwd,
            timeout=ctx.config.command_timeout,
        ).start()

    async def edit_file(screen, action: EditFile) -> None:
        log.info("editing %s with %s", action.path, action.editor)
        error = await run_in_terminal(lambda: _run_editor(action.editor, action.path))
        screen.on_edit_done(error)
        app.invalidate()

    def on_timer(screen) -> None:
        nav.tick(screen)
        sync()

    def sync() -> None:
        for screen, action in nav.take_effects():
            if isinstance(action, Execute):
                start_command(screen, action)
            elif isinstance(action, EditFile):
                app.create_background_task(edit_file(screen, action))
            elif isinstance(action, Tick):
                asyncio.get_running_loop().call_later(action.delay, on_timer, screen)
        if not nav.running:
            if app.is_running:
                app.exit()
            return
        app.invalidate()

    kb = KeyBindings()

    def _bind(key, name: str) -> None:
        @kb.add(key, eager=True)
        def _handler(_event) -> None:
            nav.handle_key(name)
            sync()

    for key, name in KEY_NAMES.items():
        _bind(key, name)

    @kb.add(Keys.Any)
    def _text(event) -> None:
        char = event.key_sequence[0].key
        if isinstance(char, str) and len(char) == 1 and char.isprintable():
            nav.handle_key(char)
            sync()

    @kb.add(Keys.BracketedPaste)
    def _paste(event) -> None:
        for char in getattr(event, "data", "") or "":
            if char.isprintable():
                nav.handle_key(char)
        sync()

    header = FormattedTextControl(text=get_header, focusable=False, show_cursor=False)
    body = FormattedTextControl(text=get_body, focusable=True, show_cursor=False)
    footer = FormattedTextControl(text=get_footer, focusable=False, show_cursor=False)

    root_container = HSplit(
        [
            Window(header, height=1, always_hide_cursor=True),
            Frame(Window(body, wrap_lines=True, always_hide_cursor=True), title=get_frame_title, style="class:frame"),
            Window(footer, height=1, always_hide_cursor=True),
        ]
    )
    app = Application(
        layout=Layout(root_container, focused_element=body),
        key_bindings=kb,
        style=ctx.theme.to_style(),
        full_screen=True,
    )
    return app, sync


def run_tui(ctx: ScreenContext) -> None:
    nav = Navigator(ctx)
    app, sync = build_application(ctx, nav)
    log.info("starting tui")
    nav.start()
    app.run(pre_run=sync)
    log.info("tui stopped")
