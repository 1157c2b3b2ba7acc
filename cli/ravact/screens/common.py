from __future__ import annotations

import os

from ..config import save_config
from ..errors import RavactError, ValidationError
from ..models import ExecutionResult, MenuItem
from ..output import NO_OUTPUT, OutputBuffer
from .base import (
    Action,
    Back,
    BACK_KEYS,
    CONFIRM_KEYS,
    DOWN_KEYS,
    EditFile,
    Execute,
    MenuScreen,
    Navigate,
    Quit,
    Screen,
    Tick,
    UP_KEYS,
    back_item,
    keys_help,
)
from .forms import Field, FormScreen

COPY_SECONDS = 3


class CopyBanner:
    """Countdown for the "copied to clipboard" notice, driven by Tick actions."""

    def __init__(self):
        self.text = ""
        self.remaining = 0

    def copy(self, ctx, text: str, label: str) -> Action:
        try:
            ctx.clipboard(text)
            self.text = f"Copied: {label}"
        except RavactError as exc:
            self.text = f"({exc})"
        self.remaining = COPY_SECONDS
        return Tick(1.0)

    def tick(self) -> Action | None:
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        if self.remaining == 0:
            self.text = ""
            return None
        return Tick(1.0)


class ExecutionScreen(Screen):
    title = "Executing Command"
    view_height = 20

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.request = route.request
        self.buffer = OutputBuffer()
        self.running = False
        self.result: ExecutionResult | None = None
        self.scroll = 0
        self.cwd: str | None = None

    def on_mount(self) -> Action | None:
        self.running = True
        if self.request.needs_path:
            self.cwd = self.ctx.config.working_dir()
        return Execute(self.request, cwd=self.cwd)

    def on_resume(self, notice: str = "") -> Action | None:
        if notice:
            self.success = notice
        return None

    def on_output(self, line: str) -> None:
        self.buffer.append(line)

    def on_complete(self, result: ExecutionResult) -> None:
        self.running = False
        self.result = result
        if not result.output.strip() and not len(self.buffer):
            self.buffer.append(NO_OUTPUT)
        if not result.success:
            self.buffer.append("")
            self.buffer.append(f"Command failed with error: {result.error}")

    def handle_key(self, key: str) -> Action | None:
        if self.running:
            return None
        return super().handle_key(key)

    def on_key(self, key: str) -> Action | None:
        if key in UP_KEYS:
            self.scroll = min(self.scroll + 1, max(0, len(self.buffer) - self.view_height))
        elif key in DOWN_KEYS:
            self.scroll = max(0, self.scroll - 1)
        elif key == "pageup":
            self.scroll = min(self.scroll + self.view_height, max(0, len(self.buffer) - self.view_height))
        elif key == "pagedown":
            self.scroll = max(0, self.scroll - self.view_height)
        elif key in CONFIRM_KEYS or key in BACK_KEYS:
            return Back()
        elif key == "q":
            return Quit()
        return None

    def render_body(self) -> list[tuple[str, str]]:
        sym = self.theme.symbols
        lines: list[tuple[str, str]] = [("class:label", self.request.description or self.request.command.strip()),
                                        ("", "\n")]
        if self.cwd:
            lines += [("class:description", f"Working directory: {self.cwd}"), ("", "\n")]
        lines.append(("", "\n"))
        end = len(self.buffer) - self.scroll
        start = max(0, end - self.view_height)
        visible = list(self.buffer.lines)[start:end]
        lines += [("class:output", "\n".join(visible)), ("", "\n\n")]
        if self.running:
            lines.append(("class:info", "Running..."))
        elif self.result is not None and self.result.success:
            lines.append(("class:success", f"{sym.check} Completed in {self.result.duration:.1f}s"))
        elif self.result is not None:
            lines.append(("class:error", f"{sym.cross} Failed (exit code {self.result.exit_code})"))
        return lines

    def footer(self) -> list[tuple[str, str]]:
        if self.running:
            return keys_help(("Ctrl+C", "quit"))
        return keys_help(("↑/↓", "scroll"), ("Enter/Esc", "back"), ("q", "quit"))


class TextDisplayScreen(Screen):
    view_height = 25

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = route.title
        self.lines = route.text.splitlines() or ["(empty)"]
        self.offset = 0

    def on_key(self, key: str) -> Action | None:
        last = max(0, len(self.lines) - self.view_height)
        if key in UP_KEYS:
            self.offset = max(0, self.offset - 1)
        elif key in DOWN_KEYS:
            self.offset = min(last, self.offset + 1)
        elif key == "pageup":
            self.offset = max(0, self.offset - self.view_height)
        elif key == "pagedown":
            self.offset = min(last, self.offset + self.view_height)
        elif key in CONFIRM_KEYS:
            return Back()
        else:
            return super().on_key(key)
        return None

    def render_body(self) -> list[tuple[str, str]]:
        visible = self.lines[self.offset:self.offset + self.view_height]
        return [("class:output", "\n".join(visible)), ("", "\n")]

    def footer(self) -> list[tuple[str, str]]:
        return keys_help(("↑/↓", "scroll"), ("Esc", "back"), ("q", "quit"))


class ConfirmScreen(MenuScreen):
    title = "Confirm"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.subtitle = route.question

    def items(self) -> list[MenuItem]:
        return [MenuItem("no", "No, cancel"), MenuItem("yes", "Yes, continue")]

    def on_other_key(self, key: str) -> Action | None:
        if key == "y":
            return self.confirm()
        if key == "n":
            return Back()
        return None

    def select(self, item: MenuItem) -> Action | None:
        if item.key == "no":
            return Back()
        return self.confirm()

    def confirm(self) -> Action | None:
        try:
            outcome = self.route.on_confirm()
        except RavactError as exc:
            self.fail(exc)
            return None
        if isinstance(outcome, str):
            return Back(notice=outcome)
        return Navigate(outcome, replace=True)

    def footer(self) -> list[tuple[str, str]]:
        return keys_help(("y", "yes"), ("n/Esc", "no"))


class PromptScreen(FormScreen):
    def __init__(self, ctx, route):
        self.title = route.title
        super().__init__(ctx, route)

    def build_fields(self) -> list[Field]:
        return [Field("value", self.route.label, self.route.value, secret=self.route.secret)]

    def apply(self, values: dict[str, str]) -> str:
        return self.route.on_submit(values["value"])


class ProjectPathScreen(FormScreen):
    title = "Project Directory"
    subtitle = "Commands that need a project run from this directory"

    def build_fields(self) -> list[Field]:
        return [Field("path", "Path", self.ctx.config.project_path, placeholder=os.getcwd())]

    def apply(self, values: dict[str, str]) -> str:
        path = os.path.expanduser(values["path"].strip())
        if path and not os.path.isdir(path):
            raise ValidationError("path", f"directory not found: {path}")
        self.ctx.config.project_path = os.path.abspath(path) if path else ""
        try:
            save_config(self.ctx.config)
        except OSError as exc:
            raise ValidationError("", f"failed to save settings: {exc.strerror or exc}") from exc
        return f"Project directory set to {self.ctx.config.working_dir()}"


class EditorSelectionScreen(MenuScreen):
    title = "Select Editor"
    back_on_success = True

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.subtitle = route.path
        self.editor = ""

    def items(self) -> list[MenuItem]:
        return [
            MenuItem("nano", "nano", "nano - User-friendly editor (recommended)"),
            MenuItem("vi", "vi", "vi - Classic Unix editor (advanced)"),
            back_item("← Cancel"),
        ]

    def select(self, item: MenuItem) -> Action | None:
        self.editor = item.key
        return EditFile(self.route.path, item.key)

    def on_edit_done(self, error: str | None) -> None:
        if error:
            self.error = f"Failed to run {self.editor}: {error}"
        else:
            self.success = f"Config file edited with {self.editor}"
