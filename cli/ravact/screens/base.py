from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from prompt_toolkit.formatted_text import FormattedText

from ..context import ScreenContext
from ..errors import RavactError
from ..models import CommandRequest, MenuItem
from .routes import Route

log = logging.getLogger(__name__)

BACK = "__back__"
UP_KEYS = ("up", "k")
DOWN_KEYS = ("down", "j")
CONFIRM_KEYS = ("enter", " ")
BACK_KEYS = ("esc", "backspace")
PAGE = 10


@dataclass(frozen=True)
class Navigate:
    route: Route
    replace: bool = False


@dataclass(frozen=True)
class Back:
    notice: str = ""


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Execute:
    request: CommandRequest
    cwd: str | None = None


@dataclass(frozen=True)
class EditFile:
    path: str
    editor: str


@dataclass(frozen=True)
class Tick:
    delay: float = 1.0


Action = Union[Navigate, Back, Quit, Execute, EditFile, Tick]


def clamp(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(count - 1, index))


def back_item(title: str = "← Back") -> MenuItem:
    return MenuItem(BACK, title)


class Screen:
    """One navigable view.

    ``handle_key`` returns an action for the navigator or ``None``. While an
    error or success banner is shown the next key only dismisses it.
    """

    title = ""
    subtitle = ""
    # success banners close the screen when dismissed
    back_on_success = False

    def __init__(self, ctx: ScreenContext, route: Route):
        self.ctx = ctx
        self.route = route
        self.error = ""
        self.success = ""
        self.info = ""

    @property
    def theme(self):
        return self.ctx.theme

    @property
    def managers(self):
        return self.ctx.managers

    def on_mount(self) -> Action | None:
        self.refresh()
        return None

    def refresh(self) -> None:
        return None

    def on_resume(self, notice: str = "") -> Action | None:
        self.refresh()
        if notice:
            self.success = notice
        return None

    def on_tick(self) -> Action | None:
        return None

    def fail(self, exc: BaseException) -> None:
        log.info("%s: %s", type(self).__name__, exc)
        if isinstance(exc, OSError) and exc.strerror:
            self.error = f"{exc.filename}: {exc.strerror}" if exc.filename else exc.strerror
        else:
            self.error = str(exc)

    def guard(self, fn, *args, **kwargs):
        """Call fn, turning a RavactError into the error banner."""
        try:
            return fn(*args, **kwargs)
        except RavactError as exc:
            self.fail(exc)
            return None

    def handle_key(self, key: str) -> Action | None:
        if self.error or self.success:
            return self.dismiss_banner()
        return self.on_key(key)

    def dismiss_banner(self) -> Action | None:
        notice = self.success
        self.error = ""
        self.success = ""
        if notice and self.back_on_success:
            return Back(notice=notice)
        return None

    def on_key(self, key: str) -> Action | None:
        if key in BACK_KEYS:
            return Back()
        if key == "q":
            return Quit()
        return None

    # rendering

    def render(self) -> FormattedText:
        lines: list[tuple[str, str]] = [("class:title", self.title), ("", "\n")]
        if self.subtitle:
            lines += [("class:subtitle", self.subtitle), ("", "\n")]
        lines.append(("", "\n"))
        lines += self.render_body()
        lines += self.render_banner()
        return FormattedText(lines)

    def render_body(self) -> list[tuple[str, str]]:
        return []

    def render_banner(self) -> list[tuple[str, str]]:
        sym = self.theme.symbols
        if self.error:
            return [("", "\n"), ("class:error", f"{sym.cross} {self.error}"), ("", "\n"),
                    ("class:description", "Press any key to continue")]
        if self.success:
            return [("", "\n"), ("class:success", f"{sym.check} {self.success}"), ("", "\n"),
                    ("class:description", "Press any key to continue")]
        if self.info:
            return [("", "\n"), ("class:info", self.info)]
        return []

    def footer(self) -> list[tuple[str, str]]:
        return keys_help(("↑/↓", "navigate"), ("Enter", "select"), ("Esc", "back"), ("q", "quit"))


def keys_help(*pairs: tuple[str, str]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for key, text in pairs:
        out += [("class:footer", f"{key} "), ("class:footer_dim", f"{text}  ")]
    return out


def kv_lines(rows: list[tuple[str, str]]) -> list[tuple[str, str]]:
    width = max((len(k) for k, _ in rows), default=0)
    out: list[tuple[str, str]] = []
    for key, value in rows:
        out += [("class:label", f"  {key.ljust(width)}  "), ("class:value", str(value)), ("", "\n")]
    return out


class MenuScreen(Screen):
    """Vertical list with a clamped cursor; a ``BACK`` item acts like Esc."""

    page_size = 15

    def __init__(self, ctx: ScreenContext, route: Route):
        super().__init__(ctx, route)
        self.cursor = 0
        self.offset = 0
        self.entries: list[MenuItem] = []

    def refresh(self) -> None:
        self.entries = self.items()
        self.cursor = clamp(self.cursor, len(self.entries))

    def items(self) -> list[MenuItem]:
        return []

    @property
    def selected(self) -> MenuItem | None:
        if not self.entries:
            return None
        return self.entries[self.cursor]

    def move(self, delta: int) -> None:
        self.cursor = clamp(self.cursor + delta, len(self.entries))
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + self.page_size:
            self.offset = self.cursor - self.page_size + 1

    def on_key(self, key: str) -> Action | None:
        if key in UP_KEYS:
            self.move(-1)
        elif key in DOWN_KEYS:
            self.move(1)
        elif key == "pageup":
            self.move(-PAGE)
        elif key == "pagedown":
            self.move(PAGE)
        elif key == "home":
            self.move(-len(self.entries))
        elif key == "end":
            self.move(len(self.entries))
        elif key in CONFIRM_KEYS:
            item = self.selected
            if item is None:
                return None
            if item.key == BACK:
                return Back()
            return self.select(item)
        else:
            return self.on_other_key(key) or super().on_key(key)
        return None

    def select(self, item: MenuItem) -> Action | None:
        return None

    def on_other_key(self, key: str) -> Action | None:
        return None

    def render_body(self) -> list[tuple[str, str]]:
        lines = self.render_summary()
        if lines:
            lines.append(("", "\n"))
        if not self.entries:
            lines += [("class:description", self.empty_text()), ("", "\n")]
            return lines
        sym = self.theme.symbols
        category = None
        visible = self.entries[self.offset:self.offset + self.page_size]
        for idx, item in enumerate(visible, start=self.offset):
            if item.category and item.category != category:
                category = item.category
                lines += [("", "\n"), ("class:category", f"▼ {category}"), ("", "\n")]
            if idx == self.cursor:
                lines.append(("class:cursor", f"{sym.cursor}{item.title}"))
            else:
                lines.append(("class:item", f"  {item.title}"))
            lines.append(("", "\n"))
        item = self.selected
        if item is not None and item.description:
            lines += [("", "\n"), ("class:description", item.description), ("", "\n")]
        return lines

    def render_summary(self) -> list[tuple[str, str]]:
        return []

    def empty_text(self) -> str:
        return "Nothing to show"
