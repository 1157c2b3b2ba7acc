from __future__ import annotations

from .. import catalog
from ..models import CommandRequest, MenuItem, ToolkitCommand
from .base import Action, MenuScreen, Navigate, keys_help
from .common import CopyBanner
from .routes import ExecutionRoute

NEXT_TAB_KEYS = ("tab", "right", "l")
PREV_TAB_KEYS = ("shift+tab", "left", "h")


def run_route(cmd: ToolkitCommand) -> ExecutionRoute:
    return ExecutionRoute(CommandRequest(cmd.command, f"{cmd.name}: {cmd.description}", needs_path=cmd.needs_path))


class _CommandMenu(MenuScreen):
    """Command list where Enter runs the command and ``c`` copies it."""

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.copied = CopyBanner()

    def commands(self) -> list[ToolkitCommand]:
        return []

    def items(self) -> list[MenuItem]:
        return [MenuItem(str(idx), cmd.name, cmd.description) for idx, cmd in enumerate(self.commands())]

    def command_at(self, item: MenuItem) -> ToolkitCommand:
        return self.commands()[int(item.key)]

    def select(self, item: MenuItem) -> Action | None:
        return Navigate(run_route(self.command_at(item)))

    def on_other_key(self, key: str) -> Action | None:
        if key == "c" and self.selected is not None:
            cmd = self.command_at(self.selected)
            return self.copied.copy(self.ctx, cmd.command, cmd.name)
        return None

    def on_tick(self) -> Action | None:
        return self.copied.tick()

    def render_body(self):
        lines = super().render_body()
        item = self.selected
        if item is not None:
            lines += [("class:label", "Command: "), ("class:value", self.command_at(item).command.strip()),
                      ("", "\n")]
        if self.copied.text:
            lines += [("", "\n"), ("class:success", self.copied.text), ("", "\n")]
        return lines

    def footer(self):
        return keys_help(("↑/↓", "navigate"), ("Enter", "run"), ("c", "copy"), ("Esc", "back"), ("q", "quit"))


class DeveloperToolkitScreen(_CommandMenu):
    title = "Developer Toolkit"
    subtitle = "Essential commands for Laravel & WordPress maintenance"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.tab = 0

    @property
    def category(self) -> str:
        return catalog.TOOLKIT_CATEGORIES[self.tab]

    def commands(self) -> list[ToolkitCommand]:
        return catalog.toolkit_commands(self.category)

    def switch(self, delta: int) -> None:
        self.tab = (self.tab + delta) % len(catalog.TOOLKIT_CATEGORIES)
        self.cursor = 0
        self.offset = 0
        self.refresh()

    def on_other_key(self, key: str) -> Action | None:
        if key in NEXT_TAB_KEYS:
            self.switch(1)
            return None
        if key in PREV_TAB_KEYS:
            self.switch(-1)
            return None
        return super().on_other_key(key)

    def render_summary(self):
        out = []
        for idx, name in enumerate(catalog.TOOLKIT_CATEGORIES):
            style = "class:tab.active" if idx == self.tab else "class:tab"
            out += [(style, f" {name} "), ("", " ")]
        out.append(("", "\n"))
        return out

    def footer(self):
        return keys_help(("Tab/←/→", "category"), ("Enter", "run"), ("c", "copy"), ("Esc", "back"), ("q", "quit"))


class CommandListScreen(_CommandMenu):
    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.title = route.title

    def commands(self) -> list[ToolkitCommand]:
        return list(self.route.commands)
