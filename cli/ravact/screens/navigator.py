from __future__ import annotations

import logging

from ..context import ScreenContext
from ..errors import RavactError
from .base import Action, Back, EditFile, Execute, Navigate, Quit, Screen, Tick
from .registry import SCREENS
from .routes import Route, SplashRoute

log = logging.getLogger(__name__)


class Navigator:
    """Screen stack.

    ``Navigate`` pushes (or replaces the top), ``Back`` pops and resumes the
    screen underneath. Popping the root screen stops the application.
    Side effects that need the UI loop (commands, editors, timers) are queued
    on ``effects`` for the frontend to pick up.
    """

    def __init__(self, ctx: ScreenContext, screens: dict | None = None):
        self.ctx = ctx
        self.screens = screens if screens is not None else SCREENS
        self.stack: list[Screen] = []
        self.running = True
        self.effects: list[tuple[Screen, Action]] = []

    @property
    def current(self) -> Screen | None:
        return self.stack[-1] if self.stack else None

    def start(self, route: Route | None = None) -> None:
        self.open(route or SplashRoute())

    def build(self, route: Route) -> Screen:
        try:
            screen_cls = self.screens[type(route)]
        except KeyError:
            raise LookupError(f"no screen registered for {type(route).__name__}") from None
        return screen_cls(self.ctx, route)

    def open(self, route: Route, *, replace: bool = False) -> None:
        screen = self.build(route)
        if replace and self.stack:
            self.stack.pop()
        self.stack.append(screen)
        log.debug("open %s (depth %d)", type(screen).__name__, len(self.stack))
        self.dispatch(screen, self.call(screen, screen.on_mount))

    def back(self, notice: str = "") -> None:
        if self.stack:
            self.stack.pop()
        if not self.stack:
            self.running = False
            return
        screen = self.stack[-1]
        self.dispatch(screen, self.call(screen, screen.on_resume, notice))

    def quit(self) -> None:
        self.running = False

    def call(self, screen: Screen, hook, *args) -> Action | None:
        # failures stay on the screen that raised them
        try:
            return hook(*args)
        except (RavactError, OSError) as exc:
            screen.fail(exc)
            return None

    def dispatch(self, screen: Screen, action: Action | None) -> None:
        if action is None:
            return
        if isinstance(action, Navigate):
            self.open(action.route, replace=action.replace)
        elif isinstance(action, Back):
            if screen is self.current:
                self.back(action.notice)
        elif isinstance(action, Quit):
            self.quit()
        elif isinstance(action, (Execute, EditFile, Tick)):
            self.effects.append((screen, action))
        else:
            raise TypeError(f"unknown action {action!r}")

    def handle_key(self, key: str) -> None:
        if key == "ctrl+c":
            self.quit()
            return
        screen = self.current
        if screen is None:
            return
        self.dispatch(screen, self.call(screen, screen.handle_key, key))

    def tick(self, screen: Screen) -> None:
        # timers outlive screens that were popped meanwhile
        if screen not in self.stack:
            return
        self.dispatch(screen, self.call(screen, screen.on_tick))

    def take_effects(self) -> list[tuple[Screen, Action]]:
        effects, self.effects = self.effects, []
        return effects
