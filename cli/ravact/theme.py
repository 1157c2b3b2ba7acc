from __future__ import annotations

from dataclasses import dataclass, field

from prompt_toolkit.styles import Style

_DARK = {
    "": "bg:default fg:default",
    "frame": "bg:default",
    "frame.border": "fg:#6c6c6c",
    "frame.label": "fg:#00afaf bold",
    "title": "fg:#00d7d7 bold",
    "subtitle": "fg:#8a8a8a italic",
    "category": "fg:#5f87ff bold",
    "item": "",
    "cursor": "fg:#ffd700 bold",
    "description": "fg:#8a8a8a",
    "label": "fg:#5fafd7 bold",
    "value": "",
    "input": "fg:#ffffff underline",
    "input.focused": "fg:#ffd700 underline bold",
    "success": "fg:#5fd75f bold",
    "error": "fg:#ff5f5f bold",
    "warning": "fg:#ffaf00",
    "info": "fg:#00afaf",
    "tab": "fg:#8a8a8a",
    "tab.active": "bg:#005f87 fg:#ffffff bold",
    "footer": "fg:#ffffff bold",
    "footer_dim": "fg:#6c6c6c",
    "output": "",
    "output_dim": "fg:#6c6c6c",
}

_LIGHT = {
    **_DARK,
    "frame.border": "fg:#8a8a8a",
    "frame.label": "fg:#005f87 bold",
    "title": "fg:#005f87 bold",
    "subtitle": "fg:#585858 italic",
    "category": "fg:#0000af bold",
    "cursor": "fg:#af5f00 bold",
    "description": "fg:#585858",
    "label": "fg:#005f87 bold",
    "input": "fg:#000000 underline",
    "input.focused": "fg:#af5f00 underline bold",
    "success": "fg:#008700 bold",
    "error": "fg:#d70000 bold",
    "warning": "fg:#af5f00",
    "info": "fg:#005f87",
    "tab": "fg:#585858",
    "tab.active": "bg:#005f87 fg:#ffffff bold",
    "footer": "fg:#000000 bold",
    "footer_dim": "fg:#8a8a8a",
    "output_dim": "fg:#8a8a8a",
}


@dataclass(frozen=True)
class Symbols:
    cursor: str = "▶ "
    check: str = "✓"
    cross: str = "✗"
    bullet: str = "•"
    arrow: str = "→"
    enabled: str = "●"
    disabled: str = "○"


@dataclass(frozen=True)
class Theme:
    """Styles and symbols handed to every screen through its context."""

    name: str
    styles: dict[str, str]
    symbols: Symbols = field(default_factory=Symbols)

    def to_style(self) -> Style:
        return Style.from_dict(self.styles)

    def status_style(self, status: str) -> str:
        status = status.lower()
        if status in ("running", "active", "enabled", "installed"):
            return "class:success"
        if status in ("failed", "fatal", "error"):
            return "class:error"
        if status in ("stopped", "inactive", "exited", "disabled"):
            return "class:warning"
        return "class:description"


def get_theme(name: str = "dark") -> Theme:
    if name == "light":
        return Theme(name="light", styles=dict(_LIGHT))
    return Theme(name="dark", styles=dict(_DARK))
