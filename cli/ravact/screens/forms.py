from __future__ import annotations

from dataclasses import dataclass

from ..errors import RavactError, ValidationError
from .base import Action, Back, Screen, keys_help


@dataclass
class Field:
    name: str
    label: str
    value: str = ""
    secret: bool = False
    placeholder: str = ""
    choices: tuple[str, ...] = ()

    def cycle(self, delta: int) -> None:
        if not self.choices:
            return
        try:
            idx = self.choices.index(self.value)
        except ValueError:
            idx = 0
        self.value = self.choices[(idx + delta) % len(self.choices)]


class FormScreen(Screen):
    """Text input form.

    ``tab``/``down`` and ``shift+tab``/``up`` move focus, ``enter`` on the
    last field submits, ``backspace`` deletes a character and ``esc`` leaves.
    Choice fields cycle with ``left``/``right`` or space.
    """

    back_on_success = True
    submit_label = "Submit"

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.fields: list[Field] = self.build_fields()
        self.focus = 0

    def build_fields(self) -> list[Field]:
        return []

    def values(self) -> dict[str, str]:
        return {f.name: f.value for f in self.fields}

    @property
    def focused(self) -> Field:
        return self.fields[self.focus]

    def on_key(self, key: str) -> Action | None:
        if key == "esc":
            return Back()
        if not self.fields:
            return None
        field = self.focused
        if key in ("tab", "down"):
            self.focus = (self.focus + 1) % len(self.fields)
        elif key in ("shift+tab", "up"):
            self.focus = (self.focus - 1) % len(self.fields)
        elif key == "enter":
            if self.focus == len(self.fields) - 1:
                return self.submit()
            self.focus += 1
        elif field.choices:
            if key in ("right", "l", " "):
                field.cycle(1)
            elif key in ("left", "h"):
                field.cycle(-1)
        elif key == "backspace":
            field.value = field.value[:-1]
        elif len(key) == 1 and key.isprintable():
            field.value += key
        return None

    def submit(self) -> Action | None:
        try:
            notice = self.apply(self.values())
        except ValidationError as exc:
            if exc.field:
                for idx, f in enumerate(self.fields):
                    if f.name == exc.field:
                        self.focus = idx
            self.fail(exc)
            return None
        except RavactError as exc:
            self.fail(exc)
            return None
        if isinstance(notice, str):
            self.success = notice
            return None
        return notice

    def apply(self, values: dict[str, str]) -> str | Action:
        raise NotImplementedError

    def render_body(self) -> list[tuple[str, str]]:
        lines: list[tuple[str, str]] = list(self.render_intro())
        width = max((len(f.label) for f in self.fields), default=0)
        for idx, f in enumerate(self.fields):
            focused = idx == self.focus
            shown = "•" * len(f.value) if f.secret else f.value
            if f.choices:
                shown = f"◀ {f.value} ▶"
            elif not shown and f.placeholder:
                shown = f.placeholder
            marker = self.theme.symbols.cursor if focused else "  "
            lines.append(("class:cursor" if focused else "class:label", f"{marker}{f.label.ljust(width)}  "))
            style = "class:input.focused" if focused else "class:input"
            if not f.value and f.placeholder and not f.choices:
                style = "class:description"
            lines += [(style, shown or " "), ("", "\n")]
        return lines

    def render_intro(self) -> list[tuple[str, str]]:
        return []

    def footer(self) -> list[tuple[str, str]]:
        return keys_help(("Tab", "next field"), ("Enter", self.submit_label.lower()), ("Esc", "cancel"))


def to_int(value: str, field: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValidationError(field, "must be a number") from None


class PasswordForm(FormScreen):
    min_length = 0

    def build_fields(self) -> list[Field]:
        return [
            Field("password", "New password", secret=True),
            Field("confirm", "Confirm password", secret=True),
        ]

    def check_password(self, values: dict[str, str]) -> str:
        password = values["password"]
        if not password:
            raise ValidationError("password", "cannot be empty")
        if len(password) < self.min_length:
            raise ValidationError("password", f"must be at least {self.min_length} characters")
        if not values["confirm"]:
            raise ValidationError("confirm", "please confirm password")
        if password != values["confirm"]:
            raise ValidationError("confirm", "passwords do not match")
        return password


def restart_after(done: str, restart, step: str = "restart") -> str:
    """Run ``restart`` after a config write. The write is kept when it fails."""
    try:
        restart()
    except RavactError as exc:
        raise RavactError(f"{done} but {step} failed: {exc}") from exc
    return f"{done} and service {step}ed"
