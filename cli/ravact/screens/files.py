from __future__ import annotations

import os
import shutil
import stat
from datetime import datetime
from pathlib import Path

from ..config import save_config
from ..errors import RavactError, ValidationError
from ..models import MenuItem
from ..system.detector import format_bytes
from .base import Action, MenuScreen, Navigate, keys_help
from .routes import ConfirmRoute, EditorSelectionRoute, PromptRoute, TextDisplayRoute

PREVIEW_BYTES = 256 * 1024
PARENT = ".."


def _is_binary(chunk: bytes) -> bool:
    return b"\0" in chunk


def describe(path: Path) -> str:
    st = path.lstat()
    kind = "directory" if stat.S_ISDIR(st.st_mode) else "symlink" if stat.S_ISLNK(st.st_mode) else "file"
    rows = [
        ("Name", path.name),
        ("Path", str(path)),
        ("Type", kind),
        ("Size", format_bytes(st.st_size)),
        ("Modified", datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S")),
        ("Permissions", stat.filemode(st.st_mode)),
        ("Owner", f"{st.st_uid}:{st.st_gid}"),
    ]
    if kind == "symlink":
        rows.append(("Target", os.readlink(path)))
    return "\n".join(f"{k:<12} {v}" for k, v in rows)


class FileBrowserScreen(MenuScreen):
    """Directory listing.

    Enter opens a directory or previews a file, ``h``/``left``/``backspace``
    go to the parent directory and ``esc`` leaves the browser.
    """

    title = "File Browser"
    page_size = 20

    def __init__(self, ctx, route):
        super().__init__(ctx, route)
        self.path = Path(route.path or ctx.config.working_dir()).expanduser().resolve()
        self.show_hidden = False
        self.entries_info: dict[str, os.stat_result] = {}

    def refresh(self) -> None:
        self.entries_info = {}
        try:
            with os.scandir(self.path) as it:
                for entry in it:
                    if not self.show_hidden and entry.name.startswith("."):
                        continue
                    try:
                        self.entries_info[entry.name] = entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
        except OSError as exc:
            self.error = f"cannot read {self.path}: {exc.strerror or exc}"
        super().refresh()

    def is_dir(self, name: str) -> bool:
        if name == PARENT:
            return True
        return (self.path / name).is_dir()

    def items(self) -> list[MenuItem]:
        names = sorted(self.entries_info, key=lambda n: (not self.is_dir(n), n.lower()))
        out = []
        if self.path.parent != self.path:
            out.append(MenuItem(PARENT, "../", "Parent directory"))
        for name in names:
            st = self.entries_info[name]
            if self.is_dir(name):
                out.append(MenuItem(name, f"{name}/", stat.filemode(st.st_mode)))
            else:
                out.append(MenuItem(name, f"{name:<40} {format_bytes(st.st_size):>10}", stat.filemode(st.st_mode)))
        return out

    def cd(self, path: Path) -> None:
        self.path = path.resolve()
        self.cursor = 0
        self.offset = 0
        self.refresh()

    def select(self, item: MenuItem) -> Action | None:
        target = self.path / item.key
        if item.key == PARENT:
            self.cd(self.path.parent)
        elif target.is_dir():
            self.cd(target)
        else:
            return self.preview(target)
        return None

    def preview(self, path: Path) -> Action | None:
        try:
            with open(path, "rb") as fh:
                chunk = fh.read(PREVIEW_BYTES)
        except OSError as exc:
            self.error = f"cannot read {path.name}: {exc.strerror or exc}"
            return None
        if _is_binary(chunk[:8192]):
            return Navigate(TextDisplayRoute(f"File Preview: {path.name}", "(binary file)\n\n" + describe(path)))
        text = chunk.decode("utf-8", errors="replace")
        if len(chunk) == PREVIEW_BYTES:
            text += "\n\n(preview truncated)"
        return Navigate(TextDisplayRoute(f"File Preview: {path.name}", text))

    def on_key(self, key: str) -> Action | None:
        if key in ("backspace", "h", "left"):
            self.cd(self.path.parent)
            return None
        if key in ("l", "right") and self.selected is not None:
            if self.is_dir(self.selected.key):
                return self.select(self.selected)
            return None
        return super().on_key(key)

    def on_other_key(self, key: str) -> Action | None:
        item = self.selected
        if key == ".":
            self.show_hidden = not self.show_hidden
            self.refresh()
        elif key == "~":
            self.cd(Path.home())
        elif key == "p":
            return self.set_project()
        elif key == "n":
            return Navigate(PromptRoute("New Directory", "Name", self.mkdir))
        elif item is None or item.key == PARENT:
            return None
        elif key == "e" and not self.is_dir(item.key):
            return Navigate(EditorSelectionRoute(str(self.path / item.key)))
        elif key == "i":
            return Navigate(TextDisplayRoute("File Information", describe(self.path / item.key)))
        elif key == "r":
            return Navigate(PromptRoute("Rename", "New name", lambda name: self.rename(item.key, name),
                                        value=item.key))
        elif key == "d":
            return Navigate(ConfirmRoute(f"Delete {item.key}?", lambda: self.delete(item.key)))
        return None

    def set_project(self) -> Action | None:
        self.ctx.config.project_path = str(self.path)
        try:
            save_config(self.ctx.config)
        except OSError as exc:
            self.error = f"failed to save settings: {exc.strerror or exc}"
            return None
        self.success = f"Project directory set to {self.path}"
        return None

    def _check_name(self, name: str) -> str:
        name = name.strip()
        if not name or "/" in name or name in (".", PARENT):
            raise ValidationError("name", "invalid name")
        return name

    def mkdir(self, name: str) -> str:
        name = self._check_name(name)
        try:
            (self.path / name).mkdir()
        except OSError as exc:
            raise RavactError(f"failed to create {name}: {exc.strerror or exc}") from exc
        return f"Created {name}/"

    def rename(self, old: str, new: str) -> str:
        new = self._check_name(new)
        target = self.path / new
        if target.exists():
            raise ValidationError("name", f"{new} already exists")
        try:
            (self.path / old).rename(target)
        except OSError as exc:
            raise RavactError(f"failed to rename {old}: {exc.strerror or exc}") from exc
        return f"Renamed {old} to {new}"

    def delete(self, name: str) -> str:
        path = self.path / name
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as exc:
            raise RavactError(f"failed to delete {name}: {exc.strerror or exc}") from exc
        return f"Deleted {name}"

    def render_summary(self):
        hidden = "  (showing hidden)" if self.show_hidden else ""
        return [("class:label", str(self.path)), ("class:description", hidden), ("", "\n")]

    def empty_text(self) -> str:
        return "(empty directory)"

    def footer(self):
        return keys_help(("Enter", "open"), ("h", "parent"), ("e", "edit"), ("i", "info"), ("n", "mkdir"),
                         ("r", "rename"), ("d", "delete"), ("p", "set project"), (".", "hidden"), ("Esc", "back"))
