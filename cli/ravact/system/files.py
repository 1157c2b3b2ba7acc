from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..errors import CommandError, NotInstalledError, ValidationError

log = logging.getLogger(__name__)


def _reason(exc: OSError) -> str:
    return exc.strerror or str(exc)


def first_existing(paths) -> Path | None:
    for candidate in paths:
        path = Path(candidate)
        if path.exists():
            return path
    return None


def read_text(path: Path) -> str:
    """Read a managed file. Missing files are NotInstalledError, others CommandError."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as exc:
        raise NotInstalledError(f"{path} not found") from exc
    except OSError as exc:
        raise CommandError(f"cannot read {path}: {_reason(exc)}") from exc


def read_lines(path: Path) -> list[str]:
    return read_text(path).splitlines()


def write_text(path: Path, text: str, *, mode: int | None = None) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)
    except OSError as exc:
        raise CommandError(f"cannot write {path}: {_reason(exc)}") from exc


def write_lines(path: Path, lines: list[str]) -> None:
    text = "\n".join(lines)
    if not text.endswith("\n"):
        text += "\n"
    write_text(path, text)


def backup(path: Path, suffix: str = ".bak") -> Path:
    target = path.with_name(path.name + suffix)
    try:
        shutil.copy2(path, target)
    except OSError as exc:
        raise CommandError(f"cannot write {target}: {_reason(exc)}") from exc
    log.debug("backup %s -> %s", path, target)
    return target


def restore(saved: Path, path: Path) -> None:
    try:
        saved.replace(path)
    except OSError as exc:
        raise CommandError(f"cannot restore {path} from {saved}: {_reason(exc)}") from exc


def remove(path: Path) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        raise CommandError(f"cannot remove {path}: {_reason(exc)}") from exc


def symlink(link: Path, target: Path) -> None:
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(target)
    except OSError as exc:
        raise CommandError(f"cannot link {link}: {_reason(exc)}") from exc


def list_dir(directory: Path, pattern: str = "*") -> list[Path]:
    try:
        return sorted(p for p in Path(directory).iterdir() if p.match(pattern))
    except FileNotFoundError as exc:
        raise NotInstalledError(f"{directory} not found") from exc
    except OSError as exc:
        raise CommandError(f"cannot read {directory}: {_reason(exc)}") from exc


def parse_port(value: str | int, *, low: int = 1, high: int = 65535) -> int:
    text = str(value).strip()
    if not text:
        raise ValidationError("", "port cannot be empty")
    try:
        port = int(text)
    except ValueError:
        raise ValidationError("", "invalid port number") from None
    if port < low or port > high:
        raise ValidationError("", f"port must be between {low}-{high}")
    return port
