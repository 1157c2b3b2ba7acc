from __future__ import annotations

from importlib import metadata


def app_version() -> str:
    try:
        return metadata.version("ravact")
    except metadata.PackageNotFoundError:
        return "0.0.0"
