from __future__ import annotations

import logging
import shutil
import subprocess

from .errors import CommandError

log = logging.getLogger(__name__)

BACKENDS = (
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["pbcopy"],
)
UNAVAILABLE = "clipboard unavailable - install xclip"


def copy_to_clipboard(text: str) -> str:
    """Copy text with the first clipboard tool found on PATH; returns its name."""
    for argv in BACKENDS:
        if shutil.which(argv[0]) is None:
            continue
        try:
            subprocess.run(argv, input=text, text=True, check=True, timeout=5, capture_output=True)
        except (OSError, subprocess.SubprocessError) as exc:
            log.debug("clipboard backend %s failed: %s", argv[0], exc)
            continue
        return argv[0]
    raise CommandError(UNAVAILABLE)
