from __future__ import annotations

from collections import deque

import pyte

MAX_LINES = 1000
NO_OUTPUT = "Command completed with no output"


def sanitize(text: str, columns: int = 200) -> list[str]:
    """Render raw command output through a virtual terminal.

    Colour codes are dropped and carriage-return progress bars collapse to
    their final state. Trailing blank rows are trimmed.
    """
    if not text:
        return []
    rows = text.count("\n") + 1 + len(text) // columns
    screen = pyte.Screen(columns, rows)
    stream = pyte.Stream(screen)
    stream.feed(text.replace("\r\n", "\n").replace("\n", "\r\n"))
    lines = [line.rstrip() for line in screen.display]
    while lines and not lines[-1]:
        lines.pop()
    return lines


class OutputBuffer:
    """Bounded line buffer for the execution screen."""

    def __init__(self, max_lines: int = MAX_LINES):
        self.lines: deque[str] = deque(maxlen=max_lines)

    def append(self, line: str) -> None:
        cleaned = sanitize(line)
        self.lines.extend(cleaned or [""])

    def extend(self, text: str) -> None:
        self.lines.extend(sanitize(text))

    def clear(self) -> None:
        self.lines.clear()

    def text(self) -> str:
        return "\n".join(self.lines)

    def __len__(self) -> int:
        return len(self.lines)
