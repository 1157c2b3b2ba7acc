from __future__ import annotations

from ravact.output import OutputBuffer, sanitize


def test_sanitize_strips_colour_codes() -> None:
    assert sanitize("\x1b[1;31merror\x1b[0m: boom") == ["error: boom"]


def test_sanitize_collapses_carriage_return_progress() -> None:
    assert sanitize("10%\r50%\r100%\ndone\n") == ["100%", "done"]


def test_sanitize_empty() -> None:
    assert sanitize("") == []


def test_buffer_keeps_last_lines() -> None:
    buf = OutputBuffer(max_lines=3)
    for idx in range(5):
        buf.append(f"line {idx}")

    assert len(buf) == 3
    assert buf.text() == "line 2\nline 3\nline 4"

    buf.clear()
    assert buf.text() == ""
