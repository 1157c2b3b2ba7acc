from __future__ import annotations

import logging
import os

FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool, log_file: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    if log_file:
        # TUI mode: the terminal is the screen, log to a file
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s " + FORMAT,
            filename=log_file,
            force=True,
        )
        return
    logging.basicConfig(level=level, format=FORMAT)
