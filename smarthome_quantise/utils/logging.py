from __future__ import annotations

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Union[str, int] = "INFO") -> None:
    """Configure the root logger once for CLI entry points."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level: {level!r}")
        level = resolved

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    # Engine chatter is only useful when debugging the store itself
    logging.getLogger("sqlalchemy").setLevel(max(level, logging.WARNING))
