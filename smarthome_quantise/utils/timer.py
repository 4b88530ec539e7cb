from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

log = logging.getLogger(__name__)


@contextmanager
def timed(section: str, timings: Optional[Dict[str, float]] = None) -> Iterator[None]:
    """
    Wall time of the block, added to timings[section] so a section entered
    twice reports its total. The block's exceptions still propagate.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        log.debug("%s took %.3fs", section, elapsed)
        if timings is not None:
            timings[section] = timings.get(section, 0.0) + elapsed
