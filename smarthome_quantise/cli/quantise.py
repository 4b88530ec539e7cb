from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from smarthome_quantise.data_processing.quantise import run_quantise
from smarthome_quantise.utils.config import ensure_dirs, load_config
from smarthome_quantise.utils.logging import setup_logging

log = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Quantise recorded sensor readings into labelled feature vectors.")
    p.add_argument("--config", required=True, help="Path to YAML config (supports extends).")
    p.add_argument("--mode", choices=["selected", "all"], default=None, help="Quantise one group or all of them.")
    p.add_argument("--bookmark", default=None, help="Bookmark name for --mode selected.")
    p.add_argument("--session-id", type=int, default=None, help="Session id for --mode selected.")
    p.add_argument("--seconds", type=int, default=None, help="Override the window length in seconds.")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)

    ensure_dirs(cfg)
    setup_logging(level=cfg.get("logging", {}).get("level", "INFO"))

    if args.seconds is not None:
        cfg.setdefault("quantise", {})["window"] = {"hours": 0, "minutes": 0, "seconds": args.seconds}

    result = run_quantise(cfg, mode=args.mode, bookmark_name=args.bookmark, session_id=args.session_id)
    if not result["n_vectors"]:
        log.error("No feature vectors were produced; check the window length and the source data.")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
