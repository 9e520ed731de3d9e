"""
Launch the DigitalBloom wizard under uvicorn.

Defaults come from the same BLOOM_* settings the app reads, so a `.env`
file configures both. Wizard sessions are held in process memory, which
pins the server to one worker process.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from digitalbloom.config import Settings, get_settings

logger = logging.getLogger("digitalbloom.server")

LOG_LEVELS = ["critical", "error", "warning", "info", "debug", "trace"]


def parse_args(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    settings = settings or get_settings()
    parser = argparse.ArgumentParser(description="Run the DigitalBloom website generator via uvicorn.")
    parser.add_argument("--host", default=os.environ.get("BLOOM_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("BLOOM_PORT", 8000)))
    parser.add_argument("--log-level", default=settings.log_level.lower(), choices=LOG_LEVELS)
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (local development only).",
    )
    parser.add_argument(
        "--require-key",
        action="store_true",
        help="Refuse to start without BLOOM_GEMINI_API_KEY instead of only warning.",
    )
    return parser.parse_args(argv)


def check_api_key(settings: Settings, *, required: bool) -> bool:
    if settings.gemini_api_key:
        return True
    if required:
        raise SystemExit("BLOOM_GEMINI_API_KEY is not set; refusing to start.")
    logger.warning("BLOOM_GEMINI_API_KEY is not set; every generation will fail until it is configured.")
    return False


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = get_settings()
    args = parse_args(argv, settings)
    logging.basicConfig(level=args.log_level.upper() if args.log_level != "trace" else "DEBUG")
    check_api_key(settings, required=args.require_key)

    os.chdir(Path(__file__).resolve().parents[1])
    uvicorn.run(
        "digitalbloom.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
        workers=1,
    )


if __name__ == "__main__":
    main()
