#!/usr/bin/env python3
"""
Start the Lightcast API under uvicorn.

Host, port and reload default to the ``HOST``, ``PORT`` and ``DEBUG``
settings (environment or ``.env``); command-line flags override them.

    python run.py                      # settings as configured
    python run.py --reload             # force auto-reload
    python run.py --workers 4          # multi-process, never reloads
"""

import argparse
import logging

import uvicorn

from lightcast.config import settings

logger = logging.getLogger("lightcast.run")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lightcast light-prediction API")
    parser.add_argument("--host", default=settings.HOST, help=f"bind address (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"bind port (default: {settings.PORT})")
    reload = parser.add_mutually_exclusive_group()
    reload.add_argument("--reload", dest="reload", action="store_true", help="restart on source changes")
    reload.add_argument("--no-reload", dest="reload", action="store_false")
    parser.set_defaults(reload=settings.DEBUG)
    parser.add_argument("--workers", type=int, default=1, help="worker processes (disables reload when > 1)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> dict:
    """Keyword arguments for ``uvicorn.run``."""
    if args.workers < 1:
        raise ValueError("--workers must be at least 1")

    config = {
        "app": "lightcast.main:app",
        "host": args.host,
        "port": args.port,
        "log_level": "debug" if settings.DEBUG else "info",
    }
    # uvicorn ignores workers when reloading
    if args.workers > 1:
        config["workers"] = args.workers
    elif args.reload:
        config["reload"] = True
        config["reload_dirs"] = ["lightcast"]
    return config


def main(argv=None):
    config = build_config(parse_args(argv))
    logging.basicConfig(level=logging.INFO)
    logger.info(
        "Serving %s on http://%s:%s (reload=%s, workers=%s)",
        settings.APP_NAME, config["host"], config["port"],
        config.get("reload", False), config.get("workers", 1),
    )
    uvicorn.run(**config)


if __name__ == "__main__":
    main()
