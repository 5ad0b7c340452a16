#!/usr/bin/env python3
"""Project entry point. Configures logging and serves the web frontend."""

from __future__ import annotations

import argparse
import logging
import os

from core import settings as settings_store
from web.app import create_app

logger = logging.getLogger("slideshow")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Web frontend for the slideshow daemon.")
    parser.add_argument(
        "--settings",
        default=str(settings_store.SETTINGS_FILE),
        help="Settings document to load (default: SLIDESHOW_SETTINGS_FILE or ./settings.json).",
    )
    parser.add_argument(
        "--default-settings",
        default=str(settings_store.DEFAULT_SETTINGS_FILE),
        help="Template settings used by the setup wizard.",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("SLIDESHOW_WEB_HOST", "0.0.0.0"),
        help="Address to bind (default: 0.0.0.0).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("SLIDESHOW_WEB_PORT", "5000")),
        help="Port to bind (default: 5000).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("SLIDESHOW_LOG_LEVEL", "INFO").upper(),
        help="Log level (default: INFO).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Run Flask in debug mode.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    log_level = str(args.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s %(levelname)s %(message)s',
    )
    logger.info({"evt": "startup", "component": "web", "log_level": log_level, "settings": args.settings})

    app = create_app(settings_file=args.settings, default_settings_file=args.default_settings)
    app.run(host=args.host, port=args.port, threaded=True, debug=args.debug)


if __name__ == "__main__":
    main()
