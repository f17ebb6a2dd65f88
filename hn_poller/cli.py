"""
Command line entry point.

Usage:
    hn-poller                  # Start server (localhost:8000)
    hn-poller --public         # Bind to all interfaces (0.0.0.0)
    hn-poller --port 8080      # Custom port
    hn-poller --once           # Run one polling cycle, print items, exit

Configuration is read from the environment and a .env file in the working
directory; see hn_poller.config for the variables.
"""

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from hn_poller.config import Settings
from hn_poller.errors import PollerError
from hn_poller.log import setup_logging
from hn_poller.poller import Poller
from hn_poller.web import create_app, newest_first

log = logging.getLogger("hn_poller")


async def run_once(settings: Settings, client=None) -> int:
    """Poll once, wait for every fetch to be ingested and print the result."""
    poller = Poller.from_settings(settings, client)
    await poller.start(poll=False)
    try:
        await poller.poll_once()
        await poller.drain()
        items = newest_first(poller.items())
    except PollerError as e:
        log.error(f"[poller] cycle failed: {e}")
        raise SystemExit(1)
    finally:
        await poller.stop()

    for item in items:
        print(f"{item.id:>10}  {item.score:>5}  {item.title}")
    log.info(f"{len(items)} items")
    return len(items)


async def main_async(args, settings: Settings):
    host = "0.0.0.0" if args.public else "127.0.0.1"
    log.info(f"Starting server on http://{host}:{args.port}")
    if settings.auth_user:
        log.info(f"Basic auth enabled (user: {settings.auth_user})")

    poller = Poller.from_settings(settings)
    app = create_app(poller, settings.auth_user, settings.auth_pass)

    import uvicorn

    config = uvicorn.Config(
        app,
        host=host,
        port=args.port,
        log_level="info",
        log_config=None,
        access_log=False,
    )
    server = uvicorn.Server(config)
    await server.serve()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HN new story poller")
    parser.add_argument("--port", type=int, default=8000, help="Server port")
    parser.add_argument(
        "--public", action="store_true", help="Bind to 0.0.0.0 (all interfaces)"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between polls (overrides HN_POLL_INTERVAL)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max ids considered per poll, 0 for all (overrides HN_FETCH_LIMIT)",
    )
    parser.add_argument(
        "--once", action="store_true", help="Poll once, print the items and exit"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def settings_from_args(args, env_file: Path = None) -> Settings:
    settings = Settings.from_env(env_file=env_file)
    overrides = {}
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    if args.limit is not None:
        overrides["fetch_limit"] = args.limit
    return replace(settings, **overrides) if overrides else settings


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        settings = settings_from_args(args, env_file=Path.cwd() / ".env")
    except ValueError as e:
        log.error(f"Invalid configuration: {e}")
        raise SystemExit(2)

    try:
        if args.once:
            asyncio.run(run_once(settings))
        else:
            asyncio.run(main_async(args, settings))
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass  # Graceful shutdown already handled in lifespan


if __name__ == "__main__":
    main()
