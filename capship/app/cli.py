"""
Command-line entry points.

    capship [--config PATH] [--root DIR] [--max-upload-size N]
            [--log-level LEVEL] [--host HOST] [--port PORT]
    capship config default

    captn [--atom-feed URL] pull
    captn [--atom-feed URL] alert [TYPE]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from capship.app.atom.client import NWS_NATIONAL_ATOM_FEED_URL, FeedClient
from capship.app.core.config import (
    DEFAULT_CONFIG_PATH,
    LOG_LEVELS,
    Settings,
    load_settings,
)
from capship.app.core.errors import CapshipError
from capship.app.core.logging_config import setup_logging
from capship.app.server import serve

CAPSHIP_DESCRIPTION = "a server for CAP Alerts and Atom feeds with CAP Alert Summaries"
CAPTN_DESCRIPTION = "Client to work with National Weather Service ATOM Feed and CAP Alerts"

READY_HINTS = (
    "capship ready:",
    "   use '/cap/' to pull the cap alert feed",
    "   use '/cap/{reference}' to pull a cap alert file",
    "   use '/upload' to upload unique alert files using curl etc. Example:",
    "      $ curl -F 'uploadFile=@KAR0-0306112239-SW.xml' http://localhost:8080/upload",
    "   use '/feeds/{fileName}' to download feed files",
    "   use '/alerts/{fileName}' to download alert files",
)


# ═══════════════════════════════════════════════════════════════════════════
# capship
# ═══════════════════════════════════════════════════════════════════════════

def build_capship_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="capship", description=CAPSHIP_DESCRIPTION)
    p.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="path to the configuration file")
    p.add_argument("--root", help="capship root directory")
    p.add_argument("--max-upload-size", "-m", type=int, help="maximum upload size in bytes")
    p.add_argument("--log-level", "-l", choices=LOG_LEVELS, type=str.lower, help="logging level")
    p.add_argument("--host", help="address to listen on")
    p.add_argument("--port", type=int, help="port to listen on")

    sub = p.add_subparsers(dest="command")
    config = sub.add_parser("config", help="information on the capship config")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("default", help="see the output of the default config")
    return p


def capship_main(argv: Optional[List[str]] = None) -> int:
    args = build_capship_parser().parse_args(argv)

    if args.command == "config":
        sys.stdout.write(Settings.model_construct().to_env())
        return 0

    try:
        settings = load_settings(
            args.config,
            ROOT=args.root,
            MAX_UPLOAD_SIZE=args.max_upload_size,
            LOG_LEVEL=args.log_level,
            HOST=args.host,
            PORT=args.port,
        )
    except ValidationError as exc:
        print(f"capship: invalid configuration: {exc}", file=sys.stderr)
        return 2

    logger = setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info("starting capship", extra={"path": settings.ROOT})
    logger.info("logger level %s", settings.LOG_LEVEL)
    for line in READY_HINTS:
        logger.info(line)

    async def _run() -> None:
        await serve(settings, asyncio.Event(), logger)

    try:
        asyncio.run(_run())
    except CapshipError as exc:
        logger.critical("capship failed: %s", exc.message)
        return 1
    return 0


# ═══════════════════════════════════════════════════════════════════════════
# captn
# ═══════════════════════════════════════════════════════════════════════════

def build_captn_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="captn", description=CAPTN_DESCRIPTION)
    p.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="path to the configuration file")
    p.add_argument("--atom-feed", "-a", help=f"url to atom feed host url (default {NWS_NATIONAL_ATOM_FEED_URL})")
    p.add_argument("--log-level", "-l", choices=LOG_LEVELS, type=str.lower, default="warn")
    p.add_argument("--timeout", type=float, help="HTTP timeout in seconds")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser(
        "pull", aliases=["p"], help="pull nws atom feed",
        description="Get the national weather service atom feed and dump it as output",
    )
    alert = sub.add_parser(
        "alert", aliases=["a"], help="get CAP alerts of a certain type",
        description="Load all CAP alerts of TYPE and dump them as output; default TYPE is any/all.",
    )
    alert.add_argument("type", nargs="?", default="", metavar="TYPE", help="e.g. fire, flood")
    return p


def pull(client: FeedClient, url: str) -> bytes:
    """Raw bytes of the feed at ``url``."""
    _, raw = client.get_feed(url)
    return raw


def pull_alerts(client: FeedClient, url: str, alert_type: str, logger: logging.Logger) -> List[bytes]:
    """Raw CAP alerts linked from entries whose event contains ``alert_type``."""
    wanted = alert_type.lower()
    feed, _ = client.get_feed(url)
    found: List[bytes] = []
    for entry in feed.entries:
        if wanted not in entry.event.lower():
            continue
        if not entry.link:
            logger.warning("Entry %s has no link, skipped", entry.id)
            continue
        _, raw = client.get_alert(entry.link[0])
        found.append(raw)
    return found


def captn_main(argv: Optional[List[str]] = None) -> int:
    args = build_captn_parser().parse_args(argv)
    logger = setup_logging(args.log_level)
    try:
        settings = load_settings(args.config, REMOTE_FEED_URL=args.atom_feed, HTTP_TIMEOUT_SECONDS=args.timeout)
    except ValidationError as exc:
        print(f"captn: invalid configuration: {exc}", file=sys.stderr)
        return 2
    url = settings.REMOTE_FEED_URL

    try:
        with FeedClient(logger, timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            if args.command in ("pull", "p"):
                docs = [pull(client, url)]
            else:
                docs = pull_alerts(client, url, args.type, logger)
    except CapshipError as exc:
        logger.critical("%s", exc.message)
        return 1

    out = sys.stdout.buffer
    for raw in docs:
        out.write(raw)
    out.flush()
    return 0


def capship_entry() -> None:
    sys.exit(capship_main())


def captn_entry() -> None:
    sys.exit(captn_main())
