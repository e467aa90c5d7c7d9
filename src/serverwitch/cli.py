"""Command-line interface for the serverwitch agent.

Connects to the relay, then runs the session and the terminal view side
by side until either of them ends.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from serverwitch import __version__

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="serverwitch",
        description="Let an AI remotely control your computer",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/serverwitch.yaml)",
    )
    parser.add_argument(
        "-u", "--url",
        type=str,
        default=None,
        help="The URL of the ServerWitch relay server (default: wss://serverwitch.dev)",
    )
    parser.add_argument(
        "-o", "--output-file",
        type=Path,
        default=None,
        help="Path to write logs (default: serverwitch.log)",
    )
    parser.add_argument(
        "--yes",
        dest="no_confirm",
        action="store_true",
        help="DANGEROUS: Execute all commands without confirmation",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def session_url(base_url: str, session_path: str = "/session") -> str:
    """Point the relay URL at the session endpoint, replacing any path."""
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, session_path, "", ""))


async def _run(settings) -> None:
    """Connect to the relay and run the session and the view."""
    from serverwitch.domain.models import NewSession
    from serverwitch.runner.local import LocalActionRunner
    from serverwitch.domain.channels import Mailbox
    from serverwitch.session.engine import Session
    from serverwitch import tui

    relay = settings.relay
    runner = LocalActionRunner(
        shell=settings.runner.shell,
        shell_args=settings.runner.shell_args,
    )
    session = await Session.connect(
        session_url(relay.url, relay.session_path),
        open_timeout=relay.open_timeout,
        runner=runner,
        keepalive_interval=relay.keepalive_interval,
        keepalive_payload=relay.keepalive_payload.encode(),
        max_concurrency=relay.max_concurrency,
    )

    mailbox = Mailbox(maxsize=settings.ui.mailbox_size)
    mailbox.send_nowait(NewSession(session_id=session.session_id))

    tui_task = asyncio.create_task(
        tui.run(mailbox, tick_interval=settings.ui.tick_interval), name="tui"
    )
    session_task = asyncio.create_task(
        session.process_messages(settings.no_confirm, mailbox), name="session"
    )

    try:
        done, pending = await asyncio.wait(
            [tui_task, session_task], return_when=asyncio.FIRST_COMPLETED
        )
        if tui_task in done:
            logger.info("Application closed")
        else:
            logger.info("Session closed")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error("Task %s failed: %s", task.get_name(), task.exception())
    finally:
        mailbox.close()
        await session.transport.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the serverwitch CLI."""
    args = parse_args(argv)

    from serverwitch.config.settings import load_settings
    from serverwitch.session.engine import SessionError
    from serverwitch.session.transport import TransportError
    from serverwitch.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.url:
        settings.relay.url = args.url
    if args.output_file:
        settings.logging.file = str(args.output_file)
    if args.no_confirm:
        settings.no_confirm = True
    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if settings.no_confirm:
        logger.warning("Running without confirmation, every action is executed")

    try:
        asyncio.run(_run(settings))
    except (TransportError, SessionError) as e:
        logger.error("Could not start the session: %s", e)
        print(f"serverwitch: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
