# src/taskmail/cli/main.py

"""
CLI entrypoint.

Replays task-list JSON files as consecutive saves against the local snapshot
store, then keeps the loop alive until every debounced digest has been flushed.
Interrupting the process drops whatever is still buffered.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
from pathlib import Path

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging
from ..notify.aggregator import AsyncioScheduler
from ..notify.models import Editor
from ..notify.service import extract_tasks, save_and_notify

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="taskmail", description="Save task lists and mail change digests.")
    parser.add_argument("files", nargs="+", type=Path, help="JSON task list(s) or {\"tasks\": [...]} payloads")
    parser.add_argument("--editor-name", default="", help="Name shown as editor in digests")
    parser.add_argument("--editor-email", default="", help="Address shown as editor in digests")
    parser.add_argument("--poll-seconds", type=float, default=1.0, help=argparse.SUPPRESS)
    return parser.parse_args(argv)


def _load_payload(path: Path) -> list[dict] | None:
    try:
        return extract_tasks(json.loads(path.read_text("utf-8")))
    except (OSError, ValueError):
        logger.exception("Failed to read task list from %s", path)
        return None


async def _run(args: argparse.Namespace, settings) -> None:
    scheduler = AsyncioScheduler()
    state = create_initial_state(settings=settings, scheduler=scheduler)
    editor = Editor(name=args.editor_name.strip(), address=args.editor_email.strip())

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    for path in args.files:
        tasks = _load_payload(path)
        if tasks is None:
            continue
        outcome = save_and_notify(state.task_store, state.notifier, tasks, editor)
        logger.info(
            "Saved %s: tasks=%d changes=%d recipients=%d unresolved=%d",
            path,
            len(tasks),
            outcome.events,
            len(outcome.queued),
            len(outcome.unresolved),
        )

    if state.aggregator.has_pending():
        logger.info(
            "Waiting for debounced digests (debounce %.0fs)... Press Ctrl+C to abort.",
            state.aggregator.debounce_seconds,
        )

    poll_s = max(0.05, float(args.poll_seconds))
    while state.aggregator.has_pending() and not stop.is_set():
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=poll_s)

    # Deliveries already taken off the table may still be talking to SMTP.
    await scheduler.wait_inflight()

    if state.aggregator.has_pending():
        logger.warning("Exiting with undelivered digests for: %s", ", ".join(state.aggregator.pending_addresses()))


def main(argv: list[str] | None = None) -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/taskmail"), console_level=console_level)

    args = _parse_args(argv)
    logger.info("Starting %s...", getattr(settings, "app_name", "taskmail"))

    try:
        asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
