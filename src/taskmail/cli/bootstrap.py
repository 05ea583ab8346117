# src/taskmail/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (directory/mailer/aggregator/store).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Mailer, Scheduler
from ..core.state import AppState
from ..mail.smtp_mailer import LoggingMailer, SmtpMailer
from ..notify.aggregator import AsyncioScheduler, DebounceAggregator
from ..notify.recipients import Directory, RecipientResolver
from ..notify.service import ChangeNotifier
from ..storage.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_mailer(settings) -> Mailer:
    if settings.smtp_configured:
        return SmtpMailer.from_settings(settings)
    logger.warning("SMTP not configured; digests will be logged, not delivered")
    return LoggingMailer()


def create_initial_state(*, settings=None, mailer: Mailer | None = None, scheduler: Scheduler | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings, mailer and scheduler are injectable for tests; settings falls back
    to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    directory = Directory.from_json(settings.team_emails_json)
    logger.info("Recipient directory loaded: %d entries", len(directory))

    if mailer is None:
        mailer = create_mailer(settings)

    aggregator = DebounceAggregator(
        mailer,
        scheduler or AsyncioScheduler(),
        debounce_seconds=settings.debounce_seconds,
        subject_prefix=settings.subject_prefix,
        retry_attempts=settings.mail_retry_attempts,
    )

    return AppState(
        settings=settings,
        directory=directory,
        mailer=mailer,
        aggregator=aggregator,
        notifier=ChangeNotifier(RecipientResolver(directory), aggregator),
        task_store=SnapshotStore(settings.snapshot_db_path),
    )
