# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmail.notify.aggregator import DebounceAggregator
from taskmail.notify.recipients import Directory, RecipientResolver
from taskmail.notify.service import ChangeNotifier

from .fakes import FakeMailer, FakeScheduler

DEBOUNCE_S = 300.0


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the process environment.
    """
    return SimpleNamespace(
        app_name="taskmail-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        snapshot_db_path=tmp_path / "tasks.sqlite3",
        debounce_minutes=DEBOUNCE_S / 60,
        debounce_seconds=DEBOUNCE_S,
        mail_from="PM Tool <pm@example.com>",
        subject_prefix="[PM-Tool]",
        team_emails_json='{"Alice": "alice@x.com", "Bob": "bob@x.com", "Cara": "cara@x.com"}',
        mail_retry_attempts=0,
        smtp_configured=False,
    )


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture()
def aggregator(mailer: FakeMailer, scheduler: FakeScheduler) -> DebounceAggregator:
    return DebounceAggregator(mailer, scheduler, debounce_seconds=DEBOUNCE_S)


@pytest.fixture()
def directory() -> Directory:
    return Directory({"Alice": "alice@x.com", "Bob": "bob@x.com", "Cara": "cara@x.com"})


@pytest.fixture()
def notifier(directory: Directory, aggregator: DebounceAggregator) -> ChangeNotifier:
    return ChangeNotifier(RecipientResolver(directory), aggregator)
