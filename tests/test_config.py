# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskmail.config import Settings

_VARS = (
    "TASKMAIL_MAIL_DEBOUNCE_MINUTES",
    "MAIL_DEBOUNCE_MINUTES",
    "TASKMAIL_MAIL_SUBJECT_PREFIX",
    "MAIL_SUBJECT_PREFIX",
    "TASKMAIL_TEAM_EMAILS_JSON",
    "TEAM_EMAILS_JSON",
    "TASKMAIL_SMTP_HOST",
    "SMTP_HOST",
    "TASKMAIL_SMTP_PORT",
    "SMTP_PORT",
    "TASKMAIL_SMTP_USER",
    "SMTP_USER",
    "TASKMAIL_SMTP_PASSWORD",
    "SMTP_PASS",
    "SMTP_PASSWORD",
    "TASKMAIL_SMTP_SECURE",
    "SMTP_SECURE",
    "TASKMAIL_MAIL_RETRY_ATTEMPTS",
    "TASKMAIL_DATA_DIR",
    "TASKMAIL_SNAPSHOT_DB_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.debounce_minutes == 5.0
    assert s.debounce_seconds == 300.0
    assert s.subject_prefix == "[PM-Tool]"
    assert s.team_emails_json == "{}"
    assert s.mail_retry_attempts == 0
    assert s.smtp_port == 587
    assert not s.smtp_secure
    assert not s.smtp_configured
    assert s.snapshot_db_path == Path(".local/taskmail") / "tasks.sqlite3"


def test_legacy_names_are_honoured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_DEBOUNCE_MINUTES", "0.5")
    monkeypatch.setenv("MAIL_SUBJECT_PREFIX", "[Tasks]")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "465")
    monkeypatch.setenv("SMTP_USER", "bot")
    monkeypatch.setenv("SMTP_PASS", "secret")
    monkeypatch.setenv("SMTP_SECURE", "true")

    s = Settings.from_env()

    assert s.debounce_seconds == 30.0
    assert s.subject_prefix == "[Tasks]"
    assert s.smtp_port == 465
    assert s.smtp_secure
    assert s.smtp_configured


def test_prefixed_names_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_DEBOUNCE_MINUTES", "9")
    monkeypatch.setenv("TASKMAIL_MAIL_DEBOUNCE_MINUTES", "1")
    assert Settings.from_env().debounce_minutes == 1.0


def test_malformed_numbers_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_DEBOUNCE_MINUTES", "soon")
    monkeypatch.setenv("SMTP_PORT", "smtp")
    monkeypatch.setenv("TASKMAIL_MAIL_RETRY_ATTEMPTS", "-3")

    s = Settings.from_env()

    assert s.debounce_minutes == 5.0
    assert s.smtp_port == 587
    assert s.mail_retry_attempts == 0
