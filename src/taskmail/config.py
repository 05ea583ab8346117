# src/taskmail/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Legacy unprefixed names of the original deployment (MAIL_*, SMTP_*, TEAM_EMAILS_JSON)
  are still honoured after the TASKMAIL_* names.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKMAIL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(*names: str, default: bool) -> bool:
    raw = _first_env(*names)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(*names: str, default: int) -> int:
    raw = _first_env(*names)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(*names: str, default: float) -> float:
    raw = _first_env(*names)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    snapshot_db_path: Path

    # ---- Notifications ----
    debounce_minutes: float
    mail_from: str
    subject_prefix: str
    team_emails_json: str
    mail_retry_attempts: int

    # ---- SMTP ----
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_secure: bool

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_minutes * 60.0

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port and self.smtp_user and self.smtp_password)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskmail")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmail"))
        snapshot_db_path = _env_path(_k("SNAPSHOT_DB_PATH"), data_dir / "tasks.sqlite3")

        debounce_minutes = max(
            0.0,
            _env_float(_k("MAIL_DEBOUNCE_MINUTES"), "MAIL_DEBOUNCE_MINUTES", default=5.0),
        )
        mail_from = _first_env(_k("MAIL_FROM"), "MAIL_FROM", default="PM Tool <noreply@localhost>") or ""
        subject_prefix = _first_env(_k("MAIL_SUBJECT_PREFIX"), "MAIL_SUBJECT_PREFIX", default="[PM-Tool]") or ""
        # Raw JSON; parsed (leniently) by notify.recipients.Directory.
        team_emails_json = _first_env(_k("TEAM_EMAILS_JSON"), "TEAM_EMAILS_JSON", default="{}") or "{}"
        mail_retry_attempts = max(0, _env_int(_k("MAIL_RETRY_ATTEMPTS"), default=0))

        smtp_host = (_first_env(_k("SMTP_HOST"), "SMTP_HOST", default="") or "").strip()
        smtp_port = _env_int(_k("SMTP_PORT"), "SMTP_PORT", default=587)
        smtp_user = (_first_env(_k("SMTP_USER"), "SMTP_USER", default="") or "").strip()
        smtp_password = _first_env(_k("SMTP_PASSWORD"), "SMTP_PASS", "SMTP_PASSWORD", default="") or ""
        smtp_secure = _env_bool(_k("SMTP_SECURE"), "SMTP_SECURE", default=False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            snapshot_db_path=snapshot_db_path,
            debounce_minutes=debounce_minutes,
            mail_from=mail_from,
            subject_prefix=subject_prefix,
            team_emails_json=team_emails_json,
            mail_retry_attempts=mail_retry_attempts,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            smtp_user=smtp_user,
            smtp_password=smtp_password,
            smtp_secure=smtp_secure,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
