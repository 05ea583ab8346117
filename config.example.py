# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (SMTP password, team addresses). Use .env (local, gitignored).

Each TASKMAIL_* variable also accepts the legacy unprefixed name in brackets.
"""

ENV_VARS = {
    # App / logging
    "TASKMAIL_APP_NAME": "App display name (default: taskmail).",
    "TASKMAIL_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "TASKMAIL_DATA_DIR": "Local data directory, also holds taskmail.log (default: .local/taskmail).",
    "TASKMAIL_SNAPSHOT_DB_PATH": "Task snapshot SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Notifications
    "TASKMAIL_MAIL_DEBOUNCE_MINUTES": "[MAIL_DEBOUNCE_MINUTES] Quiet period before a digest is sent (default: 5).",
    "TASKMAIL_MAIL_FROM": "[MAIL_FROM] From header (default: PM Tool <noreply@localhost>).",
    "TASKMAIL_MAIL_SUBJECT_PREFIX": "[MAIL_SUBJECT_PREFIX] Subject prefix (default: [PM-Tool]).",
    "TASKMAIL_TEAM_EMAILS_JSON": (
        '[TEAM_EMAILS_JSON] Person -> address map, e.g. {"Alice Example": "alice@example.com"}.'
    ),
    "TASKMAIL_MAIL_RETRY_ATTEMPTS": "Extra delivery attempts per digest (default: 0).",
    # SMTP (all four of host/port/user/password are required to send)
    "TASKMAIL_SMTP_HOST": "[SMTP_HOST] SMTP server hostname.",
    "TASKMAIL_SMTP_PORT": "[SMTP_PORT] SMTP port (default: 587).",
    "TASKMAIL_SMTP_USER": "[SMTP_USER] SMTP login.",
    "TASKMAIL_SMTP_PASSWORD": "[SMTP_PASS] SMTP password.",
    "TASKMAIL_SMTP_SECURE": "[SMTP_SECURE] true -> implicit TLS (465), false -> STARTTLS when offered.",
}
