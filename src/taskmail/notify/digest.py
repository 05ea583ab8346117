# src/taskmail/notify/digest.py

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .models import ChangeEvent, ChangeType, Editor

NO_TITLE = "(no title)"
EMPTY = "-"


@dataclass(frozen=True, slots=True)
class Digest:
    subject: str
    body: str


def _field(task: Mapping[str, Any] | None, name: str) -> str:
    if not isinstance(task, Mapping):
        return ""
    value = task.get(name)
    if value is None:
        return ""
    return str(value).strip()


def render_value(value: str | tuple[str, ...]) -> str:
    """Stable text for a normalized field value (multi-valued -> comma-joined sorted list)."""
    if isinstance(value, tuple):
        return ", ".join(value) if value else EMPTY
    return value or EMPTY


def editor_line(editor: Editor | None) -> str:
    if editor is None or editor.is_empty:
        return "Editor: (unknown)"
    line = f"Editor: {editor.name or EMPTY}"
    if editor.address:
        line += f" <{editor.address}>"
    return line


def _event_lines(event: ChangeEvent) -> list[str]:
    if event.type == ChangeType.CREATED:
        return [
            f"NEW: {_field(event.after, 'title') or NO_TITLE} (id={event.task_id})",
            f"  Status: {_field(event.after, 'status') or EMPTY}",
            f"  Deadline: {_field(event.after, 'deadline') or EMPTY}",
        ]

    if event.type == ChangeType.DELETED:
        return [f"DELETED: {_field(event.before, 'title') or NO_TITLE} (id={event.task_id})"]

    title = _field(event.after, "title") or _field(event.before, "title") or NO_TITLE
    lines = [f"UPDATED: {title} (id={event.task_id})"]
    for delta in event.field_deltas:
        lines.append(f"  - {delta.field}: {render_value(delta.old)}  ->  {render_value(delta.new)}")
    return lines


def format_digest(
    recipient_name: str,
    events: Sequence[ChangeEvent],
    editor: Editor | None = None,
    *,
    subject_prefix: str = "[PM-Tool]",
    now: datetime | None = None,
) -> Digest:
    """
    Render buffered change events into one mail.

    Subject: "<prefix> Task-Update (<count>)".
    Body: header, editor attribution, render time, then one block per event
    in the given order.
    """
    if not events:
        raise ValueError("format_digest requires at least one event")

    rendered_at = (now or datetime.now(UTC)).isoformat()
    heading = f"{subject_prefix} Task-Update".strip()

    lines = [
        heading,
        "",
        f"Hello {recipient_name or EMPTY},",
        "",
        editor_line(editor),
        f"Time: {rendered_at}",
        "",
    ]
    for event in events:
        lines.extend(_event_lines(event))
        lines.append("")

    return Digest(subject=f"{heading} ({len(events)})", body="\n".join(lines))
