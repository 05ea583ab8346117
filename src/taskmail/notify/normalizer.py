# src/taskmail/notify/normalizer.py

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from .models import NormalizedTask

# Links never contain whitespace, so any whitespace or comma separates them.
_LINK_SPLIT = re.compile(r"[\s,]+")
# Person names may contain spaces.
_PERSON_SPLIT = re.compile(r"[,;\n]+")


def _text(value: Any) -> str:
    # Wrong types become "" rather than being coerced (1 and "1" must not compare equal).
    if isinstance(value, str):
        return value.strip()
    return ""


def _string_set(value: Any, splitter: re.Pattern[str]) -> tuple[str, ...]:
    """
    Reduce a delimited string or a collection of strings to a sorted,
    deduplicated tuple of trimmed non-empty strings.
    """
    items: Iterable[Any]
    if value is None:
        return ()
    if isinstance(value, str):
        items = splitter.split(value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        return ()

    out = {item.strip() for item in items if isinstance(item, str) and item.strip()}
    return tuple(sorted(out))


def normalize_links(value: Any) -> tuple[str, ...]:
    return _string_set(value, _LINK_SPLIT)


def normalize_people(value: Any) -> tuple[str, ...]:
    return _string_set(value, _PERSON_SPLIT)


def normalize_task(task: Mapping[str, Any] | None) -> NormalizedTask:
    """
    Project a raw task record onto the watched fields in canonical form.

    Never raises: a missing task (or a non-mapping) yields the all-empty record,
    malformed fields yield their empty defaults.
    """
    if not isinstance(task, Mapping):
        return NormalizedTask()

    return NormalizedTask(
        status=_text(task.get("status")),
        title=_text(task.get("title")),
        description=_text(task.get("description")),
        deadline=_text(task.get("deadline")),
        links=normalize_links(task.get("links")),
        assigned_to=normalize_people(task.get("assignedTo")),
    )
