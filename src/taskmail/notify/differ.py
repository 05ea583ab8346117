# src/taskmail/notify/differ.py

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping
from typing import Any

from .models import WATCHED_FIELDS, ChangeEvent, ChangeType, FieldDelta, NormalizedTask
from .normalizer import normalize_task

logger = logging.getLogger(__name__)


def _id_sort_key(task_id: Any) -> tuple[int, Any]:
    # Mixed int/str ids must still sort deterministically.
    if isinstance(task_id, (int, float)) and not isinstance(task_id, bool):
        return (0, task_id)
    return (1, str(task_id))


def index_tasks(tasks: Iterable[Any] | None) -> dict[Any, Mapping[str, Any]]:
    """
    Build an id -> task lookup.

    Records without a usable id are skipped. Duplicate ids: the last
    occurrence in the snapshot wins.
    """
    out: dict[Any, Mapping[str, Any]] = {}
    for task in tasks or ():
        if not isinstance(task, Mapping):
            continue
        task_id = task.get("id")
        if task_id is None or not isinstance(task_id, Hashable):
            logger.debug("Skipping task without usable id: %r", task_id)
            continue
        if task_id in out:
            logger.debug("Duplicate task id=%r in snapshot; last occurrence wins", task_id)
        out[task_id] = task
    return out


def field_deltas(before: NormalizedTask, after: NormalizedTask) -> tuple[FieldDelta, ...]:
    return tuple(
        FieldDelta(field=f, old=before.get(f), new=after.get(f))
        for f in WATCHED_FIELDS
        if before.get(f) != after.get(f)
    )


def diff_tasks(
    old_tasks: Iterable[Any] | None,
    new_tasks: Iterable[Any] | None,
) -> list[ChangeEvent]:
    """
    Diff two task-list snapshots.

    Returns one event per changed task id, ordered by id:
    - only in new  -> CREATED, recipients = assignees of the new task
    - only in old  -> DELETED, recipients = assignees of the old task
    - in both      -> UPDATED if any watched field differs after normalization,
                      recipients = old assignees | new assignees
    """
    old_by_id = index_tasks(old_tasks)
    new_by_id = index_tasks(new_tasks)

    events: list[ChangeEvent] = []

    for task_id in sorted(old_by_id.keys() | new_by_id.keys(), key=_id_sort_key):
        before = old_by_id.get(task_id)
        after = new_by_id.get(task_id)

        if before is None and after is not None:
            events.append(
                ChangeEvent(
                    type=ChangeType.CREATED,
                    task_id=task_id,
                    before=None,
                    after=after,
                    recipients=frozenset(normalize_task(after).assigned_to),
                )
            )
            continue

        if after is None and before is not None:
            events.append(
                ChangeEvent(
                    type=ChangeType.DELETED,
                    task_id=task_id,
                    before=before,
                    after=None,
                    recipients=frozenset(normalize_task(before).assigned_to),
                )
            )
            continue

        b = normalize_task(before)
        a = normalize_task(after)
        if b == a:
            continue

        events.append(
            ChangeEvent(
                type=ChangeType.UPDATED,
                task_id=task_id,
                before=before,
                after=after,
                field_deltas=field_deltas(b, a),
                recipients=frozenset(b.assigned_to) | frozenset(a.assigned_to),
            )
        )

    return events
