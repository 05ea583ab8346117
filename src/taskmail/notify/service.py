# src/taskmail/notify/service.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import TaskRecord, TaskSnapshotRepo
from .aggregator import DebounceAggregator
from .differ import diff_tasks
from .models import ChangeEvent, Editor
from .recipients import RecipientResolver

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NotifyOutcome:
    events: int = 0
    queued: dict[str, int] = field(default_factory=dict)  # address -> events enqueued
    unresolved: set[str] = field(default_factory=set)


def extract_tasks(payload: Any) -> list[TaskRecord]:
    """Accept either a bare task list or a save payload like {"tasks": [...], "log": [...]}."""
    if isinstance(payload, list):
        return [t for t in payload if isinstance(t, dict)]
    if isinstance(payload, dict):
        tasks = payload.get("tasks")
        if isinstance(tasks, list):
            return [t for t in tasks if isinstance(t, dict)]
    return []


class ChangeNotifier:
    """
    Entry point used by the save flow after a successful save:
    diff -> resolve recipients -> enqueue per address.
    """

    def __init__(self, resolver: RecipientResolver, aggregator: DebounceAggregator) -> None:
        self._resolver = resolver
        self._aggregator = aggregator

    def group_by_address(
            self,
            events: Sequence[ChangeEvent],
            outcome: NotifyOutcome,
    ) -> dict[str, tuple[str, list[ChangeEvent]]]:
        per_address: dict[str, tuple[str, list[ChangeEvent]]] = {}
        for event in events:
            for name in sorted(event.recipients):
                address = self._resolver.resolve(name)
                if not address:
                    outcome.unresolved.add(name)
                    continue
                # First name seen for an address is the one greeted in the digest.
                bucket = per_address.setdefault(address, (name, []))[1]
                # Two names sharing one mailbox must not repeat the event.
                if bucket and bucket[-1] is event:
                    continue
                bucket.append(event)
        return per_address

    def on_saved(
            self,
            old_tasks: Sequence[Any] | None,
            new_tasks: Sequence[Any] | None,
            editor: Editor | None = None,
    ) -> NotifyOutcome:
        """Best-effort: never raises into the save that triggered it."""
        outcome = NotifyOutcome()
        try:
            events = diff_tasks(old_tasks, new_tasks)
            outcome.events = len(events)
            if not events:
                logger.info("No relevant task changes detected")
                return outcome

            per_address = self.group_by_address(events, outcome)
            if outcome.unresolved:
                logger.debug("Unresolved recipients (dropped): %s", sorted(outcome.unresolved))

            if not per_address:
                logger.info("Changes detected (%d) but no recipients matched the directory", len(events))
                return outcome

            for address, (name, address_events) in per_address.items():
                self._aggregator.enqueue(address, name, address_events, editor)
                outcome.queued[address] = len(address_events)
        except Exception:
            logger.exception("Change notification failed; save is unaffected")
        return outcome


def save_and_notify(
    store: TaskSnapshotRepo,
    notifier: ChangeNotifier,
    new_tasks: list[TaskRecord],
    editor: Editor | None = None,
) -> NotifyOutcome:
    """
    Persist a new task list and queue notifications for what changed.

    Loading the previous snapshot is best-effort (failure -> every task counts
    as created). A failing save propagates; notification runs only after it.
    """
    try:
        old_tasks = store.load_previous()
    except Exception:
        logger.exception("Loading previous task snapshot failed; diffing against an empty list")
        old_tasks = []

    store.save(new_tasks)

    return notifier.on_saved(old_tasks, new_tasks, editor)
