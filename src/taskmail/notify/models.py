# src/taskmail/notify/models.py

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# Task attributes whose change triggers a notification (record keys as stored).
WATCHED_FIELDS: tuple[str, ...] = ("status", "title", "description", "deadline", "links", "assignedTo")

SCALAR_FIELDS: tuple[str, ...] = ("status", "title", "description", "deadline")
MULTI_FIELDS: tuple[str, ...] = ("links", "assignedTo")


class ChangeType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class NormalizedTask:
    """
    Canonical projection of a task onto the watched fields.

    Multi-valued fields are sorted, deduplicated tuples, so plain dataclass
    equality is order-independent structural equality.
    """

    status: str = ""
    title: str = ""
    description: str = ""
    deadline: str = ""
    links: tuple[str, ...] = ()
    assigned_to: tuple[str, ...] = ()

    def get(self, field_name: str) -> str | tuple[str, ...]:
        """Value of a watched field by its record key (e.g. ``assignedTo``)."""
        if field_name == "assignedTo":
            return self.assigned_to
        if field_name not in WATCHED_FIELDS:
            raise KeyError(field_name)
        return getattr(self, field_name)


@dataclass(frozen=True, slots=True)
class FieldDelta:
    field: str
    old: str | tuple[str, ...]
    new: str | tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    type: ChangeType
    task_id: Any
    before: Mapping[str, Any] | None
    after: Mapping[str, Any] | None
    field_deltas: tuple[FieldDelta, ...] = ()
    recipients: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class Editor:
    """Who performed the save (both parts optional)."""

    name: str = ""
    address: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.address

    def merged_with(self, newer: Editor | None) -> Editor:
        """Newer non-empty parts win; empty parts keep the current value."""
        if newer is None:
            return self
        return Editor(name=newer.name or self.name, address=newer.address or self.address)
