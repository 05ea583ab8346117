# src/taskmail/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The notification core depends on Protocols instead of concrete implementations.
This keeps storage/mail transports swappable and makes testing easier
(fake mailer, fake clock).
"""

from typing import Any, Awaitable, Callable, Protocol

TaskRecord = dict[str, Any]
# Raw task record as stored by the task list: {"id": ..., "status": ..., "assignedTo": [...], ...}.


class TaskSnapshotRepo(Protocol):
    """Owner of the authoritative task list (previous/next snapshot around a save)."""

    def load_previous(self) -> list[TaskRecord]: ...

    def save(self, tasks: list[TaskRecord]) -> None: ...


class Mailer(Protocol):
    """
    Outbound mail port.

    Returns True on success. Failure may be signalled either by returning False
    or by raising; callers treat both the same way.
    """

    def send(self, to_address: str, subject: str, body: str) -> Awaitable[bool]: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Delayed-callback port used by the debounce aggregator.

    Production uses the asyncio loop; tests use a virtual clock that is advanced manually.
    """

    def call_later(
            self,
            delay_seconds: float,
            callback: Callable[[], Awaitable[None]],
    ) -> TimerHandle: ...
