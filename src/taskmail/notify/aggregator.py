# src/taskmail/notify/aggregator.py

from __future__ import annotations

"""
Debounce aggregator.

Per recipient address it:
- buffers change events in arrival order,
- keeps exactly one scheduled flush (every new enqueue cancels it and starts a fresh one),
- on flush removes the buffer atomically, renders one digest and hands it to the mailer once.

State per address: Idle (no entry) -> Buffering (entry present) -> Idle (after flush,
whether or not delivery succeeded). Nothing is persisted; buffers are lost on exit.
"""

import asyncio
import itertools
import logging
import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from ..core.ports import Mailer, Scheduler, TimerHandle
from .digest import Digest, format_digest
from .models import ChangeEvent, Editor

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 5 * 60.0


class AsyncioScheduler:
    """Scheduler port backed by the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        # Strong refs so spawned flush tasks are not garbage-collected mid-flight.
        self._tasks: set[asyncio.Task[None]] = set()

    def call_later(
            self,
            delay_seconds: float,
            callback: Callable[[], Awaitable[None]],
    ) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_seconds)), self._spawn, loop, callback)

    def _spawn(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], Awaitable[None]]) -> None:
        task = loop.create_task(callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_inflight(self) -> None:
        """Wait for flushes whose timers already fired (pending timers are left alone)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


@dataclass(slots=True)
class PendingDigest:
    recipient_name: str
    events: list[ChangeEvent] = field(default_factory=list)
    editor: Editor = field(default_factory=Editor)
    handle: TimerHandle | None = None
    # New value on every (re)schedule; a timer only flushes the generation it was armed for.
    generation: int = 0


class DebounceAggregator:
    """
    Owns the address -> PendingDigest table.

    Table mutations happen under a lock and never await; the mailer call happens
    outside the lock so one recipient's delivery never blocks another's enqueue/flush.
    """

    def __init__(
            self,
            mailer: Mailer,
            scheduler: Scheduler,
            *,
            debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
            subject_prefix: str = "[PM-Tool]",
            retry_attempts: int = 0,
            formatter: Callable[..., Digest] = format_digest,
    ) -> None:
        self._mailer = mailer
        self._scheduler = scheduler
        self._debounce_s = max(0.0, float(debounce_seconds))
        self._subject_prefix = subject_prefix
        self._retry_attempts = max(0, int(retry_attempts))
        self._formatter = formatter

        self._lock = threading.Lock()
        self._pending: dict[str, PendingDigest] = {}
        self._generations = itertools.count(1)

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_s

    # ---- introspection ----

    def pending_addresses(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def pending_count(self, address: str) -> int:
        with self._lock:
            entry = self._pending.get(address)
            return len(entry.events) if entry is not None else 0

    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    # ---- mutations ----

    def enqueue(
            self,
            address: str,
            recipient_name: str,
            events: Sequence[ChangeEvent],
            editor: Editor | None = None,
    ) -> None:
        """Buffer events for an address and (re)start its debounce timer."""
        if not address or not events:
            return

        with self._lock:
            entry = self._pending.get(address)
            if entry is None:
                entry = PendingDigest(
                    recipient_name=recipient_name,
                    events=list(events),
                    editor=editor or Editor(),
                )
                # Arm first: if scheduling fails the address stays Idle.
                self._arm(address, entry)
                self._pending[address] = entry
                logger.info(
                    "Mail queued to=%s changes=%d debounce_s=%.0f",
                    address,
                    len(events),
                    self._debounce_s,
                )
                return

            entry.events.extend(events)
            entry.editor = entry.editor.merged_with(editor)
            if entry.handle is not None:
                entry.handle.cancel()
            self._arm(address, entry)
            logger.info("Mail queue extended to=%s total_changes=%d", address, len(entry.events))

    def _arm(self, address: str, entry: PendingDigest) -> None:
        # Caller holds the lock.
        generation = next(self._generations)
        entry.generation = generation

        async def _fire() -> None:
            await self.flush(address, generation=generation)

        entry.handle = self._scheduler.call_later(self._debounce_s, _fire)

    def _take(self, address: str, generation: int | None) -> PendingDigest | None:
        with self._lock:
            entry = self._pending.get(address)
            if entry is None:
                return None
            if generation is not None and entry.generation != generation:
                # Stale timer: the buffer was rescheduled after this timer was armed.
                return None
            del self._pending[address]
            if generation is None and entry.handle is not None:
                entry.handle.cancel()
            return entry

    async def flush(self, address: str, *, generation: int | None = None) -> bool:
        """
        Remove the pending digest for address and deliver it once.

        Returns True only if the mailer reported success. A missing entry
        (already flushed) is a no-op returning False. Failed deliveries are
        logged and dropped, never re-enqueued.
        """
        entry = self._take(address, generation)
        if entry is None:
            return False

        count = len(entry.events)
        try:
            digest = self._formatter(
                entry.recipient_name,
                entry.events,
                entry.editor,
                subject_prefix=self._subject_prefix,
            )
        except Exception:
            logger.exception("Digest rendering failed to=%s changes=%d", address, count)
            return False

        logger.info("Mail sending to=%s changes=%d", address, count)
        for attempt in range(1, self._retry_attempts + 2):
            try:
                ok = bool(await self._mailer.send(address, digest.subject, digest.body))
            except Exception:
                logger.exception("Mail send failed to=%s changes=%d attempt=%d", address, count, attempt)
                ok = False
            else:
                if not ok:
                    logger.warning("Mail send failed to=%s changes=%d attempt=%d", address, count, attempt)

            if ok:
                logger.info("Mail sent to=%s changes=%d", address, count)
                return True

        logger.error("Mail dropped to=%s changes=%d (delivery failed)", address, count)
        return False
