# tests/test_aggregator.py

from __future__ import annotations

import asyncio

import pytest

from taskmail.notify.aggregator import AsyncioScheduler, DebounceAggregator
from taskmail.notify.differ import diff_tasks
from taskmail.notify.models import ChangeEvent, Editor

from .conftest import DEBOUNCE_S
from .fakes import BlockingMailer, BrokenScheduler, FakeMailer, FakeScheduler


def _created(task_id: int, title: str = "") -> list[ChangeEvent]:
    return diff_tasks([], [{"id": task_id, "title": title or f"Task {task_id}", "assignedTo": ["Alice"]}])


@pytest.mark.asyncio
async def test_burst_is_coalesced_into_one_mail_after_quiet_period(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    aggregator.enqueue("alice@x.com", "Alice", _created(1))
    await scheduler.advance(200)
    aggregator.enqueue("alice@x.com", "Alice", _created(2))
    await scheduler.advance(200)
    aggregator.enqueue("alice@x.com", "Alice", _created(3))

    # Sliding window: nothing before D has passed since the *last* enqueue.
    await scheduler.advance(DEBOUNCE_S - 1)
    assert mailer.attempts == []
    assert aggregator.pending_count("alice@x.com") == 3

    await scheduler.advance(1)
    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail.to == "alice@x.com"
    assert mail.subject == "[PM-Tool] Task-Update (3)"
    assert mail.body.index("Task 1") < mail.body.index("Task 2") < mail.body.index("Task 3")
    assert scheduler.now == 400 + DEBOUNCE_S
    assert not aggregator.has_pending()


@pytest.mark.asyncio
async def test_recipients_are_independent(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    aggregator.enqueue("alice@x.com", "Alice", _created(1))
    await scheduler.advance(200)
    aggregator.enqueue("bob@x.com", "Bob", _created(2))

    await scheduler.advance(100)
    assert [m.to for m in mailer.sent] == ["alice@x.com"]
    assert aggregator.pending_addresses() == ["bob@x.com"]
    assert aggregator.pending_count("bob@x.com") == 1

    await scheduler.advance(DEBOUNCE_S - 100 - 1)
    assert len(mailer.sent) == 1

    await scheduler.advance(1)
    assert [m.to for m in mailer.sent] == ["alice@x.com", "bob@x.com"]
    assert "Task 1" not in mailer.sent_to("bob@x.com")[0].body


@pytest.mark.asyncio
async def test_failed_delivery_is_dropped_and_next_enqueue_starts_fresh(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    mailer.fail_for.add("alice@x.com")
    aggregator.enqueue("alice@x.com", "Alice", _created(1, "first"))
    await scheduler.advance(DEBOUNCE_S)

    assert len(mailer.attempts) == 1
    assert mailer.sent == []
    assert not aggregator.has_pending()

    mailer.fail_for.clear()
    aggregator.enqueue("alice@x.com", "Alice", _created(2, "second"))
    assert aggregator.pending_count("alice@x.com") == 1
    await scheduler.advance(DEBOUNCE_S)

    (mail,) = mailer.sent
    assert mail.subject.endswith("(1)")
    assert "second" in mail.body
    assert "first" not in mail.body


@pytest.mark.asyncio
async def test_raising_mailer_does_not_affect_other_recipients(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    mailer.raise_for.add("alice@x.com")
    aggregator.enqueue("alice@x.com", "Alice", _created(1))
    aggregator.enqueue("bob@x.com", "Bob", _created(2))

    await scheduler.advance(DEBOUNCE_S)

    assert [m.to for m in mailer.sent] == ["bob@x.com"]
    assert not aggregator.has_pending()


@pytest.mark.asyncio
async def test_stale_timer_does_not_flush_rescheduled_buffer(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    aggregator.enqueue("alice@x.com", "Alice", _created(1))
    first_timer = scheduler.timers[0]
    aggregator.enqueue("alice@x.com", "Alice", _created(2))
    assert first_timer.cancelled

    # Simulate a timer that fired just before it was cancelled.
    await first_timer.callback()

    assert mailer.attempts == []
    assert aggregator.pending_count("alice@x.com") == 2
    assert len(scheduler.active()) == 1


@pytest.mark.asyncio
async def test_enqueue_after_flush_starts_new_buffer(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    aggregator.enqueue("alice@x.com", "Alice", _created(1))

    assert await aggregator.flush("alice@x.com") is True
    assert scheduler.timers[0].cancelled

    aggregator.enqueue("alice@x.com", "Alice", _created(2))
    assert aggregator.pending_count("alice@x.com") == 1

    # The old timer is gone; only the new one sends.
    await scheduler.advance(DEBOUNCE_S)
    assert len(mailer.sent) == 2
    assert "Task 2" in mailer.sent[1].body
    assert "Task 1" not in mailer.sent[1].body


@pytest.mark.asyncio
async def test_flush_of_idle_address_is_noop(aggregator: DebounceAggregator, mailer: FakeMailer) -> None:
    assert await aggregator.flush("nobody@x.com") is False
    assert mailer.attempts == []


@pytest.mark.asyncio
async def test_editor_is_merged_with_newer_non_empty_parts(
    aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer
) -> None:
    aggregator.enqueue("alice@x.com", "Alice", _created(1), Editor(name="Ann", address="ann@x.com"))
    aggregator.enqueue("alice@x.com", "Alice", _created(2), Editor())
    aggregator.enqueue("alice@x.com", "Alice", _created(3), Editor(name="Bob"))

    await scheduler.advance(DEBOUNCE_S)

    assert "Editor: Bob <ann@x.com>" in mailer.sent[0].body


def test_empty_enqueue_is_ignored(aggregator: DebounceAggregator, scheduler: FakeScheduler) -> None:
    aggregator.enqueue("alice@x.com", "Alice", [])
    aggregator.enqueue("", "Alice", _created(1))

    assert not aggregator.has_pending()
    assert scheduler.timers == []


@pytest.mark.asyncio
async def test_retry_policy_makes_extra_attempts(scheduler: FakeScheduler) -> None:
    mailer = FakeMailer(fail_times=1)
    agg = DebounceAggregator(mailer, scheduler, debounce_seconds=DEBOUNCE_S, retry_attempts=1)

    agg.enqueue("alice@x.com", "Alice", _created(1))
    await scheduler.advance(DEBOUNCE_S)

    assert len(mailer.attempts) == 2
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_no_retry_by_default(aggregator: DebounceAggregator, scheduler: FakeScheduler, mailer: FakeMailer) -> None:
    mailer.fail_times = 1
    aggregator.enqueue("alice@x.com", "Alice", _created(1))
    await scheduler.advance(DEBOUNCE_S)

    assert len(mailer.attempts) == 1
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_asyncio_scheduler_fires_after_real_delay() -> None:
    mailer = FakeMailer()
    scheduler = AsyncioScheduler()
    agg = DebounceAggregator(mailer, scheduler, debounce_seconds=0.2)

    agg.enqueue("alice@x.com", "Alice", _created(1))
    await asyncio.sleep(0.05)
    agg.enqueue("alice@x.com", "Alice", _created(2))
    assert mailer.sent == []

    await asyncio.sleep(0.5)
    await scheduler.wait_inflight()

    assert len(mailer.sent) == 1
    assert mailer.sent[0].subject.endswith("(2)")


@pytest.mark.asyncio
async def test_enqueue_during_inflight_delivery_starts_second_digest(scheduler: FakeScheduler) -> None:
    mailer = BlockingMailer()
    agg = DebounceAggregator(mailer, scheduler, debounce_seconds=DEBOUNCE_S)

    agg.enqueue("alice@x.com", "Alice", _created(1))
    delivering = asyncio.create_task(scheduler.advance(DEBOUNCE_S))
    await mailer.started.wait()

    # First digest is off the table but its send has not finished yet.
    assert not agg.has_pending()
    agg.enqueue("alice@x.com", "Alice", _created(2))
    assert agg.pending_count("alice@x.com") == 1

    mailer.release.set()
    await delivering
    assert len(mailer.sent) == 1
    assert "Task 2" not in mailer.sent[0].body

    await scheduler.advance(DEBOUNCE_S)

    assert len(mailer.sent) == 2
    second = mailer.sent[1]
    assert second.subject.endswith("(1)")
    assert "Task 2" in second.body
    assert "Task 1" not in second.body


def test_failed_timer_arming_leaves_address_idle(mailer: FakeMailer) -> None:
    agg = DebounceAggregator(mailer, BrokenScheduler(), debounce_seconds=DEBOUNCE_S)

    with pytest.raises(RuntimeError):
        agg.enqueue("alice@x.com", "Alice", _created(1))

    assert not agg.has_pending()
    assert agg.pending_count("alice@x.com") == 0
