# src/taskmail/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..notify.aggregator import DebounceAggregator
from ..notify.recipients import Directory
from ..notify.service import ChangeNotifier
from .ports import Mailer, TaskSnapshotRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    directory: Directory
    mailer: Mailer
    aggregator: DebounceAggregator
    notifier: ChangeNotifier
    task_store: TaskSnapshotRepo
