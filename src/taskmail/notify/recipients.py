# src/taskmail/notify/recipients.py

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from types import MappingProxyType

logger = logging.getLogger(__name__)


class Directory:
    """
    Static person -> mail address mapping, loaded once at startup.

    Read-only after construction. Entries with a non-string name or an
    empty/non-string address are dropped.
    """

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        clean: dict[str, str] = {}
        for name, address in (entries or {}).items():
            if not isinstance(name, str) or not isinstance(address, str):
                continue
            name = name.strip()
            if not name or not address.strip():
                continue
            clean[name] = address.strip()
        self._entries = MappingProxyType(clean)

        # First key (in config order) wins when two names differ only by case.
        folded: dict[str, str] = {}
        for name, address in clean.items():
            folded.setdefault(name.casefold(), address)
        self._folded = MappingProxyType(folded)

    @classmethod
    def from_json(cls, raw: str | None) -> Directory:
        """Parse a JSON object like {"Alice": "alice@x.com"}; malformed input -> empty directory."""
        if not raw or not raw.strip():
            return cls()
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("TEAM_EMAILS_JSON is not valid JSON; no recipients will be resolved")
            return cls()
        if not isinstance(data, dict):
            logger.warning("TEAM_EMAILS_JSON must be a JSON object; no recipients will be resolved")
            return cls()
        return cls(data)

    @property
    def entries(self) -> Mapping[str, str]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, name: str) -> str | None:
        direct = self._entries.get(name)
        if direct:
            return direct
        return self._folded.get(name.casefold())


class RecipientResolver:
    """Resolve a person identifier to an address: exact match first, then case-insensitive."""

    def __init__(self, directory: Directory) -> None:
        self._directory = directory

    def resolve(self, person: str | None) -> str | None:
        if not isinstance(person, str) or not person.strip():
            return None
        return self._directory.lookup(person) or self._directory.lookup(person.strip())
