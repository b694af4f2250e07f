from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Callable, Iterable, List, Literal, Optional
from xml.etree.ElementTree import Element

from .models import Entry, InvalidEntry, KeyEntry, RevocationEntry, classify


DEFAULT_MAX_AGE_DAYS = 180

InvalidEntryPolicy = Literal["fail", "skip"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RetentionFilter:
    """
    Age-based pruning applied when the ring is read.

    - `key` entries older than `max_age_days` (by `creationDate`) are dropped
      and the drop is logged as critical: the next write loses them for good.
    - `revocation` entries older than `max_age_days` (by `revocationDate`)
      are dropped.
    - Anything else is kept unconditionally.

    Age is measured in whole days, so an entry exactly `max_age_days` old is
    still retained.

    A clock returning a naive datetime is read as UTC.

    `on_invalid_entry` decides what a key/revocation with a missing or
    unparseable date does to the read: `"fail"` re-raises `InvalidEntry`,
    `"skip"` logs and drops only that element.
    """

    def __init__(
        self,
        *,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        on_invalid_entry: InvalidEntryPolicy = "fail",
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        if on_invalid_entry not in ("fail", "skip"):
            raise ValueError(f"unknown invalid-entry policy '{on_invalid_entry}'")
        self._max_age_days = max_age_days
        self._on_invalid = on_invalid_entry
        self._clock = clock or _utcnow
        self._log = logger or logging.getLogger(__name__)

    def _age_days(self, now: datetime, then: datetime) -> int:
        return (now - then).days

    def keep(self, entry: Entry, now: datetime) -> bool:
        if isinstance(entry, KeyEntry):
            if self._age_days(now, entry.creation_date) <= self._max_age_days:
                self._log.info("Loaded key %s", entry.key_id)
                return True
            self._log.critical("Ignored old key %s", entry.key_id)
            return False

        if isinstance(entry, RevocationEntry):
            if self._age_days(now, entry.revocation_date) <= self._max_age_days:
                self._log.info(
                    "Loaded revocation entry dated %s", entry.revocation_date.isoformat()
                )
                return True
            self._log.debug(
                "Dropped revocation entry dated %s", entry.revocation_date.isoformat()
            )
            return False

        return True

    def apply(self, elements: Iterable[Element]) -> List[Entry]:
        """Classify `elements` and return the retained entries in order."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        kept: List[Entry] = []
        for element in elements:
            try:
                entry = classify(element)
            except InvalidEntry as ex:
                if self._on_invalid == "fail":
                    raise
                self._log.error("Skipped invalid key ring entry <%s>: %s", ex.tag, ex.reason)
                continue
            if self.keep(entry, now):
                kept.append(entry)
        return kept
