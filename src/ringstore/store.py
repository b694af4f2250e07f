from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from xml.etree.ElementTree import Element

from common.secrets import (
    DEFAULT_CONTENT_TYPE,
    OptimisticLockError,
    SecretNotFoundError,
    SecretService,
)

from .codec import MalformedBlob, decode, encode
from .config import RingStoreConfig
from .models import Entry
from .retention import RetentionFilter


# Maximum secret size the ring is sized against, in characters
DEFAULT_HARD_LIMIT = 25000
DEFAULT_SAFETY_MARGIN = 5000


class CapacityGuard:
    """Advisory check of the encoded ring size against the backend's secret limit."""

    def __init__(
        self,
        *,
        hard_limit: int = DEFAULT_HARD_LIMIT,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not 0 <= safety_margin < hard_limit:
            raise ValueError("safety_margin must be >= 0 and < hard_limit")
        self.hard_limit = hard_limit
        self.safety_margin = safety_margin
        self._log = logger or logging.getLogger(__name__)

    @property
    def threshold(self) -> int:
        return self.hard_limit - self.safety_margin

    def check(self, blob: str) -> bool:
        """Log the ring size; return True when it crossed the warning threshold."""
        size = len(blob)
        self._log.info("Key ring size in secret store is %d", size)
        if size > self.threshold:
            self._log.critical(
                "Key ring size is getting too big, current size is %d, max size is %d",
                size,
                self.hard_limit,
            )
            return True
        return False


class RingStore:
    """
    Append-only key ring kept as one base64-encoded XML secret.

    Usage
    - `list_all()` returns the retained ring elements; a missing secret is an
      empty ring, not an error.
    - `store(element, label)` appends one element: read, append, encode, write.

    Concurrency
    - Nothing here locks. Against a backend without conditional writes two
      concurrent `store()` calls race and the last writer wins; one append
      can be lost.
    - If the backend reports `supports_conditional_writes`, the write is made
      conditional on the version that was read and the whole cycle is
      retried on conflict, up to `config.max_write_attempts` times.
    """

    def __init__(
        self,
        service: SecretService,
        config: RingStoreConfig,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._service = service
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._retention = RetentionFilter(
            max_age_days=config.max_age_days,
            on_invalid_entry=config.on_invalid_entry,
            clock=clock,
            logger=self._log,
        )
        self._guard = CapacityGuard(
            hard_limit=config.hard_limit,
            safety_margin=config.safety_margin,
            logger=self._log,
        )

    @property
    def secret_name(self) -> str:
        return self._config.secret_name

    # -------- Read path --------
    def _fetch(self) -> Tuple[List[Entry], Optional[str], bool]:
        """Return (retained entries, version, exists) for the ring secret."""
        self._log.info("Loading key ring from secret '%s'", self.secret_name)
        try:
            secret = self._service.get(self.secret_name)
        except SecretNotFoundError:
            self._log.info(
                "Secret '%s' not found, a new key ring will be created", self.secret_name
            )
            return ([], None, False)

        self._log.info("Loaded key ring of %d characters", len(secret.value))
        try:
            elements = decode(secret.value)
        except MalformedBlob as ex:
            if self._config.on_malformed == "raise":
                raise
            self._log.warning(
                "Failed to decode secret '%s' (%s), a new key ring will be created",
                self.secret_name,
                ex,
            )
            return ([], secret.version, True)

        entries = self._retention.apply(elements)
        self._log.info("Loaded %d key ring items", len(entries))
        return (entries, secret.version, True)

    def list_entries(self) -> List[Entry]:
        entries, _version, _exists = self._fetch()
        return entries

    def list_all(self) -> List[Element]:
        return [entry.element for entry in self.list_entries()]

    # -------- Write path --------
    def _write(self, blob: str, *, version: Optional[str], exists: bool) -> None:
        if self._service.supports_conditional_writes:
            self._service.set(
                self.secret_name,
                blob,
                content_type=DEFAULT_CONTENT_TYPE,
                if_version=version if exists else None,
                create_only=not exists,
            )
        else:
            self._service.set(self.secret_name, blob, content_type=DEFAULT_CONTENT_TYPE)
        self._guard.check(blob)

    def store(self, element: Element, label: str) -> None:
        """Append `element` to the ring. `label` is only used for logging."""
        self._log.info("Adding %s to key ring", label)

        attempts = self._config.max_write_attempts if self._service.supports_conditional_writes else 1
        for attempt in range(1, attempts + 1):
            entries, version, exists = self._fetch()
            elements = [entry.element for entry in entries]
            elements.append(element)
            blob = encode(elements)
            try:
                self._write(blob, version=version, exists=exists)
                return
            except OptimisticLockError:
                if attempt == attempts:
                    raise
                self._log.warning(
                    "Key ring '%s' changed while appending %s, retrying (%d/%d)",
                    self.secret_name,
                    label,
                    attempt,
                    attempts,
                )
