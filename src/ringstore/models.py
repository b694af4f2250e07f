from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Literal, Optional, Union
from xml.etree.ElementTree import Element


KEY_TAG = "key"
REVOCATION_TAG = "revocation"


class InvalidEntry(ValueError):
    """A key or revocation element whose required date is missing or unparseable."""

    def __init__(self, tag: str, reason: str) -> None:
        super().__init__(f"invalid <{tag}> entry: {reason}")
        self.tag = tag
        self.reason = reason


@dataclass(frozen=True)
class KeyEntry:
    """
    Key metadata record (`<key id="...">` with a `<creationDate>` child).

    The cryptographic payload stays inside `element` untouched; only the
    identifier and creation date are lifted out for retention decisions.
    """

    element: Element
    key_id: str
    creation_date: datetime
    kind: Literal["key"] = "key"


@dataclass(frozen=True)
class RevocationEntry:
    element: Element
    revocation_date: datetime
    kind: Literal["revocation"] = "revocation"


@dataclass(frozen=True)
class OtherEntry:
    """Any fragment we do not recognize; carried through as-is."""

    element: Element
    kind: Literal["other"] = "other"


Entry = Union[KeyEntry, RevocationEntry, OtherEntry]


def parse_timestamp(raw: Optional[str]) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if raw is None or not raw.strip():
        raise ValueError("empty timestamp")
    dt = datetime.fromisoformat(raw.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def _child_date(element: Element, child: str) -> datetime:
    node = element.find(child)
    if node is None:
        raise InvalidEntry(element.tag, f"missing <{child}>")
    try:
        return parse_timestamp(node.text)
    except ValueError as ex:
        raise InvalidEntry(element.tag, f"unparseable <{child}> {node.text!r}") from ex


def classify(element: Element) -> Entry:
    """Wrap a raw ring element in its typed variant, by tag name."""
    if element.tag == KEY_TAG:
        return KeyEntry(
            element=element,
            key_id=element.get("id", ""),
            creation_date=_child_date(element, "creationDate"),
        )
    if element.tag == REVOCATION_TAG:
        return RevocationEntry(
            element=element,
            revocation_date=_child_date(element, "revocationDate"),
        )
    return OtherEntry(element=element)
