from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, UTC
from typing import Callable, Optional
from xml.etree import ElementTree as ET

import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `ringstore.*` / `common.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def make_key() -> Callable[..., ET.Element]:
    def _make(key_id: Optional[str] = "k-1", *, age_days: int = 0) -> ET.Element:
        el = ET.Element("key", {"version": "1"})
        if key_id is not None:
            el.set("id", key_id)
        created = NOW - timedelta(days=age_days)
        ET.SubElement(el, "creationDate").text = created.isoformat()
        ET.SubElement(el, "activationDate").text = created.isoformat()
        ET.SubElement(el, "expirationDate").text = (created + timedelta(days=90)).isoformat()
        desc = ET.SubElement(el, "descriptor")
        ET.SubElement(desc, "encryption", {"algorithm": "AES_256_CBC"})
        return el

    return _make


@pytest.fixture
def make_revocation() -> Callable[..., ET.Element]:
    def _make(*, age_days: int = 0, reason: str = "rotated") -> ET.Element:
        el = ET.Element("revocation", {"version": "1"})
        ET.SubElement(el, "revocationDate").text = (NOW - timedelta(days=age_days)).isoformat()
        ET.SubElement(el, "key", {"id": "*"})
        ET.SubElement(el, "reason").text = reason
        return el

    return _make
