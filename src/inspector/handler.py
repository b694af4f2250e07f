from __future__ import annotations

from typing import Any, Dict, List, Optional
from xml.etree import ElementTree as ET

from common.secrets import create_secret_service
from ringstore.config import RingStoreConfig
from ringstore.models import Entry, KeyEntry, RevocationEntry
from ringstore.store import RingStore


def _summarize(entry: Entry) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "kind": entry.kind,
        "xml": ET.tostring(entry.element, encoding="unicode"),
    }
    if isinstance(entry, KeyEntry):
        out["id"] = entry.key_id
        out["date"] = entry.creation_date.isoformat()
    elif isinstance(entry, RevocationEntry):
        out["date"] = entry.revocation_date.isoformat()
    return out


def _build_store() -> RingStore:
    config = RingStoreConfig.from_env()
    return RingStore(create_secret_service(config), config)


def run_once(store: Optional[RingStore] = None) -> Dict[str, Any]:
    store = store or _build_store()
    entries = store.list_entries()

    summaries: List[Dict[str, Any]] = [_summarize(e) for e in entries]
    counts = {"key": 0, "revocation": 0, "other": 0}
    for e in entries:
        counts[e.kind] += 1

    return {
        "ok": True,
        "secret": store.secret_name,
        "count": len(entries),
        "keys": counts["key"],
        "revocations": counts["revocation"],
        "other": counts["other"],
        "entries": summaries,
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return run_once()
