"""
Key ring persistence in a size-limited secret store.

The ring is an ordered list of XML fragments (keys, revocations, anything
else) stored as one base64-encoded document, pruned by age on read.
"""

from .codec import MalformedBlob, decode, encode
from .config import RingStoreConfig
from .models import Entry, InvalidEntry, KeyEntry, OtherEntry, RevocationEntry, classify
from .retention import RetentionFilter
from .store import CapacityGuard, RingStore

__all__ = [
    "CapacityGuard",
    "Entry",
    "InvalidEntry",
    "KeyEntry",
    "MalformedBlob",
    "OtherEntry",
    "RetentionFilter",
    "RevocationEntry",
    "RingStore",
    "RingStoreConfig",
    "classify",
    "decode",
    "encode",
]
