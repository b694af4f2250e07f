from __future__ import annotations

import base64
import binascii
from typing import Iterable, List, Union
from xml.etree import ElementTree as ET


ROOT_TAG = "root"


class MalformedBlob(ValueError):
    """The stored blob is not base64 of a UTF-8 XML document."""


def encode(elements: Iterable[ET.Element]) -> str:
    """Serialize ring elements under a synthetic root, then base64 the UTF-8 text."""
    root = ET.Element(ROOT_TAG)
    root.extend(elements)
    text = ET.tostring(root, encoding="unicode")
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _parser() -> ET.XMLParser:
    # Comments and processing instructions are entry content; keep them
    return ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))


def decode(blob: Union[str, bytes]) -> List[ET.Element]:
    """Reverse `encode`: return the root's direct children in document order.

    `blob` may be text or the raw bytes read from the store; whitespace and
    line wraps inside the base64 are ignored.

    Raises:
    - MalformedBlob if base64, UTF-8 or XML decoding fails.
    """
    compact = blob[:0].join(blob.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as ex:
        raise MalformedBlob("Key ring blob is not valid base64") from ex

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as ex:
        raise MalformedBlob("Key ring blob is not valid UTF-8") from ex

    try:
        root = ET.fromstring(text, parser=_parser())
    except ET.ParseError as ex:
        raise MalformedBlob("Key ring blob is not a well-formed XML document") from ex

    return list(root)
