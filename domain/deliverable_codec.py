"""
Domain: Deliverable payload codec.

The remote store returns a variant's pool in one of several wire shapes and
accepts exactly one on write. This module converts between those shapes and the
canonical in-memory form: an ordered list of opaque item tokens.

Supported read shapes, in detection order:
- PLAIN_TEXT:        "KEY-1\\nKEY-2"
- DELIVERABLES_TEXT: {"deliverables": "KEY-1\\nKEY-2"}
- CONTENT_TEXT:      {"content": "KEY-1\\nKEY-2"}
- BARE_ARRAY:        ["KEY-1", {"value": "KEY-2"}]
- ITEMS_ARRAY:       {"items": ["KEY-1", {"value": "KEY-2"}]}

Every element is split into lines, trimmed, and blank lines are dropped. An
array element of an unsupported type is skipped without failing the rest of the
payload. Writes always use the newline-joined text form.

This module is pure: no I/O, no logging, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple


_SEPARATOR = "\n"


class PayloadShape(str, Enum):
    PLAIN_TEXT = "plain_text"
    DELIVERABLES_TEXT = "deliverables_text"
    CONTENT_TEXT = "content_text"
    BARE_ARRAY = "bare_array"
    ITEMS_ARRAY = "items_array"


class DecodeError(ValueError):
    """Raised when a payload does not match any supported wire shape."""

    def __init__(self, message: str, payload_type: str):
        self.payload_type = payload_type
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class TaggedPayload:
    """A raw payload paired with the shape it was detected as."""

    shape: PayloadShape
    body: Any


def detect_shape(raw: Any) -> TaggedPayload:
    """
    Classify a raw read payload.

    Precedence: plain string, `.deliverables` string, `.content` string,
    bare array, `.items` array.

    Raises:
        DecodeError: If the payload matches none of the supported shapes.
    """

    if isinstance(raw, str):
        return TaggedPayload(PayloadShape.PLAIN_TEXT, raw)

    if isinstance(raw, dict):
        if isinstance(raw.get("deliverables"), str):
            return TaggedPayload(PayloadShape.DELIVERABLES_TEXT, raw["deliverables"])
        if isinstance(raw.get("content"), str):
            return TaggedPayload(PayloadShape.CONTENT_TEXT, raw["content"])

    if isinstance(raw, list):
        return TaggedPayload(PayloadShape.BARE_ARRAY, raw)

    if isinstance(raw, dict) and isinstance(raw.get("items"), list):
        return TaggedPayload(PayloadShape.ITEMS_ARRAY, raw["items"])

    raise DecodeError(
        f"Unrecognized deliverables payload of type {type(raw).__name__}",
        payload_type=type(raw).__name__,
    )


def _split_text(text: str) -> List[str]:
    return [line.strip() for line in text.split(_SEPARATOR) if line.strip()]


@dataclass(frozen=True, slots=True)
class DecodedPool:
    """
    Items decoded from one payload, plus the array elements that were dropped.

    `skipped` holds the type name of every array element that could not be
    read as an item (nested arrays, booleans, objects without a `value`).
    """

    shape: PayloadShape
    items: List[str]
    skipped: Tuple[str, ...] = ()


def _element_text(element: Any) -> Optional[str]:
    """Return the text of one array element, or None if it is not an item."""

    if isinstance(element, dict):
        element = element.get("value")
        if element is None:
            return None
    # bool is an int subclass; a literal true/false is never a key
    if isinstance(element, bool) or not isinstance(element, (str, int, float)):
        return None
    return str(element)


def decode_pool(raw: Any) -> DecodedPool:
    """
    Decode any supported payload shape, reporting skipped array elements.

    An array element that holds several lines contributes one item per line,
    the same as the text shapes. An element of an unsupported type is skipped
    on its own; the rest of the array is still decoded.

    Raises:
        DecodeError: If the payload matches none of the supported shapes.
    """

    tagged = detect_shape(raw)

    if tagged.shape in (
        PayloadShape.PLAIN_TEXT,
        PayloadShape.DELIVERABLES_TEXT,
        PayloadShape.CONTENT_TEXT,
    ):
        return DecodedPool(tagged.shape, _split_text(tagged.body))

    items: List[str] = []
    skipped: List[str] = []
    for element in tagged.body:
        if element is None:
            continue
        text = _element_text(element)
        if text is None:
            skipped.append(type(element).__name__)
            continue
        items.extend(_split_text(text))
    return DecodedPool(tagged.shape, items, tuple(skipped))


def decode(raw: Any) -> List[str]:
    """
    Decode any supported payload shape into an ordered list of items.

    Raises:
        DecodeError: If the payload matches none of the supported shapes.
    """

    return decode_pool(raw).items


def encode(items: Sequence[str]) -> str:
    """
    Encode items into the newline-joined form accepted by the overwrite endpoint.

    Raises:
        ValueError: If an item is blank or contains a line break, since it would
            not survive a later decode.
    """

    for index, item in enumerate(items):
        if not item.strip():
            raise ValueError(f"Item at position {index} is blank")
        if _SEPARATOR in item:
            raise ValueError(f"Item at position {index} contains a line break")
    return _SEPARATOR.join(items)


__all__ = [
    "DecodeError",
    "DecodedPool",
    "PayloadShape",
    "TaggedPayload",
    "decode",
    "decode_pool",
    "detect_shape",
    "encode",
]
