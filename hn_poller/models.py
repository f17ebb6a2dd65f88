"""HN item record and JSON decoding for upstream payloads."""

import json
from dataclasses import asdict, dataclass, field

from hn_poller.errors import DecodeError

# JSON key -> expected type. Missing or mistyped fields keep the dataclass default.
ITEM_FIELDS = {
    "by": str,
    "descendants": int,
    "id": int,
    "kids": list,
    "time": int,
    "score": int,
    "title": str,
    "type": str,
    "url": str,
}


@dataclass
class Item:
    id: int = 0
    by: str = ""
    time: int = 0
    score: int = 0
    title: str = ""
    type: str = ""
    url: str = ""
    descendants: int = 0
    kids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _loads(body: bytes, url: str):
    try:
        return json.loads(body)
    except (ValueError, TypeError) as e:
        raise DecodeError(f"invalid JSON: {e}", url) from e


def decode_ids(body: bytes, url: str = "") -> list[int]:
    """Decode a listing response into an ordered list of item ids.

    Raises DecodeError unless the body is a JSON array of integers.
    """
    data = _loads(body, url)
    if not isinstance(data, list):
        raise DecodeError(f"expected a JSON array, got {type(data).__name__}", url)
    if not all(_is_int(v) for v in data):
        raise DecodeError("listing contains non-integer ids", url)
    return data


def decode_item(body: bytes, item_id: int, url: str = "") -> tuple[Item, list[str]]:
    """Decode an item detail response.

    Returns the item together with the names of fields that were present but
    malformed; those fields keep their zero value. A payload that is not a
    JSON object (including HN's ``null`` for unknown ids) raises DecodeError.
    If the payload carries no usable ``id`` the requested ``item_id`` is used.
    """
    data = _loads(body, url)
    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}", url)

    values = {}
    bad = []
    for key, kind in ITEM_FIELDS.items():
        if key not in data or data[key] is None:
            continue
        value = data[key]
        if kind is int:
            ok = _is_int(value)
        elif kind is list:
            ok = isinstance(value, list) and all(_is_int(v) for v in value)
        else:
            ok = isinstance(value, kind)
        if ok:
            values[key] = list(value) if kind is list else value
        else:
            bad.append(key)

    if not values.get("id"):
        values["id"] = item_id
    return Item(**values), bad
