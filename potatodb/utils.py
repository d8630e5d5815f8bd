from __future__ import annotations
import copy
import json
import secrets
import time
from typing import Any, Dict, List

from .errors import ValidationError


class _Missing:
    """Marker for a dotted path that does not resolve inside a document."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def now_ms() -> int:
    return int(time.time() * 1000)


def new_potato_id() -> str:
    # 16 random bytes, hex encoded
    return secrets.token_hex(16)


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def deep_copy(obj: Any) -> Any:
    return copy.deepcopy(obj)


def split_path(path: str) -> List[str]:
    return [p for p in path.split(".") if p]


def extract_nested(obj: Any, path: str) -> Any:
    """
    Walk a dotted path through nested mappings.
    Returns MISSING as soon as a segment is absent or the current value is not a mapping.
    """
    cur: Any = obj
    for key in split_path(path):
        if not isinstance(cur, dict) or key not in cur:
            return MISSING
        cur = cur[key]
    return cur


def set_nested(obj: Dict[str, Any], path: str, value: Any) -> None:
    """
    Set a dotted path, creating intermediate levels that are absent or null.
    A scalar or list already sitting in the path is never replaced.
    """
    keys = split_path(path)
    if not keys:
        return
    cur = obj
    for depth, key in enumerate(keys[:-1]):
        nxt = cur.get(key)
        if nxt is None:
            nxt = {}
            cur[key] = nxt
        elif not isinstance(nxt, dict):
            at = ".".join(keys[:depth + 1])
            raise ValidationError(f"cannot set '{path}': '{at}' holds a non-mapping value")
        cur = nxt
    cur[keys[-1]] = value


def json_kind(v: Any) -> str:
    if v is MISSING:
        return "missing"
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "bool"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    if isinstance(v, (list, tuple)):
        return "array"
    if isinstance(v, dict):
        return "object"
    return type(v).__name__


def deep_equal(x: Any, y: Any) -> bool:
    """Type-sensitive recursive equality: bool is not a number, keys and items must match."""
    kx, ky = json_kind(x), json_kind(y)
    if kx != ky:
        return False
    if kx == "object":
        if len(x) != len(y):
            return False
        return all(k in y and deep_equal(v, y[k]) for k, v in x.items())
    if kx == "array":
        return len(x) == len(y) and all(deep_equal(a, b) for a, b in zip(x, y))
    return x == y


def contains(seq: List[Any], value: Any) -> bool:
    return any(deep_equal(item, value) for item in seq)


def stringify(v: Any) -> str:
    """Text form used by regex conditions: arrays join with ",", 35.0 reads as "35"."""
    if isinstance(v, str):
        return v
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, (list, tuple)):
        return ",".join("" if item is None else stringify(item) for item in v)
    try:
        return json.dumps(v, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(v)
