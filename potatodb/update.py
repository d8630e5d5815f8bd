from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .errors import ValidationError
from .stamps import ID_FIELD, DocumentStamper
from .utils import MISSING, contains, deep_equal, extract_nested, set_nested, split_path

TransformFn = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class Transform:
    """A caller supplied function that mutates a potato (and may return a replacement)."""
    fn: TransformFn


@dataclass(frozen=True)
class UpdateDocument:
    """Operator blocks (`$inc`, `$push`, ...) and plain dotted paths to set."""
    fields: Mapping[str, Any]


Update = Union[Transform, UpdateDocument]


def validate_update(update: Any, caller: str) -> Update:
    if isinstance(update, (Transform, UpdateDocument)):
        return update
    if isinstance(update, Mapping):
        return UpdateDocument(dict(update))
    if callable(update):
        return Transform(update)
    raise ValidationError(f"{caller} expected an updates mapping or function as a second argument")


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _require_list(op: str, field: str, target: Any) -> List[Any]:
    if target is MISSING or target is None:
        return []
    if not isinstance(target, list):
        raise ValidationError(f"{op} expected an array at '{field}'")
    return list(target)


def _inc(field: str, target: Any, change: Any) -> Any:
    if target is MISSING or target is None:
        target = 0
    if not _is_number(target) or not _is_number(change):
        raise ValidationError(f"$inc expected numbers at '{field}'")
    return target + change


def _push(field: str, target: Any, change: Any) -> Any:
    items = _require_list("$push", field, target)
    items.append(change)
    return items


def _add_to_set(field: str, target: Any, change: Any) -> Any:
    items: List[Any] = []
    for item in _require_list("$addToSet", field, target) + [change]:
        if not contains(items, item):
            items.append(item)
    return items


def _pull(field: str, target: Any, change: Any) -> Any:
    return [item for item in _require_list("$pull", field, target) if not deep_equal(item, change)]


def _pop(field: str, target: Any, change: Any) -> Any:
    items = _require_list("$pop", field, target)
    if isinstance(change, bool) or change not in (1, -1):
        raise ValidationError(f"$pop expected 1 or -1 at '{field}'")
    if items:
        items.pop(-1 if change == 1 else 0)
    return items


def _concat(field: str, target: Any, change: Any) -> Any:
    if isinstance(target, list) and isinstance(change, list):
        return target + change
    if isinstance(target, str) and isinstance(change, str):
        return target + change
    raise ValidationError(f"$concat expected two arrays or two strings at '{field}'")


_OPERATORS: Dict[str, Callable[[str, Any, Any], Any]] = {
    "$inc": _inc,
    "$push": _push,
    "$addToSet": _add_to_set,
    "$pull": _pull,
    "$pop": _pop,
    "$concat": _concat,
}


def _is_id_path(path: str) -> bool:
    return split_path(path)[:1] == [ID_FIELD]


def apply_update(
    potato: Dict[str, Any],
    update: Any,
    stamper: DocumentStamper | None = None,
    caller: str = "update",
) -> Dict[str, Any]:
    """
    Apply an update to one potato and return its new state.

    A transform receives the live potato; its return value wins when it returns
    something, otherwise the mutated potato is kept. An update mapping runs its
    operator blocks first, then plain paths, and refreshes `updatedAt`.
    `_id` survives either form untouched.
    """
    update = validate_update(update, caller)
    original_id = potato.get(ID_FIELD, MISSING)

    if isinstance(update, Transform):
        result = update.fn(potato)
        if result is None:
            result = potato
        if not isinstance(result, dict):
            raise ValidationError(f"{caller}: update function must return a mapping or None")
        if original_id is not MISSING:
            result[ID_FIELD] = original_id
        return result

    plain: Dict[str, Any] = {}
    for key, block in update.fields.items():
        if not key.startswith("$"):
            plain[key] = block
            continue
        handler = _OPERATORS.get(key)
        if handler is None:
            raise ValidationError(f"{caller}: unknown update operator '{key}'")
        if not isinstance(block, Mapping):
            raise ValidationError(f"{caller}: '{key}' expects a mapping of fields")
        for field, change in block.items():
            if _is_id_path(field):
                continue
            target = extract_nested(potato, field)
            set_nested(potato, field, handler(field, target, change))

    for path, value in plain.items():
        if _is_id_path(path):
            continue
        set_nested(potato, path, value)

    if stamper is not None:
        stamper.touch(potato)
    return potato
