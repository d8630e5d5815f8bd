from __future__ import annotations
import functools
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .errors import ValidationError
from .utils import MISSING, canonical_json, extract_nested

Comparator = Callable[[Any, Any], int]
Sorter = Union[Mapping[str, int], Comparator]


def sort_key(v: Any) -> Tuple[int, Any]:
    """Total order over JSON values: missing/null < bool < number < string < containers."""
    if v is MISSING or v is None:
        return (0, 0)
    if isinstance(v, bool):
        return (1, int(v))
    if isinstance(v, (int, float)):
        return (2, v)
    if isinstance(v, str):
        return (3, v)
    return (4, canonical_json(v))


def _descriptor(sorter: Mapping[str, Any]) -> Tuple[str, bool]:
    if len(sorter) != 1:
        raise ValidationError("sort() expected a single sortBy field")
    field, direction = next(iter(sorter.items()))
    if isinstance(direction, bool) or not isinstance(direction, (int, float)):
        raise ValidationError("sort() expected a number value in the sortBy mapping")
    return field, direction >= 0


def sort_potatoes(items: List[Any], sorter: Optional[Sorter]) -> List[Any]:
    """Return `items` sorted by a `{field: 1|-1}` descriptor or a two-argument comparator."""
    if isinstance(sorter, Mapping):
        field, ascending = _descriptor(sorter)
        return sorted(items, key=lambda p: sort_key(extract_nested(p, field)), reverse=not ascending)
    if callable(sorter):
        return sorted(items, key=functools.cmp_to_key(sorter))
    raise ValidationError("sort() expected a sortBy mapping or a comparator function")


class PotatoArray:
    """
    Ordered result sequence returned by multi-potato operations.
    Behaves like a read-only list, plus `sort()` that also takes `{field: 1|-1}`.
    """
    __slots__ = ("_items",)

    def __init__(self, items: Iterable[Dict[str, Any]] = ()) -> None:
        self._items: List[Dict[str, Any]] = list(items)

    def sort(self, sorter: Optional[Sorter] = None) -> "PotatoArray":
        self._items = sort_potatoes(self._items, sorter)
        return self

    def to_list(self) -> List[Dict[str, Any]]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return PotatoArray(self._items[index])
        return self._items[index]

    def __contains__(self, item: Any) -> bool:
        return item in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PotatoArray):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"PotatoArray({self._items!r})"
