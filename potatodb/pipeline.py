from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from .errors import ValidationError
from .query import Predicate
from .results import Sorter, sort_potatoes
from .stamps import ID_FIELD
from .utils import MISSING, deep_copy, deep_equal, extract_nested, set_nested

# Options each farm operation accepts
ALLOWED_OPTIONS: Dict[str, FrozenSet[str]] = {
    "find_one": frozenset({"skip", "recent", "select", "populate"}),
    "find_many": frozenset({"limit", "skip", "recent", "sort", "select", "populate"}),
    "update_one": frozenset({"select", "populate", "updated"}),
    "update_many": frozenset({"sort", "select", "populate", "updated"}),
    "delete_one": frozenset({"select", "populate"}),
    "delete_many": frozenset({"sort", "select", "populate"}),
}


@dataclass
class ResultOptions:
    skip: int = 0
    recent: bool = False
    limit: Optional[int] = None
    sort: Optional[Sorter] = None
    select: Optional[Mapping[str, Any]] = None
    populate: Optional[Mapping[str, Any]] = None
    updated: bool = True

    @classmethod
    def build(cls, caller: str, options: Dict[str, Any]) -> "ResultOptions":
        allowed = ALLOWED_OPTIONS[caller]
        unknown = sorted(set(options) - allowed)
        if unknown:
            raise ValidationError(f"{caller}() got unexpected options: {', '.join(unknown)}")
        opts = cls(**{k: v for k, v in options.items() if v is not None})
        opts._check(caller)
        return opts

    def _check(self, caller: str) -> None:
        if isinstance(self.skip, bool) or not isinstance(self.skip, int):
            raise ValidationError(f"{caller}() expected an integer skip")
        if self.skip < 0:
            raise ValidationError(f"{caller}() expected a non-negative skip")
        if self.limit is not None and (isinstance(self.limit, bool) or not isinstance(self.limit, int)):
            raise ValidationError(f"{caller}() expected an integer limit")
        if self.select is not None and not isinstance(self.select, Mapping):
            raise ValidationError(f"{caller}() expected a select mapping")
        if self.populate is not None and not isinstance(self.populate, Mapping):
            raise ValidationError(f"{caller}() expected a populate mapping of field -> farm")


def pre_stage(potatoes: List[Dict[str, Any]], opts: ResultOptions) -> List[Dict[str, Any]]:
    """
    `recent` then `skip`, applied to the raw stored order before any query matching,
    so `skip` drops stored potatoes, not matches.
    """
    if opts.recent:
        potatoes = list(reversed(potatoes))
    if opts.skip:
        potatoes = potatoes[opts.skip:]
    return potatoes


def apply_limit(potatoes: List[Any], limit: Optional[int]) -> List[Any]:
    if not limit:
        return potatoes
    if limit > 0:
        return potatoes[:limit]
    return potatoes[limit:]


def select_fields(potato: Dict[str, Any], selection: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Projection. A selection holding any explicit `0` excludes the zero-marked keys
    and keeps the rest; otherwise only truthy keys are kept. Nested mappings
    apply the same rule one level down.
    """
    exclude = any(_is_zero(rule) for rule in selection.values())
    out: Dict[str, Any] = {}
    for key, value in potato.items():
        rule = selection.get(key, MISSING)
        if exclude:
            if _is_zero(rule):
                continue
        elif rule is MISSING or not rule:
            continue
        out[key] = _select_nested(value, rule)
    return out


def _is_zero(rule: Any) -> bool:
    return isinstance(rule, int) and not isinstance(rule, bool) and rule == 0


def _select_nested(value: Any, rule: Any) -> Any:
    if isinstance(rule, Mapping):
        if isinstance(value, dict):
            return select_fields(value, rule)
        if isinstance(value, list):
            return [select_fields(v, rule) if isinstance(v, dict) else deep_copy(v) for v in value]
    return deep_copy(value)


def _by_id(ref: Any) -> Predicate:
    return Predicate(lambda p: deep_equal(p.get(ID_FIELD, MISSING), ref))


def populate_fields(potato: Dict[str, Any], populate: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Replace stored foreign ids with the referenced potatoes, one `find_one` per id.
    A dangling id becomes None; absent or null fields are left alone.
    """
    for field, farm in populate.items():
        ref = extract_nested(potato, field)
        if ref is MISSING or ref is None:
            continue
        if isinstance(ref, list):
            set_nested(potato, field, [farm.find_one(_by_id(r)) for r in ref])
        else:
            set_nested(potato, field, farm.find_one(_by_id(ref)))
    return potato


def post_stage(
    potatoes: List[Dict[str, Any]],
    opts: ResultOptions,
    with_limit: bool = False,
) -> List[Dict[str, Any]]:
    """sort -> limit -> populate -> select over already matched potatoes."""
    if opts.sort is not None:
        potatoes = sort_potatoes(potatoes, opts.sort)
    if with_limit:
        potatoes = apply_limit(potatoes, opts.limit)
    if opts.populate:
        potatoes = [populate_fields(p, opts.populate) for p in potatoes]
    if opts.select:
        potatoes = [select_fields(p, opts.select) for p in potatoes]
    return potatoes
