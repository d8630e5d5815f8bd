from __future__ import annotations
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Union

from .errors import ValidationError
from .utils import MISSING, contains, deep_equal, extract_nested, json_kind, stringify

Test = Callable[[Dict[str, Any]], bool]

LOGICAL_OPS = {"$and", "$or", "$nor"}


@dataclass(frozen=True)
class Predicate:
    """A caller supplied test function, used as-is."""
    test: Test


@dataclass(frozen=True)
class QueryDocument:
    """A query mapping of dotted paths (or `$and`/`$or`/`$nor`) to conditions."""
    fields: Mapping[str, Any]


Query = Union[Predicate, QueryDocument]


def validate_query(test: Any, caller: str) -> Query:
    """
    Normalize whatever a farm operation received as its query.
    None means "match everything"; anything that is neither a mapping nor a callable is rejected.
    """
    if isinstance(test, (Predicate, QueryDocument)):
        return test
    if test is None:
        return QueryDocument({})
    if isinstance(test, Mapping):
        return QueryDocument(dict(test))
    if callable(test):
        return Predicate(test)
    raise ValidationError(f"{caller} expected a test function or a query mapping as a first argument")


def _match_all(_potato: Dict[str, Any]) -> bool:
    return True


# ----- equality helpers -----

def strict_equal(v: Any, y: Any) -> bool:
    return deep_equal(v, y)


def _to_number(v: Any) -> float | None:
    if isinstance(v, bool):
        return float(v)
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return 0.0
        try:
            return float(s)
        except ValueError:
            return None
    return None


def loose_equal(v: Any, y: Any) -> bool:
    """Type coercive equality: "30" equals 30, true equals 1, null equals a missing field."""
    kv, ky = json_kind(v), json_kind(y)
    nullish = ("missing", "null")
    if kv in nullish or ky in nullish:
        return kv in nullish and ky in nullish
    if kv == ky:
        return deep_equal(v, y)
    nv, ny = _to_number(v), _to_number(y)
    if nv is None or ny is None:
        return False
    return nv == ny


def _ordered(cmp: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(v: Any, y: Any) -> bool:
        if v is MISSING:
            return False
        try:
            return bool(cmp(v, y))
        except TypeError:
            return False
    return check


def _in(v: Any, y: Any) -> bool:
    if isinstance(v, list) and contains(v, y):
        return True
    if isinstance(y, list) and contains(y, v):
        return True
    if isinstance(v, list) and isinstance(y, list):
        return any(contains(v, item) for item in y)
    return False


def _all(v: Any, y: Any) -> bool:
    return isinstance(v, list) and isinstance(y, list) and all(contains(v, item) for item in y)


def _elem_match(v: Any, y: Any) -> bool:
    return isinstance(v, list) and any(deep_equal(item, y) for item in v)


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$gt": _ordered(operator.gt),
    "$gte": _ordered(operator.ge),
    "$lt": _ordered(operator.lt),
    "$lte": _ordered(operator.le),
    "$eq": strict_equal,
    "$eqv": loose_equal,
    "$neq": lambda v, y: not strict_equal(v, y),
    "$neqv": lambda v, y: not loose_equal(v, y),
    "$in": _in,
    "$nin": lambda v, y: not _in(v, y),
    "$all": _all,
    "$elemMatch": _elem_match,
}


# ----- compilation -----

def _is_operator_mapping(value: Mapping[str, Any], path: str, caller: str) -> bool:
    keys = list(value.keys())
    ops = [k for k in keys if isinstance(k, str) and k.startswith("$")]
    if not ops:
        return False
    if len(ops) != len(keys):
        raise ValidationError(f"{caller}: cannot mix operators and plain keys under '{path}'")
    for op in ops:
        if op not in _OPERATORS:
            raise ValidationError(f"{caller}: unknown query operator '{op}' under '{path}'")
    return True


def _compile_field(path: str, expected: Any, caller: str) -> Test:
    if isinstance(expected, re.Pattern):
        def regex_condition(potato: Dict[str, Any]) -> bool:
            v = extract_nested(potato, path)
            if v is MISSING:
                return False
            return expected.search(stringify(v)) is not None
        return regex_condition

    if isinstance(expected, Mapping) and _is_operator_mapping(expected, path, caller):
        checks = [(_OPERATORS[op], arg) for op, arg in expected.items()]

        def operator_condition(potato: Dict[str, Any]) -> bool:
            v = extract_nested(potato, path)
            return all(check(v, arg) for check, arg in checks)
        return operator_condition

    def literal_condition(potato: Dict[str, Any]) -> bool:
        return strict_equal(extract_nested(potato, path), expected)
    return literal_condition


def _compile_logical(op: str, branches: Any, caller: str) -> Test:
    if not isinstance(branches, (list, tuple)):
        raise ValidationError(f"{caller}: '{op}' expects a list of queries")
    tests = [compile_query(validate_query(b, caller), caller) for b in branches]
    if op == "$and":
        return lambda potato: all(t(potato) for t in tests)
    if op == "$or":
        return lambda potato: any(t(potato) for t in tests)
    return lambda potato: not any(t(potato) for t in tests)


def compile_query(query: Any, caller: str = "query") -> Test:
    """
    Turn a query into a test over one potato.

    Every key contributes a condition and all conditions are ANDed together,
    including several operators under the same field. Only `$or` introduces
    disjunction.
    """
    query = validate_query(query, caller)
    if isinstance(query, Predicate):
        return query.test
    if not query.fields:
        return _match_all

    conditions: List[Test] = []
    for key, expected in query.fields.items():
        if key in LOGICAL_OPS:
            conditions.append(_compile_logical(key, expected, caller))
        elif key.startswith("$"):
            raise ValidationError(f"{caller}: unknown top-level query operator '{key}'")
        else:
            conditions.append(_compile_field(key, expected, caller))

    def test(potato: Dict[str, Any]) -> bool:
        return all(cond(potato) for cond in conditions)
    return test
