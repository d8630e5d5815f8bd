from __future__ import annotations
import logging
import random
from typing import Any, Dict, List, Mapping, Optional

from .errors import ValidationError
from .pipeline import ResultOptions, post_stage, pre_stage
from .progress import Progress, ProgressCallback
from .query import compile_query
from .results import PotatoArray
from .stamps import DocumentStamper
from .storage import FileStorage
from .update import apply_update, validate_update
from .utils import deep_copy

log = logging.getLogger(__name__)


class Farm:
    """
    One collection of potatoes backed by one JSON file.

    A farm keeps no potatoes in memory: every call reads the whole file and
    every mutation rewrites it. Nothing guards the file against a concurrent
    writer, the last write wins.
    """
    def __init__(
        self,
        name: str,
        path: str,
        db_name: Optional[str] = None,
        identification: bool = True,
        timestamps: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.name = name
        self.path = path
        self.db_name = db_name
        self.identification = identification
        self.timestamps = timestamps
        self._fs = FileStorage(path)
        self._stamper = DocumentStamper(identification, timestamps)
        self._progress = Progress(on_progress)

    def __repr__(self) -> str:
        return f"Farm(name={self.name!r}, path={self.path!r})"

    # ----- farm -----

    def drop_farm(self) -> None:
        self._fs.remove()
        self._progress.done("drop", self.name)

    def count_potatoes(self, test: Any = None) -> int:
        return len(self._find_logic("find_many", test, {}, label="count_potatoes()"))

    def exists(self, test: Any) -> bool:
        return self._find_logic("find_one", test, {}, label="exists()") is not None

    # ----- insert -----

    def _insert_logic(self, caller: str, items: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        for item in items:
            if not isinstance(item, Mapping):
                raise ValidationError(f"{caller}() expected potato mappings")
        self._progress.start(caller, f"{len(items)} potatoes")
        data = self._fs.read_all()
        batch = [self._stamper.stamp(deep_copy(dict(item))) for item in items]
        data.extend(batch)
        self._fs.write_all(data)
        self._progress.done(caller, f"{len(batch)} potatoes")
        return deep_copy(batch)

    def insert_one(self, potato: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(potato, Mapping):
            raise ValidationError("insert_one() accepts a single potato mapping only")
        return self._insert_logic("insert_one", [potato])[0]

    def insert_many(self, potatoes: List[Mapping[str, Any]]) -> PotatoArray:
        if not isinstance(potatoes, (list, tuple)):
            raise ValidationError("insert_many() accepts a list of potatoes only")
        return PotatoArray(self._insert_logic("insert_many", list(potatoes)))

    # ----- find -----

    def _find_logic(self, caller: str, test: Any, options: Dict[str, Any], label: Optional[str] = None):
        label = label or f"{caller}()"
        opts = ResultOptions.build(caller, options)
        matches = compile_query(test, label)
        data = pre_stage(self._fs.read_all(), opts)

        if caller == "find_one":
            found = next((p for p in data if matches(p)), None)
            if found is None:
                return None
            return post_stage([found], opts)[0]

        result = [p for p in data if matches(p)]
        return PotatoArray(post_stage(result, opts, with_limit=True))

    def find_one(self, test: Any = None, **options: Any) -> Optional[Dict[str, Any]]:
        return self._find_logic("find_one", test, options)

    def find_many(self, test: Any = None, **options: Any) -> PotatoArray:
        return self._find_logic("find_many", test, options)

    # ----- update -----

    def _update_logic(self, caller: str, test: Any, update: Any, options: Dict[str, Any]):
        label = f"{caller}()"
        single = caller == "update_one"
        opts = ResultOptions.build(caller, options)
        matches = compile_query(test, label)
        update = validate_update(update, label)

        data = self._fs.read_all()
        indexes = [i for i, p in enumerate(data) if matches(p)]
        if single:
            indexes = indexes[:1]
        if not indexes:
            log.debug("%s matched nothing in %s", label, self.path)
            return None if single else PotatoArray()

        self._progress.start(caller, f"{len(indexes)} potatoes")
        returns: List[Dict[str, Any]] = []
        for i in indexes:
            if not opts.updated:
                returns.append(deep_copy(data[i]))
            data[i] = apply_update(data[i], update, self._stamper, label)
            if opts.updated:
                returns.append(deep_copy(data[i]))
        self._fs.write_all(data)
        self._progress.done(caller, f"{len(indexes)} potatoes")

        returns = post_stage(returns, opts)
        return returns[0] if single else PotatoArray(returns)

    def update_one(self, test: Any, update: Any, **options: Any) -> Optional[Dict[str, Any]]:
        return self._update_logic("update_one", test, update, options)

    def update_many(self, test: Any, update: Any, **options: Any) -> PotatoArray:
        return self._update_logic("update_many", test, update, options)

    # ----- delete -----

    def _delete_logic(self, caller: str, test: Any, options: Dict[str, Any]):
        label = f"{caller}()"
        single = caller == "delete_one"
        opts = ResultOptions.build(caller, options)
        matches = compile_query(test, label)

        data = self._fs.read_all()
        kept: List[Dict[str, Any]] = []
        removed: List[Dict[str, Any]] = []
        for potato in data:
            if (not single or not removed) and matches(potato):
                removed.append(potato)
            else:
                kept.append(potato)
        if not removed:
            return None if single else PotatoArray()

        self._progress.start(caller, f"{len(removed)} potatoes")
        self._fs.write_all(kept)
        self._progress.done(caller, f"{len(removed)} potatoes")

        removed = post_stage(removed, opts)
        return removed[0] if single else PotatoArray(removed)

    def delete_one(self, test: Any = None, **options: Any) -> Optional[Dict[str, Any]]:
        return self._delete_logic("delete_one", test, options)

    def delete_many(self, test: Any = None, **options: Any) -> PotatoArray:
        return self._delete_logic("delete_many", test, options)

    # ----- sampling -----

    @staticmethod
    def _check_count(caller: str, count: Any) -> None:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValidationError(f"{caller}() expected a non-negative integer count")

    def sample_one(self) -> Optional[Dict[str, Any]]:
        data = self._fs.read_all()
        if not data:
            return None
        return random.choice(data)

    def sample_many(self, count: int) -> PotatoArray:
        """`count` independent draws, with replacement."""
        self._check_count("sample_many", count)
        data = self._fs.read_all()
        if not data:
            return PotatoArray()
        return PotatoArray(deep_copy(p) for p in random.choices(data, k=count))

    def sample_many_unique(self, count: int) -> PotatoArray:
        """Up to `count` distinct potatoes, never more than the farm holds."""
        self._check_count("sample_many_unique", count)
        data = self._fs.read_all()
        random.shuffle(data)
        return PotatoArray(data[:count])
