from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, List

from .errors import StorageError

log = logging.getLogger(__name__)

EMPTY_FARM = "[]"


class FileStorage:
    """
    Whole-file I/O for one farm: a single UTF-8 JSON array of potato objects.
    Every read parses the full file, every write replaces it in place.
    There is no temp file, rename or fsync here; an interrupted write can leave a broken file.
    """
    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def create(self, overwrite: bool = False) -> None:
        if self.exists() and not overwrite:
            return
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(EMPTY_FARM)
        except OSError as exc:
            raise StorageError(f"cannot create farm file: {exc}", self.path) from exc
        log.debug("created farm file %s", self.path)

    def read_all(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise StorageError("farm file does not exist", self.path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"cannot read farm file: {exc}", self.path) from exc
        except json.JSONDecodeError as exc:
            raise StorageError(f"farm file is not valid JSON: {exc}", self.path) from exc
        if not isinstance(data, list):
            raise StorageError("farm file must contain a JSON array", self.path)
        return data

    def write_all(self, docs: List[Dict[str, Any]]) -> None:
        try:
            payload = json.dumps(docs, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise StorageError(f"potatoes are not JSON serialisable: {exc}", self.path) from exc
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(payload)
        except OSError as exc:
            raise StorageError(f"cannot write farm file: {exc}", self.path) from exc
        log.debug("wrote %d potatoes to %s", len(docs), self.path)

    def remove(self) -> None:
        try:
            os.remove(self.path)
        except OSError as exc:
            raise StorageError(f"cannot remove farm file: {exc}", self.path) from exc
