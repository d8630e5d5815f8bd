from __future__ import annotations
import logging
import os
import shutil
from typing import List, Optional

from .errors import StorageError, ValidationError
from .farm import Farm
from .progress import Progress, ProgressCallback
from .storage import FileStorage

log = logging.getLogger(__name__)

FARM_EXT = ".json"


class PotatoDB:
    """
    A database is a directory `<root>/<name>/` holding one `<farm>.json` per farm.
    Construction creates the directories when they are missing.
    """
    def __init__(
        self,
        name: str,
        root: str = "databases",
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if not name or os.sep in name:
            raise ValidationError(f"invalid database name: {name!r}")
        self.name = name
        self.root = root
        self.path = os.path.join(root, name)
        self.overwrite = overwrite
        self.farms: List[str] = []
        self._on_progress = on_progress
        self._progress = Progress(on_progress)
        self._open()

    def _open(self) -> None:
        try:
            os.makedirs(self.path, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create database directory: {exc}", self.path) from exc
        self._progress.done("open", self.path)

    def farm_path(self, farm_name: str) -> str:
        return os.path.join(self.path, f"{farm_name}{FARM_EXT}")

    def create_farm(self, name: str, *, identification: bool = True, timestamps: bool = True) -> Farm:
        """
        Ensure `<name>.json` exists (reset to an empty array when the database was
        opened with overwrite) and return its farm.
        """
        if not name or os.sep in name:
            raise ValidationError(f"invalid farm name: {name!r}")
        path = self.farm_path(name)
        FileStorage(path).create(overwrite=self.overwrite)
        if name not in self.farms:
            self.farms.append(name)
        log.debug("farm %s ready at %s", name, path)
        return Farm(
            name,
            path,
            db_name=self.name,
            identification=identification,
            timestamps=timestamps,
            on_progress=self._on_progress,
        )

    def drop_database(self) -> None:
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(f"cannot drop database: {exc}", self.path) from exc
        self.farms.clear()
        self._progress.done("drop_database", self.path)


def create_database(
    name: str,
    root: str = "databases",
    overwrite: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> PotatoDB:
    return PotatoDB(name, root=root, overwrite=overwrite, on_progress=on_progress)
