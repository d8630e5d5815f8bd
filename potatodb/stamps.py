from __future__ import annotations
from typing import Any, Dict

from .utils import new_potato_id, now_ms

ID_FIELD = "_id"
CREATED_FIELD = "createdAt"
UPDATED_FIELD = "updatedAt"


class DocumentStamper:
    """Attaches `_id` and `createdAt`/`updatedAt` according to the farm flags."""

    def __init__(self, identification: bool = True, timestamps: bool = True) -> None:
        self.identification = identification
        self.timestamps = timestamps

    def stamp(self, potato: Dict[str, Any]) -> Dict[str, Any]:
        if self.identification:
            potato[ID_FIELD] = new_potato_id()
        if self.timestamps:
            ts = now_ms()
            potato[CREATED_FIELD] = ts
            potato[UPDATED_FIELD] = ts
        return potato

    def touch(self, potato: Dict[str, Any]) -> None:
        if self.timestamps:
            potato[UPDATED_FIELD] = now_ms()
