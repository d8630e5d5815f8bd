from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional

from rich.console import Console

log = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]


class Progress:
    """
    Fans progress events out to an optional `on_progress` callback.
    Events are dicts: {"phase": "insert.start", "pct": 0, "msg": "..."}.
    """
    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback

    def emit(self, phase: str, pct: int, msg: str = "") -> None:
        log.debug("%s %d%% %s", phase, pct, msg)
        if self._callback is None:
            return
        self._callback({"phase": phase, "pct": pct, "msg": msg})

    def start(self, op: str, msg: str = "") -> None:
        self.emit(f"{op}.start", 0, msg)

    def done(self, op: str, msg: str = "") -> None:
        self.emit(f"{op}.done", 100, msg)


def console_printer(console: Optional[Console] = None) -> ProgressCallback:
    """Build an `on_progress` sink that prints finished phases with rich."""
    console = console or Console(stderr=True, color_system="standard")

    def printer(evt: Dict[str, Any]) -> None:
        phase = evt.get("phase", "")
        pct = int(evt.get("pct", 0))
        msg = evt.get("msg", "")
        if pct < 100:
            return
        parts = [p for p in (phase, f"{pct}%", (f"- {msg}" if msg else "")) if p]
        console.print("[progress] " + " ".join(parts), highlight=False, markup=False)

    return printer
