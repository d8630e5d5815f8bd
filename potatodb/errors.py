from __future__ import annotations


class PotatoError(Exception):
    """Base class for every error raised by potatodb."""


class ValidationError(PotatoError):
    """Malformed query, update, option or insert argument."""


class StorageError(PotatoError):
    """
    Reading or writing a farm file failed: missing file, unreadable file,
    invalid JSON, a top level that is not an array, or a failed write.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
