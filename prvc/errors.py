"""Exceptions raised by prvc.

Data problems inside records (bad ids, malformed JSON) are reported in result
objects, not raised. These are for conditions a command cannot continue from.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ProvenanceError(Exception):
    """Base class for all prvc errors."""


class ConfigError(ProvenanceError):
    pass


class NotInitializedError(ConfigError):
    def __init__(self, root: Path) -> None:
        super().__init__(f"ProvenanceCode is not initialized in {root} (run: prvc init)")
        self.root = root


class InvalidCodeError(ProvenanceError):
    def __init__(self, label: str, code: str) -> None:
        super().__init__(f"Invalid {label} code '{code}': must be 2-4 uppercase letters/numbers")
        self.label = label
        self.code = code


class RecordError(ProvenanceError):
    """A JSON document could not be turned into a typed record."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class RecordNotFoundError(ProvenanceError):
    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record not found: {record_id}")
        self.record_id = record_id


class RecordExistsError(ProvenanceError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Refusing to overwrite existing record: {path}")
        self.path = path
