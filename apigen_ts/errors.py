# File: apigen_ts/errors.py
"""
APIGen-TS - Error Taxonomy
===========================
Exceptions raised by the generation pipeline.

Fatal kinds (everything except ``FileWriteError``) abort the run before a
single file is written.  ``FileWriteError`` is collected per file by the
output synchronizer and never interrupts the remaining writes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.errors")


class GeneratorError(Exception):
    """Base class for every error raised by apigen_ts."""

    fatal: bool = True
    code: str = "GENERATOR_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details: str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class MetadataLoadError(GeneratorError):
    """The metadata document could not be read or parsed."""

    code = "METADATA_LOAD_ERROR"


class UnknownFieldShapeError(GeneratorError):
    """A field's shape matches none of the recognised classifications."""

    code = "UNKNOWN_FIELD_SHAPE"


class UnknownOperationKindError(GeneratorError):
    """An operation's HTTP semantics cannot be mapped to a supported kind."""

    code = "UNKNOWN_OPERATION_KIND"


class NameConflictError(GeneratorError):
    """Two distinct source entities resolve to the same logical type name."""

    code = "NAME_CONFLICT"


class UnexposedFilterFieldError(GeneratorError):
    """A filter references a property missing from the resource's model."""

    code = "UNEXPOSED_FILTER_FIELD"


class FileWriteError(GeneratorError):
    """Writing or removing one output file failed."""

    fatal = False
    code = "FILE_WRITE_ERROR"


__all__: List[str] = [
    "GeneratorError",
    "MetadataLoadError",
    "UnknownFieldShapeError",
    "UnknownOperationKindError",
    "NameConflictError",
    "UnexposedFilterFieldError",
    "FileWriteError",
]

logger.debug("apigen_ts.errors loaded.")
