# File: apigen_ts/exporters.py
"""
APIGen-TS - Output Synchronizer (File-System Manager)
=======================================================

Responsible for:
    1. Comparing each produced body against the file already on disk
       (the part after its generation banner).
    2. Writing changed files atomically, prefixed with a fresh banner.
    3. Leaving files whose header carries ``// @no-regenerate`` untouched.
    4. Removing stale generated ``.ts`` files under ``interfaces/`` and
       ``endpoint/``.
    5. Reporting every write, skip and removal; in dry-run mode nothing is
       written or removed.

A failed write is recorded as a ``FileWriteError`` and the remaining files
are still processed.

Complexity: O(F) where F = number of produced plus managed on-disk files.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from apigen_ts.errors import FileWriteError
from apigen_ts.utils import Timer, count_lines, read_file, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.exporters")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FILE_EXTENSION: str = ".ts"
OPT_OUT_ANNOTATION: str = "no-regenerate"
MANAGED_DIRECTORIES: Tuple[str, ...] = ("interfaces", "endpoint")

_ANNOTATION_PREFIX: str = "//"
_ANNOTATION_RE: re.Pattern[str] = re.compile(r"^//\s*@([\w_-]+)")


class SyncAction(str, Enum):
    WRITTEN = "written"
    UNCHANGED = "unchanged"
    FROZEN = "frozen"
    REMOVED = "removed"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Data classes for sync results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """What happened to one logical file."""

    logical_name: str
    path: str
    action: SyncAction
    size_bytes: int = 0
    line_count: int = 0


@dataclass(frozen=False, slots=True)
class SyncReport:
    """Outcome of one ``OutputSynchronizer.sync()`` call."""

    output_directory: str = ""
    dry_run: bool = False
    records: List[FileRecord] = field(default_factory=list)
    errors: List[FileWriteError] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def _names(self, action: SyncAction) -> List[str]:
        return [r.logical_name for r in self.records if r.action == action]

    @property
    def written(self) -> List[str]:
        return self._names(SyncAction.WRITTEN)

    @property
    def unchanged(self) -> List[str]:
        return self._names(SyncAction.UNCHANGED)

    @property
    def frozen(self) -> List[str]:
        return self._names(SyncAction.FROZEN)

    @property
    def removed(self) -> List[str]:
        return self._names(SyncAction.REMOVED)

    @property
    def failed(self) -> List[str]:
        return self._names(SyncAction.FAILED)

    @property
    def changed_count(self) -> int:
        return len(self.written) + len(self.removed)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_directory": self.output_directory,
            "dry_run": self.dry_run,
            "written": self.written,
            "unchanged": self.unchanged,
            "frozen": self.frozen,
            "removed": self.removed,
            "failed": self.failed,
            "errors": [str(e) for e in self.errors],
        }


@dataclass(frozen=True, slots=True)
class ExistingFile:
    """An on-disk file split into its leading comment header and body."""

    header: Tuple[str, ...]
    body: str
    annotations: Tuple[str, ...]

    @property
    def is_frozen(self) -> bool:
        return OPT_OUT_ANNOTATION in self.annotations


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------


def parse_existing(content: str) -> ExistingFile:
    """
    Split *content* into header and body.

    The header is the run of leading ``//`` lines closed by a blank line;
    without that blank line the whole content is body.  Annotations
    (``// @name``) are read from the leading comment lines either way.
    """
    lines: List[str] = content.split("\n")
    index: int = 0
    while index < len(lines) and lines[index].startswith(_ANNOTATION_PREFIX):
        index += 1

    annotations: List[str] = []
    for line in lines[:index]:
        match: Optional[re.Match[str]] = _ANNOTATION_RE.match(line)
        if match is not None:
            annotations.append(match.group(1).lower())

    if index < len(lines) and not lines[index].strip():
        return ExistingFile(
            header=tuple(lines[:index]),
            body="\n".join(lines[index + 1:]),
            annotations=tuple(annotations),
        )
    return ExistingFile(header=(), body=content, annotations=tuple(annotations))


def render_banner(command_name: str, generated_at: datetime) -> str:
    return "\n".join([
        f"// This file was last generated with {command_name} on "
        f"{generated_at.isoformat(timespec='seconds')}",
        f'// DO NOT EDIT! If you need to edit this file, add "// @{OPT_OUT_ANNOTATION}" as the first line.',
    ])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# OutputSynchronizer class
# ---------------------------------------------------------------------------


class OutputSynchronizer:
    """
    Reconciles produced file bodies with the output directory.

    Usage::

        synchronizer = OutputSynchronizer(Path("assets/api"), "apigen-ts")
        report = synchronizer.sync({"interfaces/Post": "export interface Post {}\\n"})
        print(report.written)

    Thread-safety: NOT thread-safe.  Use one synchronizer per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        command_name: str,
        *,
        dry_run: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._output_dir: Path = Path(output_dir)
        self._command_name: str = command_name
        self._dry_run: bool = dry_run
        self._clock: Callable[[], datetime] = clock or _utc_now

    def path_for(self, logical_name: str) -> Path:
        return self._output_dir / f"{logical_name}{FILE_EXTENSION}"

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def sync(self, files: Dict[str, str]) -> SyncReport:
        """
        Write every changed body of *files* (logical name -> body), then
        remove stale managed files.
        """
        report = SyncReport(output_directory=str(self._output_dir), dry_run=self._dry_run)
        if self._dry_run:
            logger.info("Dry run enabled. No files will be written (or removed).")

        with Timer("sync") as timer:
            banner: str = render_banner(self._command_name, self._clock())
            for logical_name, body in files.items():
                self._sync_file(logical_name, body, banner, report)
            self._remove_stale(set(files), report)

        report.elapsed_seconds = timer.elapsed
        logger.info(
            "Synchronized %s: %d written, %d unchanged, %d frozen, %d removed, %d failed.",
            self._output_dir,
            len(report.written),
            len(report.unchanged),
            len(report.frozen),
            len(report.removed),
            len(report.failed),
        )
        return report

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _sync_file(self, logical_name: str, body: str, banner: str, report: SyncReport) -> None:
        path: Path = self.path_for(logical_name)
        try:
            if path.exists():
                existing: ExistingFile = parse_existing(read_file(path))
                if existing.body == body:
                    logger.debug("Unchanged: %s", logical_name)
                    report.records.append(FileRecord(logical_name, str(path), SyncAction.UNCHANGED))
                    return
                if existing.is_frozen:
                    logger.info("Skipping %s: marked @%s.", logical_name, OPT_OUT_ANNOTATION)
                    report.records.append(FileRecord(logical_name, str(path), SyncAction.FROZEN))
                    return

            content: str = f"{banner}\n\n{body}"
            size: int = len(content.encode("utf-8"))
            if not self._dry_run:
                size = write_file(path, content)
            logger.info("Writing %s...", path)
            report.records.append(
                FileRecord(logical_name, str(path), SyncAction.WRITTEN, size, count_lines(content))
            )
        except (OSError, UnicodeDecodeError) as exc:
            self._record_failure(logical_name, path, "write", exc, report)

    def _remove_stale(self, produced: Set[str], report: SyncReport) -> None:
        for directory in MANAGED_DIRECTORIES:
            root: Path = self._output_dir / directory
            if not root.is_dir():
                continue
            for path in sorted(root.rglob(f"*{FILE_EXTENSION}")):
                logical_name: str = path.relative_to(self._output_dir).as_posix()[: -len(FILE_EXTENSION)]
                if logical_name in produced:
                    continue
                try:
                    if parse_existing(read_file(path)).is_frozen:
                        logger.info("Keeping stale %s: marked @%s.", logical_name, OPT_OUT_ANNOTATION)
                        report.records.append(FileRecord(logical_name, str(path), SyncAction.FROZEN))
                        continue
                    logger.warning("Removing stale %s...", path)
                    if not self._dry_run:
                        path.unlink()
                    report.records.append(FileRecord(logical_name, str(path), SyncAction.REMOVED))
                except (OSError, UnicodeDecodeError) as exc:
                    self._record_failure(logical_name, path, "remove", exc, report)

    @staticmethod
    def _record_failure(
        logical_name: str,
        path: Path,
        action: str,
        exc: Exception,
        report: SyncReport,
    ) -> None:
        error = FileWriteError(
            f"Failed to {action} {logical_name}: {type(exc).__name__}: {exc}",
            {"file": logical_name, "path": str(path)},
        )
        logger.error(str(error))
        report.errors.append(error)
        report.records.append(FileRecord(logical_name, str(path), SyncAction.FAILED))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FILE_EXTENSION",
    "OPT_OUT_ANNOTATION",
    "MANAGED_DIRECTORIES",
    "SyncAction",
    "FileRecord",
    "SyncReport",
    "ExistingFile",
    "parse_existing",
    "render_banner",
    "OutputSynchronizer",
]

logger.debug("apigen_ts.exporters loaded.")
