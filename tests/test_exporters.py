"""
tests/test_exporters.py
Unit tests for apigen_ts.exporters (OutputSynchronizer).

Tests cover:
- Header parsing and opt-out detection
- Banner rendering
- Written / unchanged / frozen decisions
- Stale file removal limited to managed directories
- Dry-run mode
- Write failures recorded without aborting the run
"""

from __future__ import annotations

import pathlib
from datetime import datetime, timezone
from typing import Callable

import pytest

from apigen_ts.errors import FileWriteError
from apigen_ts.exporters import (
    OutputSynchronizer,
    SyncAction,
    SyncReport,
    parse_existing,
    render_banner,
)


BANNER: str = (
    "// This file was last generated with apigen-ts on 2024-05-01T12:30:00+00:00\n"
    '// DO NOT EDIT! If you need to edit this file, add "// @no-regenerate" as the first line.'
)


@pytest.fixture()
def synchronizer(output_dir: pathlib.Path, fixed_clock: Callable[[], datetime]) -> OutputSynchronizer:
    return OutputSynchronizer(output_dir, "apigen-ts", clock=fixed_clock)


def _write(path: pathlib.Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ===========================================================================
# Header parsing
# ===========================================================================


class TestParseExisting:

    def test_banner_and_body(self) -> None:
        existing = parse_existing(f"{BANNER}\n\nexport type A = string;\n")
        assert len(existing.header) == 2
        assert existing.body == "export type A = string;\n"
        assert existing.is_frozen is False

    def test_opt_out_marker(self) -> None:
        existing = parse_existing(f"// @no-regenerate\n{BANNER}\n\nbody\n")
        assert existing.is_frozen is True
        assert existing.body == "body\n"

    def test_marker_is_case_insensitive(self) -> None:
        assert parse_existing("//@No-Regenerate\n\nbody").is_frozen is True

    def test_header_without_blank_line_is_body(self) -> None:
        content = "// just a comment\nexport const a = 1;\n"
        existing = parse_existing(content)
        assert existing.header == ()
        assert existing.body == content

    def test_no_header(self) -> None:
        existing = parse_existing("export const a = 1;\n")
        assert existing.body == "export const a = 1;\n"
        assert existing.annotations == ()

    def test_render_banner(self) -> None:
        assert render_banner("apigen-ts", datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)) == BANNER


# ===========================================================================
# Synchronization
# ===========================================================================


class TestOutputSynchronizer:

    def test_new_file_is_written_with_banner(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        report = synchronizer.sync({"interfaces/Post": "export interface Post {}\n"})
        assert report.written == ["interfaces/Post"]
        content = (output_dir / "interfaces" / "Post.ts").read_text(encoding="utf-8")
        assert content == f"{BANNER}\n\nexport interface Post {{}}\n"
        record = report.records[0]
        assert record.action == SyncAction.WRITTEN
        assert record.line_count == 4
        assert record.size_bytes == len(content.encode("utf-8"))

    def test_identical_body_is_unchanged(
        self, output_dir: pathlib.Path, fixed_clock: Callable[[], datetime]
    ) -> None:
        path = output_dir / "routes.ts"
        _write(path, "// generated long ago\n\nexport const A = 1;\n")
        report = OutputSynchronizer(output_dir, "apigen-ts", clock=fixed_clock).sync(
            {"routes": "export const A = 1;\n"}
        )
        assert report.unchanged == ["routes"]
        assert report.changed_count == 0
        assert path.read_text(encoding="utf-8").startswith("// generated long ago")

    def test_changed_body_is_rewritten(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        path = output_dir / "routes.ts"
        _write(path, f"{BANNER}\n\nexport const A = 1;\n")
        report = synchronizer.sync({"routes": "export const A = 2;\n"})
        assert report.written == ["routes"]
        assert path.read_text(encoding="utf-8").endswith("export const A = 2;\n")

    def test_frozen_file_is_kept(self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path) -> None:
        path = output_dir / "interfaces" / "Post.ts"
        hand_edited = "// @no-regenerate\n\nexport interface Post { custom: true }\n"
        _write(path, hand_edited)
        report = synchronizer.sync({"interfaces/Post": "export interface Post {}\n"})
        assert report.frozen == ["interfaces/Post"]
        assert path.read_text(encoding="utf-8") == hand_edited

    def test_stale_managed_files_are_removed(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        _write(output_dir / "interfaces" / "Old.ts", f"{BANNER}\n\nexport interface Old {{}}\n")
        _write(output_dir / "endpoint" / "nested" / "Gone.ts", "export const gone = {};\n")
        report = synchronizer.sync({"interfaces/Post": "export interface Post {}\n"})
        assert report.removed == ["interfaces/Old", "endpoint/nested/Gone"]
        assert not (output_dir / "interfaces" / "Old.ts").exists()
        assert not (output_dir / "endpoint" / "nested" / "Gone.ts").exists()

    def test_frozen_stale_file_is_kept(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        path = output_dir / "interfaces" / "Custom.ts"
        _write(path, "// @no-regenerate\n\nexport interface Custom {}\n")
        report = synchronizer.sync({})
        assert report.frozen == ["interfaces/Custom"]
        assert report.removed == []
        assert path.exists()

    def test_unmanaged_files_are_untouched(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        _write(output_dir / "ApiMethods.ts", "export const x = 1;\n")
        _write(output_dir / "Router.ts", "export interface RouteInterface {}\n")
        _write(output_dir / "interfaces" / "README.md", "notes\n")
        report = synchronizer.sync({})
        assert report.records == []
        assert (output_dir / "ApiMethods.ts").exists()
        assert (output_dir / "Router.ts").exists()
        assert (output_dir / "interfaces" / "README.md").exists()

    def test_dry_run_writes_and_removes_nothing(
        self, output_dir: pathlib.Path, fixed_clock: Callable[[], datetime]
    ) -> None:
        stale = output_dir / "endpoint" / "Old.ts"
        _write(stale, "export const old = {};\n")
        synchronizer = OutputSynchronizer(output_dir, "apigen-ts", dry_run=True, clock=fixed_clock)
        report = synchronizer.sync({"interfaces/Post": "export interface Post {}\n"})
        assert report.dry_run is True
        assert report.written == ["interfaces/Post"]
        assert report.removed == ["endpoint/Old"]
        assert not (output_dir / "interfaces" / "Post.ts").exists()
        assert stale.exists()

    def test_write_failure_is_recorded_and_run_continues(
        self, synchronizer: OutputSynchronizer, output_dir: pathlib.Path
    ) -> None:
        (output_dir / "interfaces" / "Post.ts").mkdir(parents=True)
        report = synchronizer.sync({
            "interfaces/Post": "export interface Post {}\n",
            "interfaces/Author": "export interface Author {}\n",
        })
        assert report.failed == ["interfaces/Post"]
        assert report.written == ["interfaces/Author"]
        assert report.success is False
        assert isinstance(report.errors[0], FileWriteError)
        assert report.errors[0].context["file"] == "interfaces/Post"


class TestSyncReport:

    def test_to_dict(self) -> None:
        report = SyncReport(output_directory="out", dry_run=True)
        assert report.to_dict() == {
            "output_directory": "out",
            "dry_run": True,
            "written": [],
            "unchanged": [],
            "frozen": [],
            "removed": [],
            "failed": [],
            "errors": [],
        }
        assert report.success is True
        assert report.changed_count == 0
