# File: apigen_ts/generator.py
"""
APIGen-TS - Master Generation Pipeline (Orchestrator)
=======================================================

Connects every phase together:

    Metadata → Validation → Registries → Fragments → Files → Disk

Workflow::

    1. Load the metadata document from YAML/JSON (or accept it in memory).
    2. Validate it (validators.py).
    3. Seed base types, extract models and operations, link child
       endpoints, add payload helpers.
    4. Run the metadata hook (may mutate or replace the state).
    5. Compose type and endpoint fragments (templates.py) and the route
       file (routes.py).
    6. Run the files hook (may mutate or replace the fragment set).
    7. Assemble file bodies and synchronize them to disk (exporters.py).
    8. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Validation errors stop the run before anything is extracted.
    - A ``GeneratorError`` from any extraction or composition step stops
      the run; nothing is written.
    - Per-file write failures are collected by the synchronizer and
      surfaced in the report.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from apigen_ts.errors import GeneratorError, MetadataLoadError
from apigen_ts.exporters import OutputSynchronizer, SyncReport
from apigen_ts.linker import link_child_endpoints
from apigen_ts.model_extractor import ModelExtractor, seed_base_types
from apigen_ts.models import GenerationConfig, MetadataDocument
from apigen_ts.operation_extractor import OperationExtractor
from apigen_ts.payload import PayloadShaper
from apigen_ts.providers import (
    ResourceProvider,
    RouteProvider,
    StaticResourceProvider,
    StaticRouteProvider,
)
from apigen_ts.registry import FileSet, GenerationState
from apigen_ts.routes import RouteComposer, RouteHook
from apigen_ts.templates import TypeScriptComposer, assemble
from apigen_ts.utils import Timer, count_lines
from apigen_ts.validators import ValidationResult, validate_metadata

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.generator")

MetadataHook = Callable[[GenerationState], Optional[GenerationState]]
FilesHook = Callable[[FileSet], Optional[FileSet]]


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``TypeScriptGenerator.generate()``.

    ``files`` holds every assembled body (logical name -> body), also in
    dry-run mode.
    """

    success: bool = False
    output_directory: str = ""
    dry_run: bool = False

    total_types: int = 0
    total_resources: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_error: Optional[GeneratorError] = None
    files: Dict[str, str] = field(default_factory=dict)
    sync: Optional[SyncReport] = None

    @property
    def write_errors(self) -> List[str]:
        return [str(e) for e in self.sync.errors] if self.sync else []

    @property
    def changed_count(self) -> int:
        return self.sync.changed_count if self.sync else 0

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  APIGen-TS: Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Resources:        {self.total_resources}")
        lines.append(f"  Types:            {self.total_types}")
        lines.append(f"  Files produced:   {len(self.files)}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.validation_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Errors ({len(self.validation_errors)}):")
            for err in self.validation_errors:
                lines.append(f"    ✗ {err}")

        if self.validation_warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Warnings ({len(self.validation_warnings)}):")
            for warn in self.validation_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.generation_error is not None:
            lines.append(f"{'─'*60}")
            lines.append("  Generation Error:")
            lines.append(f"    ✗ {self.generation_error}")

        if self.sync is not None:
            lines.append(f"{'─'*60}")
            for label, names in (
                ("Written", self.sync.written),
                ("Removed", self.sync.removed),
                ("Kept (@no-regenerate)", self.sync.frozen),
            ):
                if names:
                    lines.append(f"  {label} ({len(names)}):")
                    for name in names:
                        lines.append(f"    • {name}")
            for err in self.write_errors:
                lines.append(f"    ✗ {err}")
            if not self.changed_count:
                lines.append("  No files changed.")
            else:
                lines.append(f"  Done. {self.changed_count} file(s) changed.")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Metadata loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MetadataLoadError(f"Invalid JSON in {path}: {exc}", {"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise MetadataLoadError(
            f"Expected a JSON object at top level, got {type(data).__name__}.",
            {"path": str(path)},
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise MetadataLoadError(f"Invalid YAML in {path}: {exc}", {"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise MetadataLoadError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}.",
            {"path": str(path)},
        )
    return data


def load_metadata_file(path: Path) -> Dict[str, Any]:
    """
    Load a metadata document (JSON or YAML), dispatching on the extension.

    Raises:
        MetadataLoadError: If the file is missing or can't be parsed.
    """
    if not path.is_file():
        raise MetadataLoadError(f"Metadata file not found: {path}", {"path": str(path)})

    suffix: str = path.suffix.lower()
    try:
        if suffix == ".json":
            return _load_json_file(path)
        # YAML is a superset of JSON
        return _load_yaml_file(path)
    except OSError as exc:
        raise MetadataLoadError(f"Cannot read {path}: {exc}", {"path": str(path)}) from exc


def parse_metadata_document(
    raw: Dict[str, Any],
    *,
    base_dir: Optional[Path] = None,
    config_overrides: Optional[Dict[str, Any]] = None,
) -> MetadataDocument:
    """
    Parse a raw mapping into a ``MetadataDocument``.

    *config_overrides* are merged over the document's ``config`` section;
    a relative ``api_methods_source`` is resolved against *base_dir*.
    """
    data: Dict[str, Any] = dict(raw)
    if config_overrides:
        data["config"] = {**(data.get("config") or {}), **config_overrides}
    try:
        document: MetadataDocument = MetadataDocument.model_validate(data)
    except PydanticValidationError as exc:
        raise MetadataLoadError(f"Metadata validation failed: {exc}") from exc

    source: Optional[str] = document.config.api_methods_source
    if base_dir is not None and source and not Path(source).is_absolute():
        document.config = document.config.model_copy(
            update={"api_methods_source": str(base_dir / source)}
        )
    return document


# ---------------------------------------------------------------------------
# TypeScriptGenerator: master orchestrator
# ---------------------------------------------------------------------------


class TypeScriptGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = TypeScriptGenerator(dry_run=False)
        report = generator.generate_from_file(Path("metadata.yaml"))
        print(report.summary())

    The generator is reusable: each ``generate()`` call starts from an
    empty state.
    """

    def __init__(
        self,
        *,
        dry_run: bool = False,
        metadata_hook: Optional[MetadataHook] = None,
        files_hook: Optional[FilesHook] = None,
        route_hook: Optional[RouteHook] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._dry_run: bool = dry_run
        self._metadata_hook: Optional[MetadataHook] = metadata_hook
        self._files_hook: Optional[FilesHook] = files_hook
        self._route_hook: Optional[RouteHook] = route_hook
        self._clock: Optional[Callable[[], datetime]] = clock

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        metadata_path: Path,
        *,
        output_dir: Optional[Path] = None,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> GenerationReport:
        """
        Load, parse and generate.

        Raises:
            MetadataLoadError: If the document can't be loaded or parsed.
        """
        with Timer("load_metadata") as t_load:
            raw: Dict[str, Any] = load_metadata_file(metadata_path)
            document: MetadataDocument = parse_metadata_document(
                raw,
                base_dir=metadata_path.parent,
                config_overrides=config_overrides,
            )
        logger.info("Loaded %r from %s.", document, metadata_path)

        report: GenerationReport = self.generate(document, output_dir=output_dir)
        report.step_metrics.insert(0, GenerationStepMetric(
            step_name="Load Metadata",
            success=True,
            elapsed_seconds=t_load.elapsed,
            detail=f"from {metadata_path.name}",
        ))
        return report

    def generate(
        self,
        document: MetadataDocument,
        *,
        output_dir: Optional[Path] = None,
        resource_provider: Optional[ResourceProvider] = None,
        route_provider: Optional[RouteProvider] = None,
    ) -> GenerationReport:
        """Full pipeline from an in-memory document (or explicit providers)."""
        config: GenerationConfig = document.config
        target: Path = Path(output_dir) if output_dir is not None else Path(config.output_dir)

        report = GenerationReport(output_directory=str(target), dry_run=self._dry_run)
        pipeline_start: float = time.perf_counter()

        if self._step_validate(document, report):
            try:
                self._run_pipeline(
                    config,
                    resource_provider or StaticResourceProvider(document),
                    route_provider or StaticRouteProvider(document),
                    target,
                    report,
                )
            except GeneratorError as exc:
                logger.error("Generation aborted: %s", exc)
                report.generation_error = exc

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        config: GenerationConfig,
        resources: ResourceProvider,
        routes: RouteProvider,
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        state = GenerationState()
        models = ModelExtractor(resources, config, state.types)

        def seed() -> str:
            seed_base_types(state.types, config, state.files)
            return f"{len(state.types)} base types"

        def extract_models() -> str:
            return f"{len(models.extract_all())} resources"

        def extract_operations() -> str:
            extractor = OperationExtractor(resources, config, state.types, state.operations, models)
            return f"{len(extractor.extract_all())} entries"

        def link() -> str:
            return f"{link_child_endpoints(state.operations)} child endpoints"

        def shape_payloads() -> str:
            return f"{PayloadShaper(state).shape_all()} helpers"

        self._step(report, "Seed Base Types", seed)
        self._step(report, "Extract Models", extract_models)
        self._step(report, "Extract Operations", extract_operations)
        self._step(report, "Link Child Endpoints", link)
        self._step(report, "Payload Helpers", shape_payloads)

        if self._metadata_hook is not None:
            replaced: Optional[GenerationState] = self._metadata_hook(state)
            if replaced is not None:
                state = replaced
            logger.debug("Metadata hook applied.")

        def compose() -> str:
            TypeScriptComposer(state).compose()
            return f"{len(state.files)} files"

        def compose_routes() -> str:
            composer = RouteComposer(routes, config, self._route_hook)
            return f"{composer.compose(state.files)} constants"

        self._step(report, "Compose Types & Endpoints", compose)
        if config.routes_enabled:
            self._step(report, "Compose Routes", compose_routes)

        files: FileSet = state.files
        if self._files_hook is not None:
            replaced_files: Optional[FileSet] = self._files_hook(files)
            if replaced_files is not None:
                files = replaced_files
            logger.debug("Files hook applied.")

        with Timer("assemble") as t:
            report.files = assemble(files)
        report.total_types = sum(1 for d in state.types if d.is_rendered)
        report.total_resources = len(state.operations)
        report.total_lines = sum(count_lines(body) for body in report.files.values())
        report.step_metrics.append(GenerationStepMetric(
            step_name="Assemble Files",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{len(report.files)} files, ~{report.total_lines:,} lines",
        ))

        with Timer("sync") as t:
            synchronizer = OutputSynchronizer(
                output_dir,
                config.command_name,
                dry_run=self._dry_run,
                clock=self._clock,
            )
            report.sync = synchronizer.sync(report.files)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Synchronize Output",
            success=report.sync.success,
            elapsed_seconds=t.elapsed,
            detail=f"{report.sync.changed_count} changed",
        ))

    @staticmethod
    def _step(report: GenerationReport, name: str, action: Callable[[], str]) -> None:
        """Run one timed step; a ``GeneratorError`` is recorded and re-raised."""
        with Timer(name) as t:
            try:
                detail: str = action()
            except GeneratorError as exc:
                failure: Optional[GeneratorError] = exc
                detail = str(exc)
            else:
                failure = None
        report.step_metrics.append(GenerationStepMetric(
            step_name=name,
            success=failure is None,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("%s: %s (%.3fs).", name, detail, t.elapsed)
        if failure is not None:
            raise failure

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, document: MetadataDocument, report: GenerationReport) -> bool:
        with Timer("validation") as t:
            result: ValidationResult = validate_metadata(document)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Metadata",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{len(result.errors)} error(s)" if result.errors
                else f"{len(result.warnings)} warning(s)" if result.warnings
                else "all checks passed"
            ),
        ))
        return result.is_valid

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(self, report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = (
            not report.validation_errors
            and report.generation_error is None
            and not report.write_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MetadataHook",
    "FilesHook",
    "TypeScriptGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_metadata_file",
    "parse_metadata_document",
]

logger.debug("apigen_ts.generator loaded.")
