# File: apigen_ts/__init__.py
"""
APIGen-TS - TypeScript Client Generator
=========================================

Turns a description of an HTTP API (resources, fields, operations, filters
and routes) into TypeScript source: data-model interfaces, per-resource
endpoint bindings, an enum catalog and a route registry.

Architecture overview::

    ┌──────────────┐     ┌─────────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ TypeScriptGenerator │────▶│   registries     │
    │   (cli.py)   │     │   (generator.py)    │     │  (registry.py)   │
    └──────────────┘     └──────────┬──────────┘     └──────────────────┘
                                    │
         ┌──────────────┬───────────┼─────────────┬──────────────┐
         ▼              ▼           ▼             ▼              ▼
    ┌──────────┐ ┌────────────┐ ┌────────┐ ┌───────────┐ ┌───────────┐
    │ model_/  │ │  linker /  │ │ routes │ │ templates │ │ exporters │
    │operation_│ │  payload   │ │  (.py) │ │   (.py)   │ │   (.py)   │
    │extractor │ │   (.py)    │ └────────┘ └───────────┘ └───────────┘
    └──────────┘ └────────────┘

Usage::

    # As a library
    from apigen_ts import TypeScriptGenerator
    report = TypeScriptGenerator().generate_from_file(Path("metadata.yaml"))

    # From the command line
    apigen-ts --metadata metadata.yaml -v
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from apigen_ts.errors import (
    FileWriteError,
    GeneratorError,
    MetadataLoadError,
    NameConflictError,
    UnexposedFilterFieldError,
    UnknownFieldShapeError,
    UnknownOperationKindError,
)
from apigen_ts.exporters import OutputSynchronizer, SyncReport
from apigen_ts.generator import (
    GenerationReport,
    TypeScriptGenerator,
    load_metadata_file,
    parse_metadata_document,
)
from apigen_ts.models import GenerationConfig, MetadataDocument
from apigen_ts.providers import (
    ResourceProvider,
    RouteProvider,
    StaticResourceProvider,
    StaticRouteProvider,
)
from apigen_ts.registry import FileSet, GenerationState, TypeRegistry, OperationRegistry
from apigen_ts.routes import RouteHookEvent
from apigen_ts.validators import ValidationResult, validate_metadata

__all__ = [
    "__version__",
    "TypeScriptGenerator",
    "GenerationReport",
    "load_metadata_file",
    "parse_metadata_document",
    "GenerationConfig",
    "MetadataDocument",
    "ResourceProvider",
    "RouteProvider",
    "StaticResourceProvider",
    "StaticRouteProvider",
    "GenerationState",
    "TypeRegistry",
    "OperationRegistry",
    "FileSet",
    "RouteHookEvent",
    "OutputSynchronizer",
    "SyncReport",
    "ValidationResult",
    "validate_metadata",
    "GeneratorError",
    "MetadataLoadError",
    "UnknownFieldShapeError",
    "UnknownOperationKindError",
    "NameConflictError",
    "UnexposedFilterFieldError",
    "FileWriteError",
]
