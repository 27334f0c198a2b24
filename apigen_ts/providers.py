# File: apigen_ts/providers.py
"""
APIGen-TS - Metadata Providers
================================
Boundary capabilities the core consumes.  The generator never introspects
application classes itself; it asks a ``ResourceProvider`` for pre-normalised
shapes and a ``RouteProvider`` for the route table.

``StaticResourceProvider`` / ``StaticRouteProvider`` serve those capabilities
from a ``MetadataDocument`` (usually loaded from YAML by
``apigen_ts.generator.load_metadata_file``).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol, Set

from apigen_ts.models import (
    ClassKind,
    EnumShape,
    FilterDeclaration,
    GenerationConfig,
    MetadataDocument,
    OperationShape,
    ResourceShape,
    RouteDefinition,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.providers")


# ---------------------------------------------------------------------------
# Capability contracts
# ---------------------------------------------------------------------------


class ResourceProvider(Protocol):
    def list_resources(self) -> List[str]:
        """Classes exposed as API resources, in declaration order."""
        ...

    def describe_resource(self, class_name: str) -> ResourceShape:
        """Shape of any described class; raises ``KeyError`` when unknown."""
        ...

    def describe_enum(self, class_name: str) -> EnumShape:
        ...

    def classify_class(self, class_name: str) -> ClassKind:
        ...

    def describe_operation_filters(
        self, class_name: str, operation: OperationShape
    ) -> List[FilterDeclaration]:
        ...


class RouteProvider(Protocol):
    def list_routes(self) -> List[RouteDefinition]:
        ...


# ---------------------------------------------------------------------------
# Document-backed implementations
# ---------------------------------------------------------------------------


class StaticResourceProvider:
    """
    ``ResourceProvider`` backed by an in-memory ``MetadataDocument``.

    Classification order: described resources, enums, then the configured
    date/time, identifier and passthrough class lists.  Anything else is
    ``ClassKind.UNKNOWN``.
    """

    def __init__(self, document: MetadataDocument) -> None:
        self._config: GenerationConfig = document.config
        self._resources: Dict[str, ResourceShape] = {
            r.class_name: r for r in document.resources
        }
        self._enums: Dict[str, EnumShape] = {e.class_name: e for e in document.enums}
        self._filters: Dict[str, FilterDeclaration] = {f.id: f for f in document.filters}
        self._datetime: Set[str] = {c.lstrip("\\") for c in self._config.datetime_classes}
        self._identifiers: Set[str] = {c.lstrip("\\") for c in self._config.identifier_classes}
        self._passthrough: Set[str] = {c.lstrip("\\") for c in self._config.passthrough_classes}

        logger.debug(
            "StaticResourceProvider initialised: %d classes, %d enums, %d filters.",
            len(self._resources),
            len(self._enums),
            len(self._filters),
        )

    def list_resources(self) -> List[str]:
        return [name for name, shape in self._resources.items() if shape.is_addressable]

    def describe_resource(self, class_name: str) -> ResourceShape:
        return self._resources[class_name.lstrip("\\")]

    def describe_enum(self, class_name: str) -> EnumShape:
        return self._enums[class_name.lstrip("\\")]

    def classify_class(self, class_name: str) -> ClassKind:
        name: str = class_name.lstrip("\\")
        if name in self._resources:
            return ClassKind.MODEL
        if name in self._enums:
            return ClassKind.ENUM
        if name in self._datetime:
            return ClassKind.DATETIME
        if name in self._identifiers:
            return ClassKind.IDENTIFIER
        if name in self._passthrough:
            return ClassKind.PASSTHROUGH
        return ClassKind.UNKNOWN

    def describe_operation_filters(
        self, class_name: str, operation: OperationShape
    ) -> List[FilterDeclaration]:
        declarations: List[FilterDeclaration] = []
        for filter_id in operation.filters:
            declaration = self._filters.get(filter_id)
            if declaration is None:
                logger.warning(
                    "Operation on %s references unknown filter '%s'; ignored.",
                    class_name,
                    filter_id,
                )
                continue
            declarations.append(declaration)
        return declarations


class StaticRouteProvider:
    """``RouteProvider`` backed by the route list of a ``MetadataDocument``."""

    def __init__(self, document: MetadataDocument) -> None:
        self._routes: List[RouteDefinition] = list(document.routes)

    def list_routes(self) -> List[RouteDefinition]:
        return list(self._routes)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ResourceProvider",
    "RouteProvider",
    "StaticResourceProvider",
    "StaticRouteProvider",
]

logger.debug("apigen_ts.providers loaded.")
