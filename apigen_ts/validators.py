# File: apigen_ts/validators.py
"""
APIGen-TS - Metadata Validators
=================================
Cross-entity checks on a ``MetadataDocument`` that pydantic's per-model
validation cannot express: dangling filter ids and links, duplicated
class and route names, malformed route placeholders.

Runs before extraction; any error aborts the run.

Usage by downstream modules:
    from apigen_ts.validators import validate_metadata
    result = validate_metadata(document)
    if result.has_errors:
        raise SystemExit(...)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Set

from apigen_ts.errors import UnknownOperationKindError
from apigen_ts.models import MetadataDocument
from apigen_ts.operation_extractor import classify_operation
from apigen_ts.registry import OperationKind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary()]
        for item in self._items:
            prefix: str = "❌" if item.is_error else "⚠️"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{([^{}]*)\}")
_PLACEHOLDER_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(<.+>)?$")


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_class_names(document: MetadataDocument) -> ValidationResult:
    """Every resource and enum class is described once."""
    result = ValidationResult()
    seen: Set[str] = set()
    for class_name in [r.class_name for r in document.resources] + [e.class_name for e in document.enums]:
        key: str = class_name.lstrip("\\")
        if key in seen:
            result.add_error(
                "DUPLICATE_CLASS",
                f"Class '{key}' is described more than once.",
                {"class": key},
            )
        seen.add(key)
    return result


def validate_operations(document: MetadataDocument) -> ValidationResult:
    """Filter ids resolve; filters sit on list operations; links point at described classes."""
    result = ValidationResult()
    filter_ids: Set[str] = {f.id for f in document.filters}
    described: Set[str] = {r.class_name.lstrip("\\") for r in document.resources}

    for resource in document.resources:
        for exposure in resource.api_resources:
            for link in exposure.uri_variables:
                if link.from_class and link.from_class.lstrip("\\") not in described:
                    result.add_warning(
                        "UNDESCRIBED_LINK_CLASS",
                        f"{resource.class_name}: URI variable '{link.parameter}' links to "
                        f"undescribed class '{link.from_class}'.",
                        {"class": resource.class_name, "link": link.parameter},
                    )

            for operation in exposure.operations:
                ctx: Dict[str, Any] = {
                    "class": resource.class_name,
                    "operation": operation.name or operation.type or operation.method,
                }
                for filter_id in operation.filters:
                    if filter_id not in filter_ids:
                        result.add_error(
                            "UNKNOWN_FILTER",
                            f"{resource.class_name}: operation references unknown filter '{filter_id}'.",
                            {**ctx, "filter": filter_id},
                        )
                if not operation.filters:
                    continue
                try:
                    kind: OperationKind = classify_operation(operation)
                except UnknownOperationKindError as exc:
                    result.add_error("UNKNOWN_OPERATION_KIND", str(exc), ctx)
                    continue
                if kind != OperationKind.LIST:
                    result.add_warning(
                        "FILTERS_ON_NON_LIST",
                        f"{resource.class_name}: filters on a '{kind.value}' operation are ignored.",
                        ctx,
                    )
    return result


def validate_routes(document: MetadataDocument) -> ValidationResult:
    result = ValidationResult()
    seen: Set[str] = set()
    for route in document.routes:
        ctx: Dict[str, Any] = {"route": route.name, "path": route.path}
        if route.name in seen:
            result.add_error(
                "DUPLICATE_ROUTE",
                f"Route '{route.name}' is defined more than once.",
                ctx,
            )
        seen.add(route.name)

        stripped: str = _PLACEHOLDER_RE.sub("", route.path)
        if "{" in stripped or "}" in stripped:
            result.add_error(
                "BAD_ROUTE_PLACEHOLDER",
                f"Route '{route.name}' has unbalanced braces in '{route.path}'.",
                ctx,
            )
            continue
        for placeholder in _PLACEHOLDER_RE.findall(route.path):
            if not _PLACEHOLDER_NAME_RE.match(placeholder):
                result.add_error(
                    "BAD_ROUTE_PLACEHOLDER",
                    f"Route '{route.name}' has an invalid placeholder '{{{placeholder}}}'.",
                    {**ctx, "placeholder": placeholder},
                )
    return result


def validate_config(document: MetadataDocument) -> ValidationResult:
    result = ValidationResult()
    if not document.config.namespaces:
        result.add_warning(
            "EMPTY_NAMESPACES",
            "No namespaces configured; no resource will be generated.",
        )
    return result


def validate_metadata(document: MetadataDocument) -> ValidationResult:
    """
    **Master validation entry point.**

    Runs every check and logs the outcome.
    """
    logger.info("Validating metadata %r", document)
    result = ValidationResult()
    result.merge(validate_class_names(document))
    result.merge(validate_operations(document))
    result.merge(validate_routes(document))
    result.merge(validate_config(document))

    for item in result.warnings:
        logger.warning("%s", item)
    if result.has_errors:
        logger.error("Validation FAILED. %s", result.summary())
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_class_names",
    "validate_operations",
    "validate_routes",
    "validate_config",
    "validate_metadata",
]

logger.debug("apigen_ts.validators loaded.")
