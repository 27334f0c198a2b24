# File: apigen_ts/operation_extractor.py
"""
APIGen-TS - Operation Extractor
=================================
Builds the ``OperationRegistry``: one ``OperationEntry`` per addressable
resource, one ``ResourceBinding`` per exposure, one
``OperationDescriptor`` per exposed HTTP operation.

For ``list`` operations a ``<Type>ListParams`` interface is synthesized
into the resource's endpoint file, aggregating pagination toggles and
the fields contributed by every declared filter.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from apigen_ts.errors import UnknownOperationKindError
from apigen_ts.filters import FilterFieldAccumulator, FilterFieldDeriver
from apigen_ts.model_extractor import API_TYPES_FILE, ENUM_FILE, ModelExtractor
from apigen_ts.models import (
    ApiResourceShape,
    FilterDeclaration,
    GenerationConfig,
    Link,
    OperationShape,
    ResourceShape,
)
from apigen_ts.providers import ResourceProvider
from apigen_ts.registry import (
    OperationDescriptor,
    OperationEntry,
    OperationKind,
    OperationRegistry,
    ResourceBinding,
    TypeDescriptor,
    TypeKind,
    TypeRegistry,
)
from apigen_ts.utils import class_basename, default_collection_path, lcfirst

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.operation_extractor")

# ---------------------------------------------------------------------------
# Classification tables
# ---------------------------------------------------------------------------

_TYPE_KINDS: Dict[str, OperationKind] = {
    "GetCollection": OperationKind.LIST,
    "Get": OperationKind.READ,
    "Put": OperationKind.REPLACE,
    "Patch": OperationKind.UPDATE,
    "Post": OperationKind.CREATE,
    "Delete": OperationKind.REMOVE,
}

_METHOD_KINDS: Dict[str, OperationKind] = {
    "GET": OperationKind.READ,
    "POST": OperationKind.CREATE,
    "PUT": OperationKind.REPLACE,
    "PATCH": OperationKind.UPDATE,
    "DELETE": OperationKind.REMOVE,
}

_COLLECTION_KINDS: Set[OperationKind] = {OperationKind.LIST, OperationKind.CREATE}
_ITEM_PATH_KINDS: Set[OperationKind] = {
    OperationKind.READ,
    OperationKind.UPDATE,
    OperationKind.REPLACE,
}

_FORMAT_SUFFIX_RE: re.Pattern[str] = re.compile(r"\{\._format\}$")
_TRAILING_VARIABLE_RE: re.Pattern[str] = re.compile(r"/\{[a-zA-Z0-9_]+?\}$")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def classify_operation(operation: OperationShape) -> OperationKind:
    """
    Map an operation onto one of the six supported kinds.

    The declared type wins; otherwise the HTTP method decides.
    """
    if operation.type in _TYPE_KINDS:
        return _TYPE_KINDS[operation.type]  # type: ignore[index]
    kind: Optional[OperationKind] = _METHOD_KINDS.get(operation.method.upper())
    if kind is None:
        raise UnknownOperationKindError(
            f"Unknown operation '{operation.type or operation.method}'.",
            {"type": operation.type, "method": operation.method, "name": operation.name},
        )
    return kind


def operation_name(operation: OperationShape, kind: OperationKind) -> str:
    """Custom names win over the kind, except auto-generated ``_api_*`` ones."""
    if operation.name and not operation.name.startswith("_api_"):
        return operation.name
    return kind.value


def resolve_path(
    api_prefix: str,
    uri_template: str,
    kind: OperationKind,
) -> str:
    """Prefix the template, drop ``{._format}`` and, for item kinds, the trailing identifier."""
    path: str = api_prefix + _FORMAT_SUFFIX_RE.sub("", uri_template)
    if kind in _ITEM_PATH_KINDS:
        path = _TRAILING_VARIABLE_RE.sub("", path)
    return path


def parent_links(class_name: str, exposure: ApiResourceShape) -> List[Link]:
    """URI variables of *exposure* that point at another class."""
    return [
        link
        for link in exposure.uri_variables
        if link.from_class and link.from_class.lstrip("\\") != class_name
    ]


def binding_symbol(class_name: str, exposure: ApiResourceShape) -> str:
    """
    ``post`` for a top-level exposure, ``postComment`` for ``Comment`` linked
    from ``Post``.
    """
    links: List[Link] = parent_links(class_name, exposure)
    if links:
        return lcfirst(class_basename(links[0].from_class or "")) + exposure.short_name
    return lcfirst(exposure.short_name)


def _cascade(*values: Optional[bool]) -> bool:
    for value in values:
        if value is not None:
            return value
    return False


# ---------------------------------------------------------------------------
# OperationExtractor
# ---------------------------------------------------------------------------


class OperationExtractor:
    """Populates the ``OperationRegistry`` from the resource provider."""

    def __init__(
        self,
        provider: ResourceProvider,
        config: GenerationConfig,
        types: TypeRegistry,
        operations: OperationRegistry,
        models: ModelExtractor,
    ) -> None:
        self._provider: ResourceProvider = provider
        self._config: GenerationConfig = config
        self._types: TypeRegistry = types
        self._operations: OperationRegistry = operations
        self._models: ModelExtractor = models

    def extract_all(self) -> List[OperationEntry]:
        entries: List[OperationEntry] = []
        for class_name in self._provider.list_resources():
            if not self._config.matches_namespace(class_name):
                continue
            entries.append(self.extract_resource(class_name))
        logger.info("Extracted operations for %d resource(s).", len(entries))
        return entries

    def extract_resource(self, class_name: str) -> OperationEntry:
        shape: ResourceShape = self._provider.describe_resource(class_name)
        resource_type: TypeDescriptor = self._models.extract(class_name)
        entry: OperationEntry = self._operations.get_or_create(
            class_name,
            resource_type.name,
            f"endpoint/{resource_type.name}",
        )

        for exposure in shape.api_resources:
            symbol: str = binding_symbol(class_name, exposure)
            binding: Optional[ResourceBinding] = entry.bindings.get(symbol)
            if binding is None:
                binding = ResourceBinding(
                    symbol=symbol,
                    name=resource_type.name,
                    parent_links=parent_links(class_name, exposure),
                    security=exposure.security,
                    security_post_denormalize=exposure.security_post_denormalize,
                )
                entry.bindings[symbol] = binding

            for operation in exposure.operations:
                if not operation.exposed:
                    continue
                descriptor: OperationDescriptor = self._build_operation(
                    entry, resource_type, exposure, operation
                )
                if descriptor.name in binding.operations:
                    logger.debug(
                        "Operation '%s' of %s redeclared; last declaration wins.",
                        descriptor.name,
                        symbol,
                    )
                binding.operations[descriptor.name] = descriptor

        return entry

    # -----------------------------------------------------------------
    # Internal: one operation
    # -----------------------------------------------------------------

    def _build_operation(
        self,
        entry: OperationEntry,
        resource_type: TypeDescriptor,
        exposure: ApiResourceShape,
        operation: OperationShape,
    ) -> OperationDescriptor:
        kind: OperationKind = classify_operation(operation)
        name: str = operation_name(operation, kind)

        uri_template: str = operation.uri_template or exposure.uri_template or (
            default_collection_path(exposure.short_name)
            + ("" if kind in _COLLECTION_KINDS else "/{id}")
        )

        input_type: TypeDescriptor = self._io_type(operation.input, resource_type)
        output_type: TypeDescriptor = self._io_type(operation.output, resource_type)
        for io_type in (input_type, output_type):
            entry.add_dependency(io_type.target_file, io_type.name)  # type: ignore[arg-type]

        list_params: Optional[str] = None
        if kind == OperationKind.LIST:
            list_params = self._build_list_params(entry, resource_type, exposure, operation).name

        helper: str = kind.value
        generic_params: Optional[List[str]] = None
        if operation.request_method is not None:
            helper = operation.request_method.kind
            generic_params = operation.request_method.generic_params

        return OperationDescriptor(
            name=name,
            kind=kind.value,
            http_method=operation.method,
            uri_template=uri_template,
            resolved_path=resolve_path(self._config.api_prefix, uri_template, kind),
            helper=helper,
            input_type_ref=input_type.name,
            output_type_ref=output_type.name,
            mandatory_path_params=self._mandatory_params(entry.source_class, exposure, operation, kind),
            is_multipart=operation.is_multipart,
            list_params_type_ref=list_params,
            security=operation.security,
            generic_params=generic_params,
        )

    def _io_type(self, class_name: Optional[str], resource_type: TypeDescriptor) -> TypeDescriptor:
        if not class_name:
            return resource_type
        return self._models.extract(class_name.lstrip("\\"))

    def _mandatory_params(
        self,
        class_name: str,
        exposure: ApiResourceShape,
        operation: OperationShape,
        kind: OperationKind,
    ) -> List[str]:
        """
        Template variables the caller must supply: parent links always,
        the resource's own links for item operations, plus the operation's
        own variables.  The identifier ``id`` is passed separately.
        """
        names: List[str] = []
        for link in exposure.uri_variables:
            is_parent: bool = bool(link.from_class) and link.from_class.lstrip("\\") != class_name  # type: ignore[union-attr]
            if is_parent or kind not in _COLLECTION_KINDS:
                names.append(link.parameter)
        names.extend(operation.uri_variables)

        ordered: List[str] = []
        for name in names:
            if name != "id" and name not in ordered:
                ordered.append(name)
        return ordered

    # -----------------------------------------------------------------
    # Internal: list params synthesis
    # -----------------------------------------------------------------

    def _build_list_params(
        self,
        entry: OperationEntry,
        resource_type: TypeDescriptor,
        exposure: ApiResourceShape,
        operation: OperationShape,
    ) -> TypeDescriptor:
        pagination = self._config.pagination
        list_type = TypeDescriptor(
            name=f"{resource_type.name}ListParams",
            kind=TypeKind.INTERFACE,
            target_file=entry.target_file,
            source_class=f"{entry.source_class}#list-params",
            extends=[f"ListParams<{resource_type.name}>"],
        )
        list_type.add_dependency(API_TYPES_FILE, "ListParams")
        list_type.add_dependency(resource_type.target_file, resource_type.name)  # type: ignore[arg-type]

        accumulator = FilterFieldAccumulator()
        if _cascade(operation.pagination_enabled, exposure.pagination_enabled, pagination.enabled):
            accumulator.contribute(pagination.page_parameter_name, "number")
        if _cascade(
            operation.pagination_client_items_per_page,
            exposure.pagination_client_items_per_page,
            pagination.client_items_per_page,
        ):
            accumulator.contribute(pagination.items_per_page_parameter_name, "number")
        if _cascade(
            operation.pagination_client_enabled,
            exposure.pagination_client_enabled,
            pagination.client_enabled,
        ):
            accumulator.contribute(pagination.enabled_parameter_name, "BooleanEnum")
            list_type.add_dependency(ENUM_FILE, "BooleanEnum")
        if _cascade(
            operation.pagination_client_partial,
            exposure.pagination_client_partial,
            pagination.client_partial,
        ):
            accumulator.contribute(pagination.partial_parameter_name, "BooleanEnum")
            list_type.add_dependency(ENUM_FILE, "BooleanEnum")

        deriver = FilterFieldDeriver(self._types, resource_type, list_type.dependencies)
        declarations: List[FilterDeclaration] = self._provider.describe_operation_filters(
            entry.source_class, operation
        )
        for declaration in declarations:
            deriver.apply(declaration, accumulator)

        for filter_field in accumulator:
            list_type.properties[filter_field.name] = filter_field.to_property()

        logger.debug(
            "Synthesized %s with %d field(s).", list_type.name, len(list_type.properties)
        )
        return self._types.register(list_type)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "classify_operation",
    "operation_name",
    "resolve_path",
    "parent_links",
    "binding_symbol",
    "OperationExtractor",
]

logger.debug("apigen_ts.operation_extractor loaded.")
