# File: apigen_ts/models.py
"""
APIGen-TS - Input & Configuration Models
==========================================
Pydantic V2 models describing everything the generator consumes:

    * the generation configuration (output directory, API prefix, inclusion
      namespaces, pagination and ordering flags),
    * the pre-normalised resource shapes a ``ResourceProvider`` hands out
      (fields, exposures, operations, filters, enums),
    * the route table a ``RouteProvider`` hands out.

These models never describe *generated* output; the typed graph built from
them lives in ``apigen_ts.registry``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.models")

# ---------------------------------------------------------------------------
# Enums: fixed sets used across the entire project
# ---------------------------------------------------------------------------


class BuiltinShape(str, Enum):
    """Builtin kinds a field type can report."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"


class FilterKind(str, Enum):
    """Supported filter declaration shapes."""

    SEARCH = "search"
    ORDER = "order"
    DATE = "date"
    BOOLEAN = "boolean"
    EXISTS = "exists"
    RANGE = "range"
    BACKED_ENUM = "backed_enum"


class ClassKind(str, Enum):
    """How a class referenced from a field is classified."""

    MODEL = "model"
    ENUM = "enum"
    DATETIME = "datetime"
    IDENTIFIER = "identifier"
    PASSTHROUGH = "passthrough"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Field shapes
# ---------------------------------------------------------------------------


class TypeShape(BaseModel):
    """
    One builtin type a field may hold.

    ``builtin`` is kept as a plain string so an unrecognised value reaches
    the model extractor, which reports it as ``UnknownFieldShapeError``.
    """

    model_config = _SHARED_CONFIG

    builtin: str = Field(..., min_length=1, description="Builtin kind, e.g. 'string', 'object'.")
    nullable: bool = Field(default=False, description="Whether null is accepted.")
    class_name: Optional[str] = Field(
        default=None, alias="class", description="Qualified class for object shapes."
    )
    collection: bool = Field(default=False, description="Multi-valued shape.")
    key_type: Optional[str] = Field(
        default=None, description="Builtin kind of collection keys ('int' or 'string')."
    )
    value: Optional[TypeShape] = Field(
        default=None, description="Element shape for collections."
    )

    def __repr__(self) -> str:
        target: str = f" {self.class_name}" if self.class_name else ""
        return f"<TypeShape {self.builtin}{target}{'[]' if self.collection else ''}>"


class FieldShape(BaseModel):
    """One readable and/or writable field of a described class."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Serialized property name.")
    types: List[TypeShape] = Field(default_factory=list)
    readable: bool = Field(default=True)
    writable: bool = Field(default=True)
    required: bool = Field(default=False)
    default: Any = Field(default=None, description="Default value, JSON-encodable.")
    default_case: Optional[str] = Field(
        default=None, description="Enum case name used as default."
    )
    declared_by: Optional[str] = Field(
        default=None, description="Class declaring the field when inherited."
    )
    json_schema: Dict[str, Any] = Field(default_factory=dict, alias="schema")

    @property
    def is_exposed(self) -> bool:
        return self.readable or self.writable


# ---------------------------------------------------------------------------
# Exposure & operation shapes
# ---------------------------------------------------------------------------


class Link(BaseModel):
    """A URI variable binding one resource to another."""

    model_config = _SHARED_CONFIG

    parameter: str = Field(..., min_length=1)
    from_class: Optional[str] = Field(default=None)
    from_property: Optional[str] = Field(default=None)
    to_property: Optional[str] = Field(default=None)


class RequestMethodOverride(BaseModel):
    """Bind an operation to a custom runtime helper instead of its kind."""

    model_config = _SHARED_CONFIG

    kind: str = Field(..., min_length=1)
    generic_params: Optional[List[str]] = Field(default=None)


class PaginationOverrides(BaseModel):
    """Pagination flags settable on a resource or operation; None inherits."""

    model_config = _SHARED_CONFIG

    pagination_enabled: Optional[bool] = None
    pagination_client_enabled: Optional[bool] = None
    pagination_client_items_per_page: Optional[bool] = None
    pagination_client_partial: Optional[bool] = None


class OperationShape(PaginationOverrides):
    """One HTTP operation declared on a resource exposure."""

    type: Optional[str] = Field(
        default=None, description="GetCollection, Get, Post, Put, Patch, Delete, ..."
    )
    method: str = Field(default="GET")
    name: Optional[str] = Field(default=None)
    uri_template: Optional[str] = Field(default=None)
    uri_variables: List[str] = Field(default_factory=list)
    exposed: bool = Field(default=True)
    input: Optional[str] = Field(default=None, description="Input DTO class.")
    output: Optional[str] = Field(default=None, description="Output DTO class.")
    input_formats: Dict[str, List[str]] = Field(default_factory=dict)
    filters: List[str] = Field(default_factory=list)
    security: Optional[str] = Field(default=None)
    request_method: Optional[RequestMethodOverride] = Field(default=None)

    @field_validator("method")
    @classmethod
    def _normalise_method(cls, value: str) -> str:
        return value.upper()

    @property
    def is_multipart(self) -> bool:
        return "multipart" in self.input_formats


class ApiResourceShape(PaginationOverrides):
    """One exposure of a class as an API resource."""

    short_name: str = Field(..., min_length=1)
    uri_template: Optional[str] = Field(default=None)
    uri_variables: List[Link] = Field(default_factory=list)
    operations: List[OperationShape] = Field(default_factory=list)
    security: Optional[str] = Field(default=None)
    security_post_denormalize: Optional[str] = Field(default=None)


class ResourceShape(BaseModel):
    """
    Pre-normalised description of one class: its fields and, when it is an
    API resource, its exposures.
    """

    model_config = _SHARED_CONFIG

    class_name: str = Field(..., min_length=1, alias="class")
    parent: Optional[str] = Field(default=None)
    persistent: bool = Field(default=False)
    source_file: Optional[str] = Field(default=None)
    fields: List[FieldShape] = Field(default_factory=list)
    api_resources: List[ApiResourceShape] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def is_addressable(self) -> bool:
        return bool(self.api_resources)

    @property
    def short_name(self) -> Optional[str]:
        if not self.api_resources:
            return None
        return self.api_resources[0].short_name

    def get_field(self, name: str) -> Optional[FieldShape]:
        for field_shape in self.fields:
            if field_shape.name == name:
                return field_shape
        return None

    @model_validator(mode="after")
    def _validate_unique_fields(self) -> "ResourceShape":
        seen: Set[str] = set()
        for field_shape in self.fields:
            if field_shape.name in seen:
                raise ValueError(
                    f"Class '{self.class_name}' declares field '{field_shape.name}' twice."
                )
            seen.add(field_shape.name)
        return self

    def __repr__(self) -> str:
        return (
            f"<ResourceShape {self.class_name} "
            f"({len(self.fields)} fields, {len(self.api_resources)} exposures)>"
        )


class EnumCase(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    value: Any = Field(default=None)


class EnumShape(BaseModel):
    """An enumeration class; ``backed`` enums carry explicit case values."""

    model_config = _SHARED_CONFIG

    class_name: str = Field(..., min_length=1, alias="class")
    backed: bool = Field(default=False)
    cases: List[EnumCase] = Field(default_factory=list)
    source_file: Optional[str] = Field(default=None)

    def case_for_value(self, value: Any) -> Optional[EnumCase]:
        for case in self.cases:
            if case.value == value or case.name == value:
                return case
        return None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class FilterParameter(BaseModel):
    """One query parameter a filter accepts."""

    model_config = _SHARED_CONFIG

    property: Optional[str] = Field(default=None)
    type: str = Field(default="string")
    required: bool = Field(default=False)
    is_collection: bool = Field(default=False)
    json_schema: Dict[str, Any] = Field(default_factory=dict, alias="schema")


class FilterDeclaration(BaseModel):
    """A filter attached to collection operations."""

    model_config = _SHARED_CONFIG

    id: str = Field(..., min_length=1)
    kind: FilterKind
    parameters: Dict[str, FilterParameter] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class RouteDefinition(BaseModel):
    """One named route of the application's route table."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    requirements: Dict[str, str] = Field(default_factory=dict)
    defaults: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class PaginationConfig(BaseModel):
    """Global pagination settings; the last link of the override cascade."""

    model_config = _SHARED_CONFIG

    enabled: bool = Field(default=True)
    client_enabled: bool = Field(default=False)
    client_items_per_page: bool = Field(default=False)
    client_partial: bool = Field(default=False)
    page_parameter_name: str = Field(default="page", min_length=1)
    items_per_page_parameter_name: str = Field(default="itemsPerPage", min_length=1)
    enabled_parameter_name: str = Field(default="pagination", min_length=1)
    partial_parameter_name: str = Field(default="partial", min_length=1)
    items_per_page: int = Field(default=30, ge=1)
    maximum_items_per_page: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _validate_page_sizes(self) -> "PaginationConfig":
        if (
            self.maximum_items_per_page is not None
            and self.items_per_page > self.maximum_items_per_page
        ):
            raise ValueError(
                f"items_per_page ({self.items_per_page}) must be "
                f"<= maximum_items_per_page ({self.maximum_items_per_page})."
            )
        return self


class OrderConfig(BaseModel):
    model_config = _SHARED_CONFIG

    parameter_name: str = Field(default="order", min_length=1)
    default: Dict[str, str] = Field(default_factory=dict)


class GenerationConfig(BaseModel):
    """
    Master configuration that controls every aspect of generation.

    A single instance of this model plus a resource provider (and optionally
    a route provider) is all the generator needs.
    """

    model_config = _SHARED_CONFIG

    # -- Output -------------------------------------------------------------
    output_dir: str = Field(
        default="assets/api", description="Root directory for generated files."
    )
    command_name: str = Field(
        default="apigen-ts", description="Command named in the generation banner."
    )

    # -- API ----------------------------------------------------------------
    api_prefix: str = Field(default="", description="Prefix prepended to every path.")
    namespaces: List[str] = Field(
        default_factory=lambda: ["App\\Entity"],
        description="Class namespaces whose resources are generated.",
    )
    hydra_prefix: bool = Field(
        default=True, description="Prefix Hydra members with 'hydra:'."
    )
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    order: OrderConfig = Field(default_factory=OrderConfig)

    # -- Class classification -----------------------------------------------
    datetime_classes: List[str] = Field(
        default_factory=lambda: [
            "DateTimeInterface",
            "DateTime",
            "DateTimeImmutable",
        ]
    )
    identifier_classes: List[str] = Field(
        default_factory=lambda: [
            "Symfony\\Component\\Uid\\Uuid",
            "Symfony\\Component\\Uid\\Ulid",
            "Symfony\\Component\\Uid\\AbstractUid",
        ]
    )
    passthrough_classes: List[str] = Field(
        default_factory=lambda: [
            "Symfony\\Component\\HttpFoundation\\File\\File",
            "Symfony\\Component\\HttpFoundation\\File\\UploadedFile",
        ]
    )

    # -- Routes -------------------------------------------------------------
    routes_enabled: bool = Field(default=True)
    default_locale: str = Field(default="en", min_length=2)
    reserved_route_prefixes: List[str] = Field(
        default_factory=lambda: ["_", "api_"]
    )

    # -- Runtime helper -----------------------------------------------------
    api_methods_source: Optional[str] = Field(
        default=None,
        description="Path of a runtime helper copied to ApiMethods.ts.",
    )
    api_base_url: Optional[str] = Field(
        default=None,
        description="API origin substituted for '__API_BASE_URL__' in the runtime helper.",
    )

    @field_validator("api_prefix")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("api_base_url")
    @classmethod
    def _reduce_to_origin(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"api_base_url must be an absolute URL, got '{value}'")
        return f"{parts.scheme}://{parts.netloc}"

    @field_validator("namespaces")
    @classmethod
    def _strip_namespace_separators(cls, value: List[str]) -> List[str]:
        return [ns.strip("\\") for ns in value if ns.strip("\\")]

    @property
    def hydra_member_prefix(self) -> str:
        return "hydra:" if self.hydra_prefix else ""

    def matches_namespace(self, class_name: str) -> bool:
        return any(
            class_name == ns or class_name.startswith(ns + "\\")
            for ns in self.namespaces
        )

    def strip_namespace(self, class_name: str) -> Optional[str]:
        """Class name relative to the first matching namespace, separators removed."""
        for ns in self.namespaces:
            if class_name.startswith(ns + "\\"):
                return class_name[len(ns) + 1:].replace("\\", "")
        return None


# ---------------------------------------------------------------------------
# Metadata document: top-level container
# ---------------------------------------------------------------------------


class MetadataDocument(BaseModel):
    """
    The root input model: configuration, described classes, enums, filters
    and routes, as loaded from a YAML or JSON metadata file.
    """

    model_config = _SHARED_CONFIG

    config: GenerationConfig = Field(default_factory=GenerationConfig)
    resources: List[ResourceShape] = Field(default_factory=list)
    enums: List[EnumShape] = Field(default_factory=list)
    filters: List[FilterDeclaration] = Field(default_factory=list)
    routes: List[RouteDefinition] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def resource_count(self) -> int:
        return sum(1 for r in self.resources if r.is_addressable)

    def __repr__(self) -> str:
        return (
            f"<MetadataDocument {len(self.resources)} classes, "
            f"{len(self.enums)} enums, {len(self.filters)} filters, "
            f"{len(self.routes)} routes>"
        )


TypeShape.model_rebuild()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BuiltinShape",
    "FilterKind",
    "ClassKind",
    "TypeShape",
    "FieldShape",
    "Link",
    "RequestMethodOverride",
    "PaginationOverrides",
    "OperationShape",
    "ApiResourceShape",
    "ResourceShape",
    "EnumCase",
    "EnumShape",
    "FilterParameter",
    "FilterDeclaration",
    "RouteDefinition",
    "PaginationConfig",
    "OrderConfig",
    "GenerationConfig",
    "MetadataDocument",
]

logger.debug("apigen_ts.models loaded: %d public symbols.", len(__all__))
