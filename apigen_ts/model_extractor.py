# File: apigen_ts/model_extractor.py
"""
APIGen-TS - Model Extractor
=============================
Turns described classes into ``TypeRegistry`` entries.

Workflow per class::

    1. Derive the logical type name (short name, else namespace-stripped).
    2. Return the cached descriptor when the class was already extracted.
    3. Register an in-progress placeholder, then walk the parent class and
       every exposed field, recursing into related models and enums.

Cyclic relations (A -> B -> A) terminate because step 3 registers the
placeholder before recursing: the second visit hits the cache in step 2.

``seed_base_types`` fills a fresh registry with the builtins, Hydra
envelope interfaces and shared enums every generated tree relies on.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from apigen_ts.errors import MetadataLoadError, UnknownFieldShapeError
from apigen_ts.models import (
    BuiltinShape,
    ClassKind,
    EnumShape,
    FieldShape,
    GenerationConfig,
    ResourceShape,
    TypeShape,
)
from apigen_ts.providers import ResourceProvider
from apigen_ts.registry import (
    FileSet,
    PropertyDescriptor,
    TypeDescriptor,
    TypeKind,
    TypeRegistry,
    TypeUnion,
    add_dependency,
)
from apigen_ts.utils import (
    class_basename,
    class_segments,
    json_literal,
    read_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.model_extractor")

# ---------------------------------------------------------------------------
# Well-known output files
# ---------------------------------------------------------------------------

API_TYPES_FILE: str = "interfaces/ApiTypes"
ENUM_FILE: str = "interfaces/Enum"
API_METHODS_FILE: str = "ApiMethods"
API_BASE_URL_PLACEHOLDER: str = "'__API_BASE_URL__'"

_SCALAR_TYPES: Dict[str, str] = {
    BuiltinShape.STRING.value: "string",
    BuiltinShape.INT.value: "number",
    BuiltinShape.FLOAT.value: "number",
    BuiltinShape.BOOL.value: "boolean",
    BuiltinShape.NULL.value: "null",
}

_BUILTIN_NAMES: List[str] = [
    "string",
    "number",
    "boolean",
    "null",
    "Array<T>",
    "object",
    "any",
]

_GENERATE_IRI_FUNCTION: str = "\n".join([
    "export function generateIri<T extends HydraItem>(item: T|string|number|null, uriTemplate: string): null|HydraIri<T> {",
    "    if (item === null) {",
    "        return null;",
    "    }",
    "",
    '    if (typeof item === "object" && item["@id"] && typeof item["@id"] === "string") {',
    '        return item["@id"] as HydraIri<T>;',
    "    }",
    "",
    '    if (typeof item === "string" || typeof item === "number") {',
    '        if (uriTemplate.includes("{id}")) {',
    '            return uriTemplate.replace("{id}", encodeURIComponent(item.toString())) as HydraIri<T>;',
    "        }",
    "",
    '        return uriTemplate + "/" + encodeURIComponent(item.toString());',
    "    }",
    "",
    "    return null;",
    "}",
])


# ---------------------------------------------------------------------------
# Base metadata
# ---------------------------------------------------------------------------


def _prop(
    name: str,
    expression: str,
    *,
    required: bool = False,
    read_only: bool = False,
) -> PropertyDescriptor:
    return PropertyDescriptor(
        name=name,
        union=TypeUnion.parse(expression),
        required=required,
        read_only=read_only,
    )


def _api_types_interface(
    name: str,
    properties: List[PropertyDescriptor],
    *,
    generics: Optional[str] = None,
    same_file_deps: Optional[List[str]] = None,
) -> TypeDescriptor:
    descriptor = TypeDescriptor(
        name=name,
        kind=TypeKind.INTERFACE,
        target_file=API_TYPES_FILE,
        source_class=f"@base/{name}",
        generics=generics,
    )
    for prop in properties:
        descriptor.add_property(prop)
    for dependency in same_file_deps or []:
        descriptor.add_dependency(API_TYPES_FILE, dependency)
    return descriptor


def build_api_platform_config(config: GenerationConfig) -> Dict[str, Any]:
    """Runtime settings mirrored into ``apiPlatformConfig`` for the helpers."""
    pagination = config.pagination
    return {
        "hydra_prefix": config.hydra_member_prefix,
        "pagination": {
            "enabled": pagination.enabled,
            "clientEnabled": pagination.client_enabled,
            "clientPartialEnabled": pagination.client_partial,
            "pageParameter": pagination.page_parameter_name,
        },
        "itemsPerPage": {
            "enabled": pagination.client_items_per_page,
            "itemsPerPageParameter": pagination.items_per_page_parameter_name,
            "maximumItemsPerPage": pagination.maximum_items_per_page,
            "default": pagination.items_per_page,
        },
        "paginationClient": {
            "enabled": pagination.client_enabled,
            "parameter": pagination.enabled_parameter_name,
        },
        "partial": {
            "enabled": pagination.client_partial,
            "parameter": pagination.partial_parameter_name,
        },
        "order": {
            "parameter": config.order.parameter_name,
            "default": config.order.default,
        },
    }


def seed_base_types(types: TypeRegistry, config: GenerationConfig, files: FileSet) -> None:
    """
    Register the types every generated tree shares and contribute the
    fixed ``ApiTypes`` fragments (runtime config and ``generateIri``).

    Raises ``MetadataLoadError`` when the configured runtime helper source
    cannot be read.
    """
    hydra: str = config.hydra_member_prefix

    for name in _BUILTIN_NAMES:
        types.register(TypeDescriptor(name=name, kind=TypeKind.BUILTIN, source_class=f"@builtin/{name}"))

    for name, generics in (("DateTime", None), ("DateOnly", None), ("HydraIri", "T extends HydraItem")):
        types.register(
            TypeDescriptor(
                name=name,
                kind=TypeKind.ALIAS,
                target_file=API_TYPES_FILE,
                source_class=f"@base/{name}",
                generics=generics,
                alias="string",
            )
        )

    types.register(_api_types_interface(
        "HydraItem",
        [
            _prop("@id", "HydraIri<T>", read_only=True),
            _prop("@type", "string", read_only=True),
        ],
        generics="T = any",
        same_file_deps=["HydraIri"],
    ))
    types.register(_api_types_interface(
        "HydraView",
        [
            _prop("@type", "string"),
            _prop("@id", "HydraIri<any>"),
            _prop(f"{hydra}first", "HydraIri<any>"),
            _prop(f"{hydra}last", "HydraIri<any>"),
            _prop(f"{hydra}next", "HydraIri<any>"),
        ],
        same_file_deps=["HydraIri"],
    ))
    types.register(_api_types_interface(
        "HydraCollection",
        [
            _prop("@id", "HydraIri<T>", required=True),
            _prop("@type", "string", required=True),
            _prop("@context", "string", required=True),
            _prop(f"{hydra}totalItems", "number", required=True),
            _prop(f"{hydra}member", "Array<T>", required=True),
            _prop(f"{hydra}view", "HydraView"),
        ],
        generics="T extends HydraItem",
        same_file_deps=["HydraIri", "HydraItem", "HydraView"],
    ))
    types.register(_api_types_interface(
        "HydraSearchMapping",
        [
            _prop("@type", "string"),
            _prop("variable", "string"),
            _prop("property", "string"),
            _prop("required", "boolean"),
        ],
    ))
    types.register(_api_types_interface(
        "HydraSearch",
        [
            _prop("@type", "string"),
            _prop(f"{hydra}template", "string"),
            _prop(f"{hydra}variableRepresentation", "string"),
            _prop(f"{hydra}mapping", "Array<HydraSearchMapping>"),
        ],
        same_file_deps=["HydraSearchMapping"],
    ))
    types.register(_api_types_interface(
        "ListParams",
        [],
        generics="T extends HydraItem",
        same_file_deps=["HydraItem"],
    ))

    for name, members in (
        ("BooleanEnum", {"True": "true", "False": "false"}),
        ("Order", {"Asc": "asc", "Desc": "desc"}),
    ):
        types.register(
            TypeDescriptor(
                name=name,
                kind=TypeKind.ENUM,
                target_file=ENUM_FILE,
                source_class=f"@base/{name}",
                members=dict(members),
            )
        )

    files.add_body(
        API_TYPES_FILE,
        "export const apiPlatformConfig = "
        + json_literal(build_api_platform_config(config), pretty=True)
        + ";",
    )
    files.add_body(API_TYPES_FILE, _GENERATE_IRI_FUNCTION)

    if config.api_methods_source:
        source = Path(config.api_methods_source)
        try:
            helper: str = read_file(source)
        except OSError as exc:
            raise MetadataLoadError(
                f"Cannot read runtime helper source: {exc}",
                {"path": str(source)},
            ) from exc
        if config.api_base_url:
            helper = helper.replace(API_BASE_URL_PLACEHOLDER, json_literal(config.api_base_url))
        files.add_body(API_METHODS_FILE, helper)

    logger.debug("Seeded %d base types.", len(types))


# ---------------------------------------------------------------------------
# ModelExtractor
# ---------------------------------------------------------------------------


class ModelExtractor:
    """
    Recursive-descent extractor from ``ResourceShape`` to interface types.

    One instance per run; all state lives in the shared ``TypeRegistry``.
    """

    def __init__(
        self,
        provider: ResourceProvider,
        config: GenerationConfig,
        types: TypeRegistry,
    ) -> None:
        self._provider: ResourceProvider = provider
        self._config: GenerationConfig = config
        self._types: TypeRegistry = types

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def extract_all(self) -> List[TypeDescriptor]:
        """Extract every addressable resource inside the configured namespaces."""
        extracted: List[TypeDescriptor] = []
        for class_name in self._provider.list_resources():
            if not self._config.matches_namespace(class_name):
                logger.debug("Skipping %s: outside configured namespaces.", class_name)
                continue
            extracted.append(self.extract(class_name))
        return extracted

    def extract(self, class_name: str) -> TypeDescriptor:
        """
        Return the interface descriptor for *class_name*, extracting it on
        first use.  Calling twice returns the very same descriptor object.
        """
        cached: Optional[TypeDescriptor] = self._types.lookup_source(class_name)
        if cached is not None:
            return cached

        shape: ResourceShape = self._describe(class_name)
        name: str = self._types.resolve_name(self._name_candidates(shape), class_name)

        descriptor = TypeDescriptor(
            name=name,
            kind=TypeKind.INTERFACE,
            target_file=f"interfaces/{name}",
            source_class=class_name,
            is_factory_eligible=True,
            doc_block=[f"@see {shape.source_file}"] if shape.source_file else [],
            is_addressable=shape.is_addressable,
            is_persistent=shape.persistent,
        )
        self._types.register(descriptor)
        logger.debug("Extracting %s as %s.", class_name, name)

        parent: Optional[TypeDescriptor] = None
        if shape.parent:
            if self._provider.classify_class(shape.parent) == ClassKind.MODEL:
                parent = self.extract(shape.parent)
                descriptor.extends.append(parent.name)
                descriptor.add_dependency(parent.target_file, parent.name)  # type: ignore[arg-type]
            else:
                logger.warning(
                    "Parent class %s of %s is not described; ignored.",
                    shape.parent,
                    class_name,
                )

        if shape.is_addressable:
            descriptor.extends.append("HydraItem")
            descriptor.add_dependency(API_TYPES_FILE, "HydraItem")

        for field_shape in shape.fields:
            if not field_shape.is_exposed:
                continue
            inherited: bool = self._is_inherited(class_name, field_shape, parent)
            descriptor.add_property(self._build_property(descriptor, field_shape, inherited))

        return descriptor

    def resolve_enum(self, class_name: str, target_file: Optional[str] = None) -> TypeDescriptor:
        """
        Register the native enum for *class_name*.

        The name is grown from trailing namespace segments (``Status``,
        ``PostStatus``, ``BlogPostStatus``, ...) until it is free or already
        owned by this enum.  The first owner decides the output file.
        """
        cached: Optional[TypeDescriptor] = self._types.lookup_source(class_name)
        if cached is not None:
            return cached

        segments: List[str] = class_segments(class_name)
        candidates: List[str] = [
            "".join(segments[index:]) for index in range(len(segments) - 1, -1, -1)
        ]
        name: str = self._types.resolve_name(candidates, class_name)

        try:
            shape: EnumShape = self._provider.describe_enum(class_name)
        except KeyError as exc:
            raise UnknownFieldShapeError(
                f"Enum '{class_name}' is not described.",
                {"enum": class_name},
            ) from exc

        members: Dict[str, Any] = {
            case.name: (case.value if shape.backed else None) for case in shape.cases
        }
        descriptor = TypeDescriptor(
            name=name,
            kind=TypeKind.NATIVE_ENUM,
            target_file=target_file or ENUM_FILE,
            source_class=class_name,
            members=members,
            doc_block=[f"@see {shape.source_file}"] if shape.source_file else [],
        )
        return self._types.register(descriptor)

    # -----------------------------------------------------------------
    # Internal: naming
    # -----------------------------------------------------------------

    def _describe(self, class_name: str) -> ResourceShape:
        try:
            return self._provider.describe_resource(class_name)
        except KeyError as exc:
            raise UnknownFieldShapeError(
                f"Class '{class_name}' is not described.",
                {"class": class_name},
            ) from exc

    def _name_candidates(self, shape: ResourceShape) -> List[str]:
        base: str = (
            shape.short_name
            or self._config.strip_namespace(shape.class_name)
            or class_basename(shape.class_name)
        )
        prefixes: List[str] = class_segments(shape.class_name)[:-1]
        candidates: List[str] = [base]
        for index in range(len(prefixes) - 1, -1, -1):
            candidates.append("".join(prefixes[index:]) + base)
        return candidates

    def _is_inherited(
        self,
        class_name: str,
        field_shape: FieldShape,
        parent: Optional[TypeDescriptor],
    ) -> bool:
        if field_shape.declared_by is not None:
            return field_shape.declared_by.lstrip("\\") != class_name
        return parent is not None and field_shape.name in parent.properties

    # -----------------------------------------------------------------
    # Internal: field classification
    # -----------------------------------------------------------------

    def _build_property(
        self,
        owner: TypeDescriptor,
        field_shape: FieldShape,
        inherited: bool,
    ) -> PropertyDescriptor:
        prop = PropertyDescriptor(
            name=field_shape.name,
            required=field_shape.required,
            read_only=field_shape.readable and not field_shape.writable,
            is_inherited=inherited,
            json_schema=dict(field_shape.json_schema),
        )
        for type_shape in field_shape.types:
            self._apply_type_shape(owner, field_shape, type_shape, prop)
        return prop

    def _apply_type_shape(
        self,
        owner: TypeDescriptor,
        field_shape: FieldShape,
        type_shape: TypeShape,
        prop: PropertyDescriptor,
    ) -> None:
        if type_shape.nullable:
            prop.union.add("null")

        builtin: str = type_shape.builtin

        if builtin in _SCALAR_TYPES:
            prop.union.add(_SCALAR_TYPES[builtin])
            prop.default_value_literal = json_literal(field_shape.default)
            return

        if type_shape.collection and type_shape.value is not None:
            element: str = self._resolve_element(owner, field_shape, type_shape.value, prop)
            if type_shape.key_type in (None, BuiltinShape.INT.value):
                prop.union.add(f"Array<{element}>")
            else:
                prop.union.add(f"{{ [key: string]: {element} }}")
            prop.is_collection = True
            prop.default_value_literal = "[]"
            return

        if builtin == BuiltinShape.ARRAY.value:
            prop.union.add("Array<any>")
            prop.union.add("Record<number|string, any>")
            prop.is_collection = True
            prop.default_value_literal = "[]"
            return

        if builtin == BuiltinShape.OBJECT.value:
            if type_shape.class_name is None:
                prop.union.add("Record<string, any>")
                return
            self._apply_class(owner, field_shape, type_shape.class_name, prop)
            return

        raise UnknownFieldShapeError(
            f"Unknown builtin type '{builtin}'.",
            {"class": owner.source_class, "property": field_shape.name},
        )

    def _apply_class(
        self,
        owner: TypeDescriptor,
        field_shape: FieldShape,
        class_name: str,
        prop: PropertyDescriptor,
    ) -> None:
        class_name = class_name.lstrip("\\")
        kind: ClassKind = self._provider.classify_class(class_name)

        if kind == ClassKind.DATETIME:
            prop.union.add("DateTime")
            add_dependency(prop.dependencies, API_TYPES_FILE, "DateTime")
        elif kind == ClassKind.ENUM:
            enum = self.resolve_enum(class_name, owner.target_file)
            prop.union.add(enum.name)
            prop.enum_ref = enum.name
            add_dependency(prop.dependencies, enum.target_file, enum.name)  # type: ignore[arg-type]
            default_case: Optional[str] = self._default_case(class_name, field_shape)
            if default_case:
                prop.default_value_literal = f"{enum.name}.{default_case}"
        elif kind == ClassKind.IDENTIFIER:
            prop.union.add("string")
        elif kind == ClassKind.PASSTHROUGH:
            prop.union.add("any")
        elif kind == ClassKind.MODEL:
            target: TypeDescriptor = self.extract(class_name)
            prop.union.add(target.name)
            prop.related_type_ref = target.name
            if class_name != owner.source_class:
                add_dependency(prop.dependencies, target.target_file, target.name)  # type: ignore[arg-type]
            if target.is_addressable:
                prop.union.add(f"HydraIri<{target.name}>")
                add_dependency(prop.dependencies, API_TYPES_FILE, "HydraIri")
        else:
            raise UnknownFieldShapeError(
                f"Cannot classify class '{class_name}'.",
                {"class": owner.source_class, "property": field_shape.name},
            )

    def _resolve_element(
        self,
        owner: TypeDescriptor,
        field_shape: FieldShape,
        value: TypeShape,
        prop: PropertyDescriptor,
    ) -> str:
        """Element type of a collection; relations also fill ``collection_element_type``."""
        if value.class_name is None:
            if value.builtin in _SCALAR_TYPES:
                return _SCALAR_TYPES[value.builtin]
            if value.builtin in (BuiltinShape.ARRAY.value, BuiltinShape.OBJECT.value):
                return "any"
            raise UnknownFieldShapeError(
                f"Unknown collection element type '{value.builtin}'.",
                {"class": owner.source_class, "property": field_shape.name},
            )

        class_name: str = value.class_name.lstrip("\\")
        kind: ClassKind = self._provider.classify_class(class_name)

        if kind == ClassKind.MODEL:
            target: TypeDescriptor = self.extract(class_name)
            prop.related_type_ref = target.name
            prop.collection_element_type = target.name
            if class_name != owner.source_class:
                add_dependency(prop.dependencies, target.target_file, target.name)  # type: ignore[arg-type]
            if target.is_addressable:
                add_dependency(prop.dependencies, API_TYPES_FILE, "HydraIri")
                return f"{target.name}|HydraIri<{target.name}>"
            return target.name
        if kind == ClassKind.ENUM:
            enum = self.resolve_enum(class_name, owner.target_file)
            prop.enum_ref = enum.name
            add_dependency(prop.dependencies, enum.target_file, enum.name)  # type: ignore[arg-type]
            return enum.name
        if kind == ClassKind.DATETIME:
            add_dependency(prop.dependencies, API_TYPES_FILE, "DateTime")
            return "DateTime"
        if kind == ClassKind.IDENTIFIER:
            return "string"
        if kind == ClassKind.PASSTHROUGH:
            return "any"

        raise UnknownFieldShapeError(
            f"Cannot classify collection element class '{class_name}'.",
            {"class": owner.source_class, "property": field_shape.name},
        )

    def _default_case(self, enum_class: str, field_shape: FieldShape) -> Optional[str]:
        if field_shape.default_case:
            return field_shape.default_case
        if field_shape.default is None:
            return None
        case = self._provider.describe_enum(enum_class).case_for_value(field_shape.default)
        return case.name if case else None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "API_TYPES_FILE",
    "ENUM_FILE",
    "API_METHODS_FILE",
    "API_BASE_URL_PLACEHOLDER",
    "build_api_platform_config",
    "seed_base_types",
    "ModelExtractor",
]

logger.debug("apigen_ts.model_extractor loaded.")
