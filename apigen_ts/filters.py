# File: apigen_ts/filters.py
"""
APIGen-TS - Filter Field Derivation
=====================================
Maps filter declarations onto the fields of a synthesized ``ListParams``
interface.

Each supported filter kind has its own field rule (search, order, date,
boolean, exists, range, backed enum).  Contributions to the same field
name are accumulated: the type becomes the union of every contributed
token, ``required`` / ``is_collection`` the logical OR.  A collection field
is finally widened to ``T|Array<T>``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from apigen_ts.errors import UnexposedFilterFieldError
from apigen_ts.model_extractor import API_TYPES_FILE, ENUM_FILE
from apigen_ts.models import FilterDeclaration, FilterKind, FilterParameter
from apigen_ts.registry import (
    PropertyDescriptor,
    TypeDescriptor,
    TypeRegistry,
    TypeUnion,
    add_dependency,
)
from apigen_ts.utils import json_literal, string_literal_union

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.filters")

_PRIMITIVE_ALIASES: Dict[str, str] = {
    "int": "number",
    "integer": "number",
    "float": "number",
    "bool": "boolean",
}


# ---------------------------------------------------------------------------
# Accumulated fields
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class FilterFieldDescriptor:
    """One query parameter of a list-params interface."""

    name: str
    union: TypeUnion = field(default_factory=TypeUnion)
    required: bool = False
    is_collection: bool = False

    @property
    def type_expression(self) -> str:
        if self.is_collection:
            return self.union.widened()
        return self.union.render()

    def to_property(self) -> PropertyDescriptor:
        return PropertyDescriptor(
            name=self.name,
            union=TypeUnion.parse(self.type_expression),
            required=self.required,
            is_collection=self.is_collection,
        )


class FilterFieldAccumulator:
    """Ordered field name -> ``FilterFieldDescriptor`` with union semantics."""

    __slots__ = ("_fields",)

    def __init__(self) -> None:
        self._fields: Dict[str, FilterFieldDescriptor] = {}

    def contribute(
        self,
        name: str,
        expression: str,
        *,
        required: bool = False,
        is_collection: bool = False,
    ) -> FilterFieldDescriptor:
        descriptor: Optional[FilterFieldDescriptor] = self._fields.get(name)
        if descriptor is None:
            descriptor = FilterFieldDescriptor(name=name)
            self._fields[name] = descriptor
        descriptor.union.add_expression(expression)
        descriptor.required = descriptor.required or required
        descriptor.is_collection = descriptor.is_collection or is_collection
        return descriptor

    def get(self, name: str) -> Optional[FilterFieldDescriptor]:
        return self._fields.get(name)

    def fields(self) -> List[FilterFieldDescriptor]:
        return list(self._fields.values())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[FilterFieldDescriptor]:
        return iter(self.fields())

    def __len__(self) -> int:
        return len(self._fields)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_parameter(key: str) -> Tuple[str, Optional[str]]:
    """``createdAt[before]`` -> ``("createdAt", "before")``; ``title`` -> ``("title", None)``."""
    if "[" not in key:
        return key, None
    head, _, rest = key.partition("[")
    return head, rest.split("]", 1)[0] or None


def _normalise_primitive(type_name: str) -> str:
    return _PRIMITIVE_ALIASES.get(type_name, type_name)


def _schema_accepts(schema: Dict[str, Any], type_name: str) -> bool:
    schema_type: Any = schema.get("type")
    if isinstance(schema_type, list):
        return type_name in schema_type
    return schema_type == type_name


# ---------------------------------------------------------------------------
# FilterFieldDeriver
# ---------------------------------------------------------------------------


class FilterFieldDeriver:
    """
    Applies filter declarations of one resource to an accumulator.

    Cross-file references discovered on the way (DateTime, Order, related
    models, enums) are recorded into *dependencies*, which is normally the
    ``dependencies`` mapping of the list-params descriptor.
    """

    def __init__(
        self,
        types: TypeRegistry,
        resource_type: TypeDescriptor,
        dependencies: Dict[str, Set[str]],
    ) -> None:
        self._types: TypeRegistry = types
        self._resource: TypeDescriptor = resource_type
        self._dependencies: Dict[str, Set[str]] = dependencies
        self._handlers: Dict[str, Callable[[FilterDeclaration, FilterFieldAccumulator], None]] = {
            FilterKind.SEARCH.value: self._apply_search,
            FilterKind.ORDER.value: self._apply_order,
            FilterKind.DATE.value: self._apply_date,
            FilterKind.BOOLEAN.value: self._apply_boolean,
            FilterKind.EXISTS.value: self._apply_exists,
            FilterKind.RANGE.value: self._apply_range,
            FilterKind.BACKED_ENUM.value: self._apply_backed_enum,
        }

    def apply(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        kind: str = FilterKind(declaration.kind).value
        logger.debug(
            "Applying %s filter '%s' to %s.", kind, declaration.id, self._resource.name
        )
        self._handlers[kind](declaration, accumulator)

    # -----------------------------------------------------------------
    # Internal: resource lookups
    # -----------------------------------------------------------------

    def _local_property(self, property_path: str, filter_id: str) -> PropertyDescriptor:
        local: str = property_path.split(".", 1)[0]
        prop: Optional[PropertyDescriptor] = self._resource.properties.get(local)
        if prop is None:
            raise UnexposedFilterFieldError(
                f"Filter references property '{local}' which is not exposed "
                f"on {self._resource.name}.",
                {"resource": self._resource.source_class, "property": property_path, "filter": filter_id},
            )
        return prop

    def _depend(self, target_file: Optional[str], name: str) -> None:
        if target_file:
            add_dependency(self._dependencies, target_file, name)

    def _depend_on_type(self, name: str) -> None:
        descriptor: Optional[TypeDescriptor] = self._types.get(name)
        if descriptor is not None and descriptor.is_rendered:
            self._depend(descriptor.target_file, name)

    @staticmethod
    def _property_name(key: str, parameter: FilterParameter) -> str:
        return parameter.property or _split_parameter(key)[0]

    def _exposed_name(self, key: str, parameter: FilterParameter, filter_id: str) -> str:
        property_name: str = self._property_name(key, parameter)
        self._local_property(property_name, filter_id)
        return property_name

    # -----------------------------------------------------------------
    # Internal: one handler per filter kind
    # -----------------------------------------------------------------

    def _apply_search(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        for key, parameter in declaration.parameters.items():
            property_name: str = self._property_name(key, parameter)
            prop: PropertyDescriptor = self._local_property(property_name, declaration.id)
            for target_file, names in prop.dependencies.items():
                for name in names:
                    self._depend(target_file, name)

            type_expression: str = parameter.type
            if prop.json_schema and _schema_accepts(prop.json_schema, parameter.type):
                if prop.json_schema.get("format") == "iri-reference":
                    generic: str = prop.related_type_ref or "any"
                    if prop.related_type_ref:
                        self._depend_on_type(prop.related_type_ref)
                    self._depend(API_TYPES_FILE, "HydraIri")
                    type_expression = f"HydraIri<{generic}>"
                else:
                    type_expression = prop.ts_type_expression

            accumulator.contribute(
                property_name,
                _normalise_primitive(type_expression),
                required=parameter.required,
                is_collection=parameter.is_collection,
            )

    def _apply_order(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        parameter_name: Optional[str] = None
        properties: List[str] = []
        for key, parameter in declaration.parameters.items():
            if parameter_name is None:
                parameter_name = _split_parameter(key)[0]
            properties.append(self._exposed_name(key, parameter, declaration.id))
        if parameter_name is None:
            return
        self._depend(ENUM_FILE, "Order")
        accumulator.contribute(
            parameter_name,
            f"Partial<Record<{string_literal_union(properties)}, Order>>",
        )

    def _apply_date(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        operators: Dict[str, List[str]] = {}
        for key, parameter in declaration.parameters.items():
            _, operator = _split_parameter(key)
            if operator is None:
                continue
            bucket: List[str] = operators.setdefault(self._exposed_name(key, parameter, declaration.id), [])
            if operator not in bucket:
                bucket.append(operator)
        if operators:
            self._depend(API_TYPES_FILE, "DateTime")
        for property_name, names in operators.items():
            accumulator.contribute(
                property_name,
                f"Partial<Record<{string_literal_union(names)}, DateTime>>",
            )

    def _apply_boolean(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        for key, parameter in declaration.parameters.items():
            accumulator.contribute(
                self._exposed_name(key, parameter, declaration.id),
                "boolean",
                required=parameter.required,
                is_collection=parameter.is_collection,
            )

    def _apply_exists(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        parameter_name: Optional[str] = None
        properties: List[str] = []
        for key, parameter in declaration.parameters.items():
            if parameter_name is None:
                parameter_name = _split_parameter(key)[0]
            properties.append(self._exposed_name(key, parameter, declaration.id))
        if parameter_name is None:
            return
        accumulator.contribute(
            parameter_name,
            f"Partial<Record<{string_literal_union(properties)}, boolean>>",
        )

    def _apply_range(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        operators: Dict[str, List[str]] = {}
        for key, parameter in declaration.parameters.items():
            _, operator = _split_parameter(key)
            if operator is None:
                continue
            bucket: List[str] = operators.setdefault(self._exposed_name(key, parameter, declaration.id), [])
            if operator not in bucket:
                bucket.append(operator)
        for property_name, names in operators.items():
            accumulator.contribute(
                property_name,
                f"Partial<Record<{string_literal_union(names)}, string>>",
            )

    def _apply_backed_enum(self, declaration: FilterDeclaration, accumulator: FilterFieldAccumulator) -> None:
        for key, parameter in declaration.parameters.items():
            prop: PropertyDescriptor = self._local_property(
                self._property_name(key, parameter), declaration.id
            )
            if prop.enum_ref:
                self._depend_on_type(prop.enum_ref)
                expression: str = f"null|{prop.enum_ref}"
            else:
                values: List[Any] = list(parameter.json_schema.get("enum") or [])
                literals: str = "|".join(json_literal(v) for v in values) or "string"
                expression = f"null|{literals}"
            accumulator.contribute(
                key,
                expression,
                required=parameter.required,
                is_collection=parameter.is_collection,
            )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FilterFieldDescriptor",
    "FilterFieldAccumulator",
    "FilterFieldDeriver",
]

logger.debug("apigen_ts.filters loaded.")
