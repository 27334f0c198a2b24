# File: apigen_ts/registry.py
"""
APIGen-TS - Type & Operation Registries
=========================================
The in-memory graph every pipeline phase reads and writes:

    * ``TypeRegistry``:      logical type name -> ``TypeDescriptor``
    * ``OperationRegistry``: resource class -> ``OperationEntry``
    * ``FileSet``:           logical output file -> ordered text fragments

A ``GenerationState`` bundles the three; it is built once per run, mutated
during extraction/linking/shaping, handed to extension hooks, then rendered
and discarded.

Dependencies are plain ``Dict[str, Set[str]]`` mappings of target file ->
type names, the same shape the import-block builder consumes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from apigen_ts.errors import NameConflictError
from apigen_ts.models import Link
from apigen_ts.utils import split_type_union

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.registry")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TypeKind(str, Enum):
    BUILTIN = "builtin"
    ALIAS = "alias"
    INTERFACE = "interface"
    ENUM = "enum"
    NATIVE_ENUM = "native_enum"


class OperationKind(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    REMOVE = "remove"


def add_dependency(dependencies: Dict[str, Set[str]], target_file: str, name: str) -> None:
    """Record that something references *name*, rendered into *target_file*."""
    dependencies.setdefault(target_file, set()).add(name)


# ---------------------------------------------------------------------------
# Type union: ordered set of type tokens
# ---------------------------------------------------------------------------


class TypeUnion:
    """
    Ordered, de-duplicated set of TypeScript type tokens.

    The single place where unions are rendered (``render``) and widened to
    accept repeated query parameters (``widened``).

        >>> u = TypeUnion(["null", "string"])
        >>> u.add("string"); u.render()
        'null|string'
        >>> u.widened()
        'null|string|Array<null|string>'
    """

    __slots__ = ("_tokens",)

    def __init__(self, tokens: Iterable[str] = ()) -> None:
        self._tokens: List[str] = []
        for token in tokens:
            self.add(token)

    @classmethod
    def parse(cls, expression: str) -> "TypeUnion":
        return cls(split_type_union(expression))

    def add(self, token: str) -> None:
        token = token.strip()
        if token and token not in self._tokens:
            self._tokens.append(token)

    def add_expression(self, expression: str) -> None:
        for token in split_type_union(expression):
            self.add(token)

    def extend(self, other: "TypeUnion") -> None:
        for token in other:
            self.add(token)

    def copy(self) -> "TypeUnion":
        return TypeUnion(self._tokens)

    @property
    def tokens(self) -> List[str]:
        return list(self._tokens)

    def render(self) -> str:
        if not self._tokens:
            return "any"
        return "|".join(self._tokens)

    def widened(self) -> str:
        base: str = self.render()
        return f"{base}|Array<{base}>"

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tokens))

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypeUnion):
            return self._tokens == other._tokens
        return NotImplemented

    def __repr__(self) -> str:
        return f"<TypeUnion {self.render()}>"


# ---------------------------------------------------------------------------
# Type descriptors
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class PropertyDescriptor:
    """One field of an interface type."""

    name: str
    union: TypeUnion = field(default_factory=TypeUnion)
    required: bool = False
    read_only: bool = False
    is_collection: bool = False
    collection_element_type: Optional[str] = None
    related_type_ref: Optional[str] = None
    enum_ref: Optional[str] = None
    default_value_literal: Optional[str] = None
    is_inherited: bool = False
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)
    json_schema: Dict[str, Any] = field(default_factory=dict)

    @property
    def ts_type_expression(self) -> str:
        return self.union.render()

    @property
    def type_tokens(self) -> List[str]:
        return self.union.tokens


@dataclass(slots=True)
class TypeDescriptor:
    """
    One entry of the type registry.

    ``members`` holds enum members (value ``None`` for bare ordinals);
    ``properties`` holds interface fields.  ``generate`` is False for
    names reserved in the registry but rendered elsewhere.
    """

    name: str
    kind: TypeKind
    target_file: Optional[str] = None
    source_class: Optional[str] = None
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)
    generics: Optional[str] = None
    extends: List[str] = field(default_factory=list)
    is_factory_eligible: bool = False
    properties: Dict[str, PropertyDescriptor] = field(default_factory=dict)
    members: Dict[str, Any] = field(default_factory=dict)
    alias: Optional[str] = None
    doc_block: List[str] = field(default_factory=list)
    is_addressable: bool = False
    is_persistent: bool = False
    generate: bool = True

    def add_dependency(self, target_file: str, name: str) -> None:
        add_dependency(self.dependencies, target_file, name)

    def add_property(self, prop: PropertyDescriptor) -> None:
        """
        Register *prop* and merge its imports.

        Inherited properties are rendered by the parent interface; only an
        enum default, which this type's factory repeats, is imported here.
        """
        self.properties[prop.name] = prop
        if prop.is_inherited:
            literal: str = prop.default_value_literal or ""
            if prop.enum_ref and literal.startswith(f"{prop.enum_ref}."):
                for target_file, names in prop.dependencies.items():
                    if prop.enum_ref in names:
                        self.add_dependency(target_file, prop.enum_ref)
            return
        for target_file, names in prop.dependencies.items():
            for name in names:
                self.add_dependency(target_file, name)

    @property
    def is_rendered(self) -> bool:
        return self.kind != TypeKind.BUILTIN and bool(self.target_file) and self.generate

    def self_dependency_count(self) -> int:
        """Number of same-file types this type references."""
        if not self.target_file:
            return 0
        return len(self.dependencies.get(self.target_file, set()) - {self.name})

    def __repr__(self) -> str:
        return f"<TypeDescriptor {self.kind.value} {self.name} @ {self.target_file}>"


class TypeRegistry:
    """
    Logical type name -> ``TypeDescriptor``, with a secondary index by
    source class for idempotent re-lookup.
    """

    __slots__ = ("_types", "_by_source")

    def __init__(self) -> None:
        self._types: Dict[str, TypeDescriptor] = {}
        self._by_source: Dict[str, str] = {}

    # -- Mutation -----------------------------------------------------------

    def register(self, descriptor: TypeDescriptor) -> TypeDescriptor:
        """
        Add *descriptor* under its name.

        Re-registering a name for the same source replaces the previous
        descriptor; a different source raises ``NameConflictError``.
        """
        existing: Optional[TypeDescriptor] = self._types.get(descriptor.name)
        if existing is not None and existing.source_class != descriptor.source_class:
            raise NameConflictError(
                f"Type name '{descriptor.name}' is already used by another source.",
                {
                    "name": descriptor.name,
                    "existing_source": existing.source_class,
                    "new_source": descriptor.source_class,
                },
            )
        self._types[descriptor.name] = descriptor
        if descriptor.source_class is not None:
            self._by_source[descriptor.source_class] = descriptor.name
        return descriptor

    def get_or_create(
        self,
        source_class: str,
        factory: Callable[[], TypeDescriptor],
    ) -> TypeDescriptor:
        """Return the descriptor registered for *source_class*, creating it once."""
        existing: Optional[TypeDescriptor] = self.lookup_source(source_class)
        if existing is not None:
            return existing
        descriptor: TypeDescriptor = factory()
        descriptor.source_class = source_class
        return self.register(descriptor)

    def remove(self, name: str) -> None:
        descriptor: Optional[TypeDescriptor] = self._types.pop(name, None)
        if descriptor is not None and descriptor.source_class is not None:
            self._by_source.pop(descriptor.source_class, None)

    def resolve_name(self, candidates: Sequence[str], source_class: str) -> str:
        """
        First candidate that is free or already owned by *source_class*.

        Raises ``NameConflictError`` when every candidate is taken.
        """
        for candidate in candidates:
            existing: Optional[TypeDescriptor] = self._types.get(candidate)
            if existing is None or existing.source_class == source_class:
                return candidate
        raise NameConflictError(
            f"Cannot derive a unique type name for '{source_class}'.",
            {"source": source_class, "candidates": list(candidates)},
        )

    # -- Query --------------------------------------------------------------

    def get(self, name: str) -> Optional[TypeDescriptor]:
        return self._types.get(name)

    def lookup_source(self, source_class: str) -> Optional[TypeDescriptor]:
        name: Optional[str] = self._by_source.get(source_class)
        if name is None:
            return None
        return self._types.get(name)

    def names(self) -> List[str]:
        return list(self._types)

    def by_file(self) -> Dict[str, List[TypeDescriptor]]:
        """Rendered descriptors grouped by target file, in registration order."""
        grouped: Dict[str, List[TypeDescriptor]] = {}
        for descriptor in self._types.values():
            if descriptor.is_rendered:
                grouped.setdefault(descriptor.target_file, []).append(descriptor)  # type: ignore[arg-type]
        return grouped

    def __getitem__(self, name: str) -> TypeDescriptor:
        return self._types[name]

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(list(self._types.values()))

    def __len__(self) -> int:
        return len(self._types)

    def __repr__(self) -> str:
        return f"<TypeRegistry {len(self._types)} types>"


# ---------------------------------------------------------------------------
# Operation descriptors
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class OperationDescriptor:
    """One exposed HTTP operation of a resource binding."""

    name: str
    kind: str
    http_method: str
    uri_template: str
    resolved_path: str
    helper: str
    input_type_ref: Optional[str] = None
    output_type_ref: Optional[str] = None
    mandatory_path_params: List[str] = field(default_factory=list)
    is_multipart: bool = False
    list_params_type_ref: Optional[str] = None
    security: Optional[str] = None
    generic_params: Optional[List[str]] = None


@dataclass(slots=True)
class ChildEndpoint:
    source_class: str
    symbol: str


@dataclass(slots=True)
class ResourceBinding:
    """Operations of one exposure, grouped under a single binding symbol."""

    symbol: str
    name: str
    parent_links: List[Link] = field(default_factory=list)
    operations: Dict[str, OperationDescriptor] = field(default_factory=dict)
    child_endpoints: Dict[str, ChildEndpoint] = field(default_factory=dict)
    security: Optional[str] = None
    security_post_denormalize: Optional[str] = None

    @property
    def iri_operation(self) -> Optional[OperationDescriptor]:
        """The first ``read`` operation, else the first ``list``; used to build identifier references."""
        for kind in (OperationKind.READ, OperationKind.LIST):
            for operation in self.operations.values():
                if operation.kind == kind.value:
                    return operation
        return None


@dataclass(slots=True)
class OperationEntry:
    """All bindings of one resource class, rendered into one endpoint file."""

    name: str
    source_class: str
    target_file: str
    bindings: Dict[str, ResourceBinding] = field(default_factory=dict)
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)

    def add_dependency(self, target_file: str, name: str) -> None:
        add_dependency(self.dependencies, target_file, name)

    def first_binding(self) -> Optional[ResourceBinding]:
        for binding in self.bindings.values():
            return binding
        return None

    @property
    def resource_symbol(self) -> Optional[str]:
        binding: Optional[ResourceBinding] = self.first_binding()
        return binding.symbol if binding else None

    @property
    def operations(self) -> Dict[str, OperationDescriptor]:
        binding: Optional[ResourceBinding] = self.first_binding()
        return binding.operations if binding else {}

    @property
    def child_endpoints(self) -> Dict[str, ChildEndpoint]:
        binding: Optional[ResourceBinding] = self.first_binding()
        return binding.child_endpoints if binding else {}

    @property
    def iri_binding(self) -> Optional[ResourceBinding]:
        """First binding able to build identifier references, if any."""
        for binding in self.bindings.values():
            if binding.iri_operation is not None:
                return binding
        return None

    @property
    def has_iri_generator(self) -> bool:
        return self.iri_binding is not None


class OperationRegistry:
    """Resource class -> ``OperationEntry``, in extraction order."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: Dict[str, OperationEntry] = {}

    def get_or_create(self, source_class: str, name: str, target_file: str) -> OperationEntry:
        entry: Optional[OperationEntry] = self._entries.get(source_class)
        if entry is None:
            entry = OperationEntry(name=name, source_class=source_class, target_file=target_file)
            self._entries[source_class] = entry
        return entry

    def get(self, source_class: str) -> Optional[OperationEntry]:
        return self._entries.get(source_class)

    def __contains__(self, source_class: object) -> bool:
        return source_class in self._entries

    def __iter__(self) -> Iterator[OperationEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<OperationRegistry {len(self._entries)} entries>"


# ---------------------------------------------------------------------------
# Text fragments
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Fragment:
    """A block of TypeScript text contributed to one output file."""

    body: str
    priority: int = 100
    imports: Dict[str, Set[str]] = field(default_factory=dict)


class FileSet:
    """Logical output file -> fragments, in contribution order."""

    __slots__ = ("_files",)

    def __init__(self) -> None:
        self._files: Dict[str, List[Fragment]] = {}

    def add(self, target_file: str, fragment: Fragment) -> None:
        self._files.setdefault(target_file, []).append(fragment)

    def add_body(
        self,
        target_file: str,
        body: str,
        *,
        priority: int = 100,
        imports: Optional[Dict[str, Set[str]]] = None,
    ) -> None:
        self.add(target_file, Fragment(body=body, priority=priority, imports=imports or {}))

    def remove(self, target_file: str) -> None:
        self._files.pop(target_file, None)

    def fragments(self, target_file: str) -> List[Fragment]:
        return self._files.get(target_file, [])

    def files(self) -> List[str]:
        return list(self._files)

    def items(self) -> List[Tuple[str, List[Fragment]]]:
        return list(self._files.items())

    def __contains__(self, target_file: object) -> bool:
        return target_file in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._files))

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"<FileSet {len(self._files)} files>"


@dataclass(slots=True)
class GenerationState:
    """Everything one run builds before rendering."""

    types: TypeRegistry = field(default_factory=TypeRegistry)
    operations: OperationRegistry = field(default_factory=OperationRegistry)
    files: FileSet = field(default_factory=FileSet)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TypeKind",
    "OperationKind",
    "add_dependency",
    "TypeUnion",
    "PropertyDescriptor",
    "TypeDescriptor",
    "TypeRegistry",
    "OperationDescriptor",
    "ChildEndpoint",
    "ResourceBinding",
    "OperationEntry",
    "OperationRegistry",
    "Fragment",
    "FileSet",
    "GenerationState",
]

logger.debug("apigen_ts.registry loaded.")
