# File: apigen_ts/templates.py
"""
APIGen-TS - TypeScript File Composer
======================================
Turns the registries into text fragments and fragments into file bodies.

Rendering (``TypeScriptComposer``):
    1. Group rendered types by target file, order each group by the number
       of same-file types a type depends on (ascending, stable), and emit
       aliases, interfaces (plus factory functions) and enums.
    2. Emit one endpoint fragment per operation entry: the binding object,
       its ``EndpointFactory`` twin and the ``generate<Type>Iri`` helper.

Assembly (``assemble_file`` / ``assemble``):
    Fragments of a file are merged with an import fragment built from their
    recorded dependencies, sorted by descending priority (ties keep
    contribution order), trimmed and joined with blank lines.

**Performance contract:**
    - All text assembly uses ``List[str]`` + ``"\\n".join()``.
    - Rendering never touches the filesystem.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from apigen_ts.model_extractor import API_METHODS_FILE, API_TYPES_FILE
from apigen_ts.registry import (
    FileSet,
    Fragment,
    GenerationState,
    OperationDescriptor,
    OperationEntry,
    PropertyDescriptor,
    ResourceBinding,
    TypeDescriptor,
    TypeKind,
    add_dependency,
)
from apigen_ts.utils import (
    build_import_block,
    format_property_key,
    json_literal,
    lcfirst,
    merge_import_dicts,
    string_literal_union,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "    "
_DOUBLE_INDENT: str = "        "

IMPORT_PRIORITY: int = 1100
TYPE_PRIORITY: int = 100
ENDPOINT_PRIORITY: int = 50

# Helpers that take the HTTP method between path and parameter list.
_METHOD_ARG_HELPERS: Set[str] = {"download", "downloadAsString"}


# ---------------------------------------------------------------------------
# Type rendering
# ---------------------------------------------------------------------------


class TypeScriptComposer:
    """
    Renders a ``GenerationState`` into fragments of its ``FileSet``.

    Stateless apart from the state it was given; ``compose()`` may be
    called once per run.
    """

    def __init__(self, state: GenerationState) -> None:
        self._state: GenerationState = state

    def compose(self) -> None:
        type_files: int = self.compose_types()
        endpoint_files: int = self.compose_endpoints()
        logger.info(
            "Composed %d type file(s) and %d endpoint fragment(s).",
            type_files,
            endpoint_files,
        )

    # -----------------------------------------------------------------
    # Types
    # -----------------------------------------------------------------

    def compose_types(self) -> int:
        grouped: Dict[str, List[TypeDescriptor]] = self._state.types.by_file()
        for target_file, descriptors in grouped.items():
            ordered: List[TypeDescriptor] = sorted(
                descriptors, key=lambda d: d.self_dependency_count()
            )
            blocks: List[str] = []
            imports: Dict[str, Set[str]] = {}
            for descriptor in ordered:
                blocks.append("\n".join(self.render_type(descriptor)))
                imports = merge_import_dicts(imports, descriptor.dependencies)
            self._state.files.add_body(
                target_file,
                "\n\n".join(blocks),
                priority=TYPE_PRIORITY,
                imports=imports,
            )
        return len(grouped)

    def render_type(self, descriptor: TypeDescriptor) -> List[str]:
        """Lines of one alias, interface (with factory) or enum."""
        if descriptor.kind == TypeKind.ALIAS:
            return [
                f"export type {descriptor.name}{_generics(descriptor)} = {descriptor.alias or 'any'};"
            ]
        if descriptor.kind == TypeKind.INTERFACE:
            return self._render_interface(descriptor)
        if descriptor.kind in (TypeKind.ENUM, TypeKind.NATIVE_ENUM):
            return self._render_enum(descriptor)
        raise ValueError(f"Type '{descriptor.name}' of kind {descriptor.kind} cannot be rendered.")

    def _render_interface(self, descriptor: TypeDescriptor) -> List[str]:
        lines: List[str] = [f"// {line}" for line in descriptor.doc_block]
        extends: str = f" extends {', '.join(descriptor.extends)}" if descriptor.extends else ""
        lines.append(f"export interface {descriptor.name}{_generics(descriptor)}{extends} {{")
        for prop in descriptor.properties.values():
            if prop.is_inherited:
                continue
            lines.append(
                f"{_INDENT}{'readonly ' if prop.read_only else ''}"
                f"{format_property_key(prop.name)}{'' if prop.required else '?'}: "
                f"{prop.ts_type_expression};"
            )
        lines.append("}")

        if descriptor.is_factory_eligible:
            variable: str = lcfirst(descriptor.name)
            lines.append("")
            lines.append(
                f"export function {variable}Factory({variable}: Partial<{descriptor.name}> = {{}}): "
                f"{descriptor.name} {{"
            )
            lines.append(f"{_INDENT}return {{")
            for prop in self._factory_properties(descriptor).values():
                if prop.read_only:
                    continue
                lines.append(
                    f"{_DOUBLE_INDENT}{format_property_key(prop.name)}: "
                    f"{prop.default_value_literal or 'null'},"
                )
            lines.append(f"{_DOUBLE_INDENT}...{variable},")
            lines.append(f"{_INDENT}}} as {descriptor.name};")
            lines.append("}")
        return lines

    def _factory_properties(
        self,
        descriptor: TypeDescriptor,
        seen: Optional[Set[str]] = None,
    ) -> Dict[str, PropertyDescriptor]:
        """Own and inherited properties; ancestors first."""
        seen = seen if seen is not None else set()
        seen.add(descriptor.name)
        merged: Dict[str, PropertyDescriptor] = {}
        for parent_name in descriptor.extends:
            parent: Optional[TypeDescriptor] = self._state.types.get(parent_name)
            if parent is None or not parent.is_factory_eligible or parent.name in seen:
                continue
            merged.update(self._factory_properties(parent, seen))
        merged.update(descriptor.properties)
        return merged

    @staticmethod
    def _render_enum(descriptor: TypeDescriptor) -> List[str]:
        lines: List[str] = [f"// {line}" for line in descriptor.doc_block]
        lines.append(f"export enum {descriptor.name} {{")
        for member, value in descriptor.members.items():
            if value is None:
                lines.append(f"{_INDENT}{member},")
            else:
                lines.append(f"{_INDENT}{member} = {json_literal(value)},")
        lines.append("}")
        return lines

    # -----------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------

    def compose_endpoints(self) -> int:
        count: int = 0
        for entry in self._state.operations:
            rendered: Optional[Tuple[str, Dict[str, Set[str]]]] = self.render_endpoint(entry)
            if rendered is None:
                continue
            body, imports = rendered
            self._state.files.add_body(
                entry.target_file,
                body,
                priority=ENDPOINT_PRIORITY,
                imports=imports,
            )
            count += 1
        return count

    def render_endpoint(self, entry: OperationEntry) -> Optional[Tuple[str, Dict[str, Set[str]]]]:
        """Endpoint fragment of *entry*, or ``None`` when it exposes no operation."""
        bindings: List[ResourceBinding] = [b for b in entry.bindings.values() if b.operations]
        if not bindings:
            return None

        imports: Dict[str, Set[str]] = merge_import_dicts(entry.dependencies)
        lines: List[str] = []
        factory_lines: List[str] = []
        iri_binding: Optional[ResourceBinding] = entry.iri_binding

        for binding in bindings:
            if binding.security:
                lines.append(f"// {binding.security}")
                factory_lines.append(f"// {binding.security}")
            lines.append(f"export const {binding.symbol} = {{")
            factory_lines.append(
                f"export function {binding.symbol}EndpointFactory(defaultConfig?: RequestConfig) {{"
            )
            factory_lines.append(f"{_INDENT}return {{")

            for name, operation in binding.operations.items():
                helper, call_args, generics = self._operation_call(operation)
                add_dependency(imports, API_METHODS_FILE, helper)
                comments: List[str] = []
                if operation.security:
                    comments.append(f"// @security: {operation.security}")
                if binding.security_post_denormalize:
                    comments.append(f"// @securityPostDenormalize: {binding.security_post_denormalize}")
                key: str = format_property_key(name)
                call: str = f"{helper}<{', '.join(generics)}>"
                for comment in comments:
                    lines.append(f"{_INDENT}{comment}")
                    factory_lines.append(f"{_DOUBLE_INDENT}{comment}")
                lines.append(f"{_INDENT}{key}: {call}({', '.join(call_args)}),")
                factory_lines.append(
                    f"{_DOUBLE_INDENT}{key}: {call}({', '.join([*call_args, 'defaultConfig'])}),"
                )

            for property_name, child in binding.child_endpoints.items():
                lines.append(f"{_INDENT}{format_property_key(property_name)}: {child.symbol},")
                factory_lines.append(
                    f"{_DOUBLE_INDENT}{format_property_key(property_name)}: {child.symbol},"
                )

            lines.append("}")
            factory_lines.append(f"{_INDENT}}}")
            factory_lines.append("}")

            if binding is iri_binding:
                lines.extend(self._iri_generator(binding, imports, entry))

        add_dependency(imports, API_METHODS_FILE, "RequestConfig")
        return "\n".join([*lines, "", *factory_lines]), imports

    @staticmethod
    def _operation_call(operation: OperationDescriptor) -> Tuple[str, List[str], List[str]]:
        """Helper name, call arguments and generic parameters of one operation."""
        path: str = json_literal(operation.resolved_path)
        params: str = json_literal(operation.mandatory_path_params)
        generics: List[str] = _generic_params(operation)

        if operation.is_multipart:
            return "multipart", [json_literal(operation.http_method.upper()), path, params], generics
        if operation.helper in _METHOD_ARG_HELPERS:
            return operation.helper, [path, json_literal(operation.http_method), params], generics
        return operation.helper, [path, params], generics

    @staticmethod
    def _iri_generator(
        binding: ResourceBinding,
        imports: Dict[str, Set[str]],
        entry: OperationEntry,
    ) -> List[str]:
        operation: Optional[OperationDescriptor] = binding.iri_operation
        if operation is None:
            return []
        name: str = binding.name
        add_dependency(imports, API_TYPES_FILE, "HydraIri")
        add_dependency(imports, API_TYPES_FILE, "generateIri")
        add_dependency(imports, f"interfaces/{name}", name)
        return [
            "",
            f"export function generate{name}Iri(id: Partial<{name}>|string|number|null): HydraIri<{name}> {{",
            f"{_INDENT}return generateIri<{name}>(id, {json_literal(operation.resolved_path)}) as HydraIri<{name}>;",
            "}",
        ]


def _generics(descriptor: TypeDescriptor) -> str:
    return f"<{descriptor.generics}>" if descriptor.generics else ""


def _generic_params(operation: OperationDescriptor) -> List[str]:
    """
    Generic arguments of a helper call:

        list                    -> [Input, ListParams, "p1"|"p2"?]
        create, update, replace -> [Input, Output, params?]
        read                    -> [Input, params?]
        anything else           -> [Input]
    """
    if operation.generic_params is not None:
        return list(operation.generic_params)

    input_type: str = operation.input_type_ref or "any"
    output_type: str = operation.output_type_ref or input_type
    params: List[str] = (
        [string_literal_union(operation.mandatory_path_params)]
        if operation.mandatory_path_params
        else []
    )
    helper: str = operation.helper
    if helper == "list":
        list_type: str = operation.list_params_type_ref or f"ListParams<{input_type}>"
        return [input_type, list_type, *params]
    if helper in ("create", "update", "replace"):
        return [input_type, output_type, *params]
    if helper == "read":
        return [input_type, *params]
    return [input_type]


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def assemble_file(target_file: str, fragments: List[Fragment]) -> str:
    """
    Final body of *target_file*.

    Returns an empty string when no fragment has content.
    """
    imports: Dict[str, Set[str]] = merge_import_dicts(*(f.imports for f in fragments))
    ordered: List[Fragment] = list(fragments)
    import_block: str = build_import_block(target_file, imports)
    if import_block:
        ordered.append(Fragment(body=import_block, priority=IMPORT_PRIORITY))

    ordered.sort(key=lambda f: -f.priority)
    bodies: List[str] = [f.body.strip("\n") for f in ordered if f.body.strip("\n")]
    body: str = "\n\n".join(bodies).strip("\n")
    return f"{body}\n" if body else ""


def assemble(files: FileSet) -> Dict[str, str]:
    """Logical file -> body for every file with content, in contribution order."""
    rendered: Dict[str, str] = {}
    for target_file, fragments in files.items():
        body: str = assemble_file(target_file, fragments)
        if body:
            rendered[target_file] = body
        else:
            logger.debug("File %s has no content; not produced.", target_file)
    return rendered


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "IMPORT_PRIORITY",
    "TYPE_PRIORITY",
    "ENDPOINT_PRIORITY",
    "TypeScriptComposer",
    "assemble_file",
    "assemble",
]

logger.debug("apigen_ts.templates loaded.")
