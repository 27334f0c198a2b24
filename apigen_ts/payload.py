# File: apigen_ts/payload.py
"""
APIGen-TS - Payload Shaper
============================
Synthesizes ``prepare<Type>Payload`` helpers for persistent models.

The helper returns a shallow copy of a partial entity in which every
relation field (restricted by the optional include / exclude lists) is
replaced by its identifier reference:

    * related resources with a ``read`` or ``list`` endpoint go through
      ``generate<Type>Iri``,
    * other persistent relations go through their own
      ``prepare<Type>Payload``,
    * anything else is left as is.

Without relation fields the helper is the identity function.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from apigen_ts.registry import (
    GenerationState,
    OperationEntry,
    PropertyDescriptor,
    TypeDescriptor,
    TypeKind,
    add_dependency,
)
from apigen_ts.utils import json_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.payload")

PAYLOAD_PRIORITY: int = -100


class PayloadShaper:
    """Adds one ``prepare*Payload`` fragment per persistent interface type."""

    def __init__(self, state: GenerationState) -> None:
        self._state: GenerationState = state

    def shape_all(self) -> int:
        count: int = 0
        for descriptor in self._state.types:
            if descriptor.kind != TypeKind.INTERFACE or not descriptor.is_persistent:
                continue
            if not descriptor.is_rendered:
                continue
            body, imports = self.render(descriptor)
            self._state.files.add_body(
                descriptor.target_file,  # type: ignore[arg-type]
                body,
                priority=PAYLOAD_PRIORITY,
                imports=imports,
            )
            count += 1
        logger.info("Added %d payload helper(s).", count)
        return count

    def render(self, descriptor: TypeDescriptor) -> Tuple[str, Dict[str, Set[str]]]:
        name: str = descriptor.name
        imports: Dict[str, Set[str]] = {}
        relations: List[Tuple[PropertyDescriptor, str]] = []
        for prop in descriptor.properties.values():
            converter: Optional[str] = self._converter(prop, imports)
            if converter is not None:
                relations.append((prop, converter))

        lines: List[str] = [
            f"export function prepare{name}Payload(entity: Partial<{name}>, "
            f"excludedFields?: Array<keyof {name}>, fields?: Array<keyof {name}>): Partial<{name}> {{"
        ]
        if relations:
            all_fields: str = json_literal([prop.name for prop, _ in relations])
            lines.extend([
                f"    const allFields: Array<keyof {name}> = {all_fields};",
                "    let fieldsToUse = (fields || allFields);",
                "    if (excludedFields) {",
                "        fieldsToUse = fieldsToUse.filter(field => !excludedFields.includes(field));",
                "    }",
                "    if (!fieldsToUse.length) {",
                "        return entity;",
                "    }",
                "    entity = {...entity};",
            ])
            for prop, converter in relations:
                key: str = json_literal(prop.name)
                lines.append(f"    if (fieldsToUse.includes({key}) && {key} in entity && entity[{key}]) {{")
                if prop.is_collection:
                    lines.append(f"        entity[{key}] = entity[{key}].map(item => {converter}(item));")
                else:
                    lines.append(f"        entity[{key}] = {converter}(entity[{key}]);")
                lines.append("    }")
        lines.append("    return entity;")
        lines.append("}")
        return "\n".join(lines), imports

    def _converter(self, prop: PropertyDescriptor, imports: Dict[str, Set[str]]) -> Optional[str]:
        if not prop.related_type_ref:
            return None
        target: Optional[TypeDescriptor] = self._state.types.get(prop.related_type_ref)
        if target is None or not target.target_file:
            return None

        entry: Optional[OperationEntry] = (
            self._state.operations.get(target.source_class) if target.source_class else None
        )
        if target.is_addressable and entry is not None and entry.has_iri_generator:
            generator: str = f"generate{target.name}Iri"
            add_dependency(imports, entry.target_file, generator)
            return generator

        if target.is_persistent:
            prepare: str = f"prepare{target.name}Payload"
            add_dependency(imports, target.target_file, prepare)
            return prepare

        logger.debug(
            "Relation %s -> %s has neither an identifier generator nor a payload helper; left as is.",
            prop.name,
            target.name,
        )
        return None


__all__: List[str] = ["PAYLOAD_PRIORITY", "PayloadShaper"]

logger.debug("apigen_ts.payload loaded.")
