# File: apigen_ts/linker.py
"""
APIGen-TS - Cross-Reference Linker
====================================
Adds parent -> child endpoint back-references.

A binding whose URI variables link to another class (``/posts/{postId}/
comments`` links ``Comment`` to ``Post`` via ``Post.comments``) is exposed
on the parent's first binding that exposes an operation as
``post.comments``. Bindings without exposed operations are never linked.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from apigen_ts.registry import (
    ChildEndpoint,
    OperationEntry,
    OperationRegistry,
    ResourceBinding,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.linker")


def _exposed_binding(entry: OperationEntry) -> Optional[ResourceBinding]:
    for binding in entry.bindings.values():
        if binding.operations:
            return binding
    return None


def link_child_endpoints(operations: OperationRegistry) -> int:
    """
    Record ``child_endpoints`` on parent bindings.

    Linking the same parent property twice is a no-op.  Returns the number
    of links added.
    """
    added: int = 0
    for entry in operations:
        for binding in entry.bindings.values():
            if not binding.operations:
                if binding.parent_links:
                    logger.debug("%s exposes no operation; not linked.", binding.symbol)
                continue
            for link in binding.parent_links:
                if not link.from_class or not link.from_property:
                    logger.warning(
                        "Link '%s' of %s names no parent property; skipped.",
                        link.parameter,
                        binding.symbol,
                    )
                    continue

                parent_class: str = link.from_class.lstrip("\\")
                target: Optional[OperationEntry] = operations.get(parent_class)
                parent_binding: Optional[ResourceBinding] = (
                    _exposed_binding(target) if target is not None else None
                )
                if target is None or parent_binding is None:
                    logger.warning(
                        "Parent %s of %s has no endpoint; link skipped.",
                        parent_class,
                        binding.symbol,
                    )
                    continue

                if link.from_property in parent_binding.child_endpoints:
                    continue

                parent_binding.child_endpoints[link.from_property] = ChildEndpoint(
                    source_class=entry.source_class,
                    symbol=binding.symbol,
                )
                target.add_dependency(entry.target_file, binding.symbol)
                added += 1
                logger.debug(
                    "Linked %s.%s -> %s.",
                    parent_binding.symbol,
                    link.from_property,
                    binding.symbol,
                )
    return added


__all__: List[str] = ["link_child_endpoints"]

logger.debug("apigen_ts.linker loaded.")
