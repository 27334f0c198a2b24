# File: apigen_ts/utils.py
"""
APIGen-TS - Utility Functions & Helpers
=========================================
String transformation, TypeScript literal formatting, import-block building
and file I/O helpers used throughout the generation pipeline.

Performance strategy:
- Name conversion functions are decorated with ``@lru_cache(maxsize=None)``;
  the same resource and property names are converted many times per run.
- File writes go through a temporary file plus ``os.replace`` so a crash
  never leaves a half-written ``.ts`` file behind.
"""

from __future__ import annotations

import functools
import json
import logging
import os
import posixpath
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_TS_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z_$][a-zA-Z0-9_$]*$")

_OPENING_BRACKETS: str = "<({["
_CLOSING_BRACKETS: str = ">)}]"


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("app_blog.show")
        'app_blog_show'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_constant_name(name: str) -> str:
    """
    Convert a route name to an UPPER_SNAKE_CASE constant identifier.

    Names whose first character is a digit get a ``COMPAT_`` prefix so the
    result stays a legal identifier.

    Examples:
        >>> to_constant_name("app_blog.show")
        'APP_BLOG_SHOW'
        >>> to_constant_name("404")
        'COMPAT_404'
    """
    constant: str = to_snake_case(name).upper()
    if constant and constant[0].isdigit():
        constant = f"COMPAT_{constant}"
    return constant


@functools.lru_cache(maxsize=None)
def to_kebab_case(name: str) -> str:
    """Convert any string to kebab-case (used in URL paths)."""
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "-".join(w.lower() for w in words)


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for default URI templates.
    """
    if not name:
        return ""

    lower: str = name.lower()

    irregulars: Dict[str, str] = {
        "person": "people",
        "child": "children",
        "man": "men",
        "woman": "women",
        "datum": "data",
        "index": "indices",
        "status": "statuses",
        "address": "addresses",
    }

    if lower in irregulars:
        plural: str = irregulars[lower]
        if name[0].isupper():
            return plural[0].upper() + plural[1:]
        return plural

    if lower.endswith("s") and not lower.endswith("ss"):
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"

    return name + "s"


@functools.lru_cache(maxsize=None)
def lcfirst(name: str) -> str:
    """Lower-case the first character only: ``BlogPost`` -> ``blogPost``."""
    return name[:1].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """Extract individual lowercase words from any casing style."""
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def default_collection_path(short_name: str) -> str:
    """Default URI template for a resource without one: ``BlogPost`` -> ``/blog-posts``."""
    return f"/{to_plural(to_kebab_case(short_name))}"


def class_basename(class_name: str) -> str:
    """Last segment of a backslash-qualified class name."""
    return class_name.rsplit("\\", 1)[-1]


def class_segments(class_name: str) -> List[str]:
    """Non-empty segments of a backslash-qualified class name."""
    return [part for part in class_name.split("\\") if part]


# ---------------------------------------------------------------------------
# TypeScript text helpers
# ---------------------------------------------------------------------------


def is_ts_identifier(name: str) -> bool:
    return bool(_TS_IDENTIFIER_RE.match(name))


def json_literal(value: Any, *, pretty: bool = False) -> str:
    """
    Render *value* as a JSON literal, which is also valid TypeScript.

    Slashes are never escaped and non-ASCII text is kept as is.
    """
    if pretty:
        return json.dumps(value, indent=4, ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False)


def format_property_key(name: str) -> str:
    """Bare identifier when legal, double-quoted otherwise (``"@id"``, ``"hydra:member"``)."""
    if is_ts_identifier(name):
        return name
    return json_literal(name)


def string_literal_union(values: List[str]) -> str:
    """``["a", "b"]`` -> ``"a"|"b"``."""
    return "|".join(json_literal(v) for v in values)


def split_type_union(expression: str) -> List[str]:
    """
    Split a TypeScript type expression on its top-level ``|`` separators.

    Bars nested in generics, object literals, tuples or string literals
    are left alone:

        >>> split_type_union('null|Record<number|string, any>|"a|b"')
        ['null', 'Record<number|string, any>', '"a|b"']
    """
    tokens: List[str] = []
    depth: int = 0
    quote: Optional[str] = None
    current: List[str] = []
    for char in expression:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in ('"', "'"):
            quote = char
        elif char in _OPENING_BRACKETS:
            depth += 1
        elif char in _CLOSING_BRACKETS:
            depth -= 1
        elif char == "|" and depth == 0:
            token: str = "".join(current).strip()
            if token:
                tokens.append(token)
            current = []
            continue
        current.append(char)
    tail: str = "".join(current).strip()
    if tail:
        tokens.append(tail)
    return tokens


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------


def relative_import_path(current_file: str, target_file: str) -> str:
    """
    Module specifier for importing *target_file* from *current_file*.

    Both arguments are logical output paths without extension:

        >>> relative_import_path("endpoint/Post", "interfaces/ApiTypes")
        '../interfaces/ApiTypes'
        >>> relative_import_path("interfaces/Post", "interfaces/Author")
        './Author'
    """
    current_dir: str = posixpath.dirname(current_file) or "."
    target_dir: str = posixpath.dirname(target_file) or "."
    rel_dir: str = posixpath.relpath(target_dir, start=current_dir)
    base: str = posixpath.basename(target_file)
    if rel_dir == ".":
        return f"./{base}"
    if not rel_dir.startswith(".."):
        return f"./{rel_dir}/{base}"
    return f"{rel_dir}/{base}"


def build_import_block(current_file: str, imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated TypeScript import block from a mapping
    of target file -> set of names.

    Imports of *current_file* itself are dropped.

    Example:
        >>> build_import_block("endpoint/Post", {"interfaces/Post": {"Post"}})
        'import { Post } from "../interfaces/Post";'
    """
    lines: List[str] = []
    for target in sorted(imports.keys()):
        if target == current_file:
            continue
        names: List[str] = sorted(imports[target])
        if not names:
            continue
        specifier: str = relative_import_path(current_file, target)
        lines.append(f"import {{ {', '.join(names)} }} from {json_literal(specifier)};")
    return "\n".join(lines)


def merge_import_dicts(
    *dicts: Dict[str, Set[str]],
) -> Dict[str, Set[str]]:
    """Merge multiple import dictionaries into one, unifying sets."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            if module in result:
                result[module] |= set(names)
            else:
                result[module] = set(names)
    return result


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Write *content* to *path* atomically.

    Writes to a temporary file in the target directory, then renames it over
    the destination.  Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    fd: int
    tmp_path: str
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(encoded)
        os.replace(tmp_path, str(path))
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("extract models") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_constant_name",
    "to_kebab_case",
    "to_plural",
    "lcfirst",
    "default_collection_path",
    "class_basename",
    "class_segments",
    "is_ts_identifier",
    "json_literal",
    "format_property_key",
    "string_literal_union",
    "split_type_union",
    "relative_import_path",
    "build_import_block",
    "merge_import_dicts",
    "ensure_directory",
    "write_file",
    "read_file",
    "count_lines",
    "Timer",
]

logger.debug("apigen_ts.utils loaded: %d public symbols.", len(__all__))
