# File: apigen_ts/routes.py
"""
APIGen-TS - Route Composer
============================
Emits the ``routes`` file: one ``RouteInterface`` constant per named route
and one ``LocaleAwareRouteInterface`` constant per locale route family.

Route names starting with a reserved prefix (``_``, ``api_`` by default)
are skipped.  Placeholders such as ``{page<\\d+>}`` are reduced to
``{page}``; a variable is required unless the route declares a default
for it.

A family is formed by routes named ``<base>.<locale>`` whose ``_locale``
requirement equals the suffix, e.g. ``blog.en`` / ``blog.fr``.  The family
constant carries the default-locale route's config (else the first
member's) under the base name plus a ``paths`` locale -> path mapping.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from apigen_ts.models import GenerationConfig, RouteDefinition
from apigen_ts.providers import RouteProvider
from apigen_ts.registry import FileSet
from apigen_ts.utils import json_literal, to_constant_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("apigen_ts.routes")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ROUTES_FILE: str = "routes"
ROUTER_FILE: str = "Router"

_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\{(.+?)\}")
_REQUIREMENT_RE: re.Pattern[str] = re.compile(r"^(.+?)<(.+?)>$")
_LOCALE_SUFFIX_RE: re.Pattern[str] = re.compile(r"^(?P<route>.+?)\.(?P<locale>\w{2,3}(?:_\w{2,3})?)$")


# ---------------------------------------------------------------------------
# Hook event
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RouteHookEvent:
    """
    Passed to the route hook once per non-reserved route.

    The hook may rename the constant, reshape ``config`` or set
    ``should_generate`` to False to drop the route.
    """

    name: str
    route: RouteDefinition
    typescript_name: str
    config: Dict[str, Any] = field(default_factory=dict)
    should_generate: bool = True

    def skip_generation(self, skip: bool = True) -> None:
        self.should_generate = not skip


RouteHook = Callable[[RouteHookEvent], None]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def build_route_config(route: RouteDefinition) -> Dict[str, Any]:
    """``{name, path, vars, defaults, meta}`` for one route."""
    variables: Dict[str, Dict[str, bool]] = {}
    defaults: Dict[str, Any] = {}

    def _replace(match: re.Match[str]) -> str:
        name: str = match.group(1)
        requirement: Optional[re.Match[str]] = _REQUIREMENT_RE.match(name)
        if requirement is not None:
            name = requirement.group(1)
        if name in route.defaults:
            defaults[name] = route.defaults[name]
        variables[name] = {"isRequired": name not in route.defaults}
        return "{" + name + "}"

    path: str = _PLACEHOLDER_RE.sub(_replace, route.path)
    return {
        "name": route.name,
        "path": path,
        "vars": variables,
        "defaults": defaults,
        "meta": {},
    }


def locale_family(route: RouteDefinition) -> Optional[Tuple[str, str]]:
    """``(base, locale)`` when *route* belongs to a locale family."""
    match: Optional[re.Match[str]] = _LOCALE_SUFFIX_RE.match(route.name)
    if match is None:
        return None
    if route.requirements.get("_locale") != match.group("locale"):
        return None
    return match.group("route"), match.group("locale")


# ---------------------------------------------------------------------------
# RouteComposer
# ---------------------------------------------------------------------------


class RouteComposer:
    """Builds the ``routes`` fragment from a ``RouteProvider``."""

    def __init__(
        self,
        provider: RouteProvider,
        config: GenerationConfig,
        hook: Optional[RouteHook] = None,
    ) -> None:
        self._provider: RouteProvider = provider
        self._config: GenerationConfig = config
        self._hook: Optional[RouteHook] = hook
        self._used_names: Set[str] = set()

    def is_reserved(self, name: str) -> bool:
        return any(name.startswith(prefix) for prefix in self._config.reserved_route_prefixes)

    def compose(self, files: FileSet) -> int:
        """Add the ``routes`` fragment to *files*; returns the number of constants."""
        self._used_names = set()
        lines: List[str] = []
        families: Dict[str, Dict[str, Dict[str, Any]]] = {}

        for route in self._provider.list_routes():
            if self.is_reserved(route.name):
                logger.debug("Route %s is reserved; skipped.", route.name)
                continue

            event = RouteHookEvent(
                name=route.name,
                route=route,
                typescript_name=to_constant_name(route.name),
                config=build_route_config(route),
            )
            if self._hook is not None:
                self._hook(event)
            if not event.should_generate:
                logger.debug("Route %s vetoed by hook.", route.name)
                continue

            family: Optional[Tuple[str, str]] = locale_family(route)
            if family is not None:
                families.setdefault(family[0], {})[family[1]] = event.config

            constant: str = self._unique_name(event.typescript_name, route.name)
            lines.append(f"export const {constant}: RouteInterface = {json_literal(event.config)};")

        for base, locales in families.items():
            merged: Dict[str, Any] = copy.deepcopy(
                locales.get(self._config.default_locale) or next(iter(locales.values()))
            )
            merged["name"] = base
            merged["paths"] = {locale: config["path"] for locale, config in locales.items()}
            constant = self._unique_name(to_constant_name(base), base)
            lines.append(
                f"export const {constant}: LocaleAwareRouteInterface = {json_literal(merged)};"
            )

        if not lines:
            logger.info("No routes to generate.")
            return 0

        files.add_body(
            ROUTES_FILE,
            "\n".join(lines),
            imports={ROUTER_FILE: {"RouteInterface", "LocaleAwareRouteInterface"}},
        )
        logger.info(
            "Composed %d route constant(s), %d locale famil%s.",
            len(lines),
            len(families),
            "y" if len(families) == 1 else "ies",
        )
        return len(lines)

    def _unique_name(self, constant: str, route_name: str) -> str:
        candidate: str = constant
        suffix: int = 2
        while candidate in self._used_names:
            candidate = f"{constant}_{suffix}"
            suffix += 1
        if candidate != constant:
            logger.warning(
                "Route %s maps to constant %s which is already taken; emitted as %s.",
                route_name,
                constant,
                candidate,
            )
        self._used_names.add(candidate)
        return candidate


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ROUTES_FILE",
    "RouteHookEvent",
    "RouteHook",
    "build_route_config",
    "locale_family",
    "RouteComposer",
]

logger.debug("apigen_ts.routes loaded.")
