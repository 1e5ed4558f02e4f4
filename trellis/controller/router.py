"""
Controller Router - ordered route table.

Path templates accept ``:name`` and ``{name}`` parameter segments.
Matching scans routes in mount order and the first match wins, so mount
order decides precedence between overlapping templates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Pattern, Tuple

from ..faults import ConfigurationError


_PARAM_RE = re.compile(r"^(?::(?P<colon>[A-Za-z_][A-Za-z0-9_]*)|\{(?P<brace>[A-Za-z_][A-Za-z0-9_]*)\})$")


def compile_path(template: str) -> Tuple[Pattern[str], Tuple[str, ...]]:
    """
    Compile a path template into a regex and its parameter names.

    Raises:
        ConfigurationError: On malformed or repeated parameter names
    """
    if not template.startswith("/"):
        raise ConfigurationError(f"Path template must start with '/': {template!r}", code="INVALID_PATH")

    names: List[str] = []
    parts: List[str] = []
    for segment in template.strip("/").split("/"):
        if not segment:
            continue
        m = _PARAM_RE.match(segment)
        if m:
            name = m.group("colon") or m.group("brace")
            if name in names:
                raise ConfigurationError(
                    f"Parameter '{name}' appears twice in {template!r}", code="INVALID_PATH"
                )
            names.append(name)
            parts.append(f"(?P<{name}>[^/]+)")
        elif ":" == segment[0] or "{" in segment or "}" in segment:
            raise ConfigurationError(f"Malformed path segment {segment!r} in {template!r}", code="INVALID_PATH")
        else:
            parts.append(re.escape(segment))

    pattern = "^/" + "/".join(parts) + "$"
    return re.compile(pattern), tuple(names)


def path_signature(template: str) -> str:
    """
    Shape of a template with parameter names erased.

    Two templates with the same signature match exactly the same paths:
    ``/users/:id/``, ``/users/{id}`` and ``/users/{user_id}`` all give
    ``/users/:``.
    """
    segments = [":" if _PARAM_RE.match(s) else s for s in template.split("/") if s]
    return "/" + "/".join(segments)


@dataclass
class MountedRoute:
    """A route registered on the router."""
    method: str
    path: str
    endpoint: Callable[..., Awaitable[Any]]
    pattern: Pattern[str]
    param_names: Tuple[str, ...]
    controller: str = ""
    handler_name: str = ""


@dataclass
class RouteMatch:
    """Result of a successful route match."""
    route: MountedRoute
    params: Dict[str, str] = field(default_factory=dict)


class Router:
    """
    Ordered, method-aware route table.

    Trailing slashes on request paths are ignored, except for the root.
    """

    def __init__(self):
        self._routes: List[MountedRoute] = []
        self._by_method: Dict[str, List[MountedRoute]] = {}

    def add(
        self,
        method: str,
        path: str,
        endpoint: Callable[..., Awaitable[Any]],
        *,
        controller: str = "",
        handler_name: str = "",
    ) -> MountedRoute:
        method = method.upper()
        pattern, names = compile_path(path)
        route = MountedRoute(
            method=method,
            path=path,
            endpoint=endpoint,
            pattern=pattern,
            param_names=names,
            controller=controller,
            handler_name=handler_name,
        )
        self._routes.append(route)
        self._by_method.setdefault(method, []).append(route)
        return route

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """Return the first mounted route matching (method, path), or None."""
        candidates = self._by_method.get(method.upper())
        if not candidates:
            return None

        norm_path = path.rstrip("/") or "/"
        for route in candidates:
            m = route.pattern.match(norm_path)
            if m is not None:
                return RouteMatch(route=route, params=m.groupdict())
        return None

    def has_route(self, method: str, path: str) -> bool:
        return self.match(method, path) is not None

    @property
    def routes(self) -> Tuple[MountedRoute, ...]:
        return tuple(self._routes)

    def describe(self) -> List[Dict[str, Any]]:
        """Mounted routes, in mount order."""
        return [
            {
                "method": route.method,
                "path": route.path,
                "controller": route.controller,
                "handler": route.handler_name,
            }
            for route in self._routes
        ]

    def __len__(self) -> int:
        return len(self._routes)
