"""Route access policy.

An ordered, immutable table of (pattern, access) rules. First match wins;
a path no rule matches requires authentication.

Patterns are either an exact path ("/api/health") or a prefix ending in
"/**" ("/api/auth/**"), which matches the prefix itself and everything
below it.
"""

import enum
from dataclasses import dataclass
from typing import Iterable


class Access(str, enum.Enum):
    PUBLIC = "public"
    REQUIRES_AUTH = "requires_auth"


@dataclass(frozen=True)
class RouteRule:
    pattern: str
    access: Access

    def matches(self, path: str) -> bool:
        if self.pattern.endswith("/**"):
            prefix = self.pattern[:-3]
            return path == prefix or path.startswith(prefix + "/")
        return path == self.pattern


class RoutePolicy:
    """Classify request paths. Built once at startup, read-only afterwards."""

    def __init__(self, rules: Iterable[RouteRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    def classify(self, path: str) -> Access:
        for rule in self._rules:
            if rule.matches(path):
                return rule.access
        return Access.REQUIRES_AUTH


DEFAULT_RULES = (
    RouteRule("/api/auth/**", Access.PUBLIC),
    RouteRule("/api/test/**", Access.PUBLIC),
    RouteRule("/api/health", Access.PUBLIC),
    RouteRule("/docs/**", Access.PUBLIC),
    RouteRule("/redoc/**", Access.PUBLIC),
    RouteRule("/openapi.json", Access.PUBLIC),
)


def default_policy() -> RoutePolicy:
    return RoutePolicy(DEFAULT_RULES)
