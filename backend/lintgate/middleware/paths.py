"""
Path patterns shared by the security and auth stages.

A pattern is either an exact path ("/analyze") or a prefix ending in "*"
("/cache/*" matches "/cache/clear" and "/cache/stats").
"""

from typing import Iterable, Mapping, Optional


def path_matches(pattern: str, path: str) -> bool:
    if pattern.endswith("*"):
        return path.startswith(pattern[:-1])
    return pattern == path


def match_any(patterns: Iterable[str], path: str) -> bool:
    return any(path_matches(pattern, path) for pattern in patterns)


def resolve_scope(path_scopes: Mapping[str, str], path: str) -> Optional[str]:
    """Scope required for `path`: an exact entry wins, then the first matching wildcard."""
    if path in path_scopes:
        return path_scopes[path]
    for pattern, scope in path_scopes.items():
        if pattern.endswith("*") and path_matches(pattern, path):
            return scope
    return None
