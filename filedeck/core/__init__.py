"""Core sandboxing primitives for FileDeck"""

from .paths import ResolvedPath, resolve_path, resolve_child, validate_name

__all__ = [
    "ResolvedPath",
    "resolve_path",
    "resolve_child",
    "validate_name",
]
