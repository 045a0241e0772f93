"""
Sandbox path resolution.

Every filesystem touch in FileDeck goes through a ResolvedPath, and
ResolvedPath values are only built here, after the containment check.
Resolution is purely lexical: `.` and `..` are collapsed, symlinks are not
followed, and nothing on disk is read.
"""

import os
import posixpath
from dataclasses import dataclass
from typing import Optional

from ..utils.exceptions import PathRejectedError

_FORBIDDEN_NAME_CHARS = ("/", "\\", "\0")


@dataclass(frozen=True)
class ResolvedPath:
    """A path proven to lie inside the root boundary."""

    absolute_path: str
    relative_path: str  # forward slashes, "" for the root itself

    @property
    def is_root(self) -> bool:
        return self.relative_path == ""

    @property
    def parent_relative(self) -> str:
        return posixpath.dirname(self.relative_path)


def resolve_path(root: str, raw_relative: Optional[str]) -> ResolvedPath:
    """
    Map a user-supplied relative path onto `root`.

    Raises PathRejectedError when the result would leave the root,
    including absolute inputs that point elsewhere.
    """
    root_abs = os.path.abspath(str(root))
    safe_rel = (raw_relative or "").replace("\0", "")
    target = os.path.normpath(os.path.join(root_abs, safe_rel))

    try:
        relative = os.path.relpath(target, root_abs)
    except ValueError:
        # Different drive on Windows
        raise PathRejectedError()

    if relative == os.curdir:
        relative = ""
    relative = relative.replace(os.sep, "/")

    first_segment = relative.split("/", 1)[0]
    if first_segment == os.pardir or os.path.isabs(relative):
        raise PathRejectedError()

    return ResolvedPath(absolute_path=target, relative_path=relative)


def validate_name(name: Optional[str], message: str = "Invalid path") -> str:
    """A name must be exactly one path segment."""
    if not name or name in (os.curdir, os.pardir):
        raise PathRejectedError(message)
    if any(ch in name for ch in _FORBIDDEN_NAME_CHARS):
        raise PathRejectedError(message)
    return name


def resolve_child(
    root: str,
    parent_relative: Optional[str],
    name: Optional[str],
    message: str = "Invalid path",
) -> ResolvedPath:
    """Resolve `parent_relative/name` jointly so the name cannot smuggle a traversal."""
    validate_name(name, message)
    parent = (parent_relative or "").replace("\0", "")
    try:
        return resolve_path(root, posixpath.join(parent, name))
    except PathRejectedError:
        raise PathRejectedError(message)
