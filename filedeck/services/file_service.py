"""
File operations inside the sandbox root.

Each operation resolves its path(s) first, touches the filesystem only
through the resulting ResolvedPath, and records mutating actions in the
audit log. OS errors are translated at this boundary: clients get a fixed
message, the log gets the detail.
"""

import os
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from filedeck.core.paths import ResolvedPath, resolve_child, resolve_path
from filedeck.services.audit_log import AuditLog
from filedeck.utils.exceptions import (
    ConflictError,
    FileSystemError,
    NotFoundError,
    PathRejectedError,
    ValidationError,
)
from filedeck.utils.logger import get_logger

logger = get_logger(__name__)


def _iso_mtime(ts: float) -> str:
    return (
        datetime.fromtimestamp(ts, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class FileService:
    """List, create, rename, delete, read and write inside one root directory."""

    def __init__(self, root_path: Path, audit_log: AuditLog, max_text_bytes: int = 2 * 1024 * 1024):
        self.root_path = str(root_path)
        self.audit_log = audit_log
        self.max_text_bytes = max_text_bytes

    def resolve(self, raw_path: Optional[str]) -> ResolvedPath:
        return resolve_path(self.root_path, raw_path)

    def list_dir(self, raw_path: Optional[str]) -> Tuple[ResolvedPath, List[Dict[str, Any]]]:
        """Immediate children of a directory, directories first"""
        resolved = self.resolve(raw_path)
        entries: List[Dict[str, Any]] = []
        try:
            with os.scandir(resolved.absolute_path) as it:
                for entry in it:
                    try:
                        st = entry.stat()
                        is_dir = entry.is_dir()
                    except OSError:
                        # Dangling symlink: describe the link itself
                        try:
                            st = entry.stat(follow_symlinks=False)
                        except FileNotFoundError:
                            # Removed since scandir saw it
                            continue
                        is_dir = False
                    entries.append({
                        "name": entry.name,
                        "type": "dir" if is_dir else "file",
                        "size": None if is_dir else int(st.st_size),
                        "mtime": _iso_mtime(st.st_mtime),
                    })
        except FileNotFoundError:
            raise NotFoundError("Directory not found")
        except OSError as e:
            logger.error("Failed to list directory", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to list directory")

        entries.sort(key=lambda item: (item["type"] != "dir", item["name"].lower()))
        return resolved, entries

    def create_folder(self, actor: str, parent: Optional[str], name: Optional[str]) -> ResolvedPath:
        resolved = resolve_child(self.root_path, parent, name)
        try:
            os.mkdir(resolved.absolute_path)
        except FileExistsError:
            raise ConflictError("Folder already exists")
        except OSError as e:
            logger.error("Failed to create folder", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to create folder")

        self.audit_log.record(actor, "create_folder", resolved.relative_path)
        return resolved

    def create_file(self, actor: str, parent: Optional[str], name: Optional[str]) -> ResolvedPath:
        """Create an empty file; never truncates an existing one"""
        resolved = resolve_child(self.root_path, parent, name)
        try:
            with open(resolved.absolute_path, "x", encoding="utf-8"):
                pass
        except FileExistsError:
            raise ConflictError("File already exists")
        except OSError as e:
            logger.error("Failed to create file", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to create file")

        self.audit_log.record(actor, "create_file", resolved.relative_path)
        return resolved

    def rename(self, actor: str, raw_path: Optional[str], new_name: Optional[str]) -> ResolvedPath:
        """Rename within the same parent directory"""
        current = self.resolve(raw_path)
        if current.is_root:
            raise PathRejectedError()
        renamed = resolve_child(self.root_path, current.parent_relative, new_name, "Invalid new path")

        if renamed.absolute_path == current.absolute_path:
            return renamed
        if os.path.lexists(renamed.absolute_path):
            raise ConflictError("Target already exists")

        try:
            os.rename(current.absolute_path, renamed.absolute_path)
        except OSError as e:
            logger.error(
                "Failed to rename",
                path=current.relative_path,
                new_path=renamed.relative_path,
                error=str(e),
            )
            raise FileSystemError("Failed to rename")

        self.audit_log.record(actor, "rename", f"{current.relative_path} -> {renamed.relative_path}")
        return renamed

    def delete(self, actor: str, raw_path: Optional[str]) -> ResolvedPath:
        """Recursive delete. A path that is already gone counts as deleted."""
        resolved = self.resolve(raw_path)
        if resolved.is_root:
            raise PathRejectedError()

        target = resolved.absolute_path
        try:
            if os.path.isdir(target) and not os.path.islink(target):
                shutil.rmtree(target)
            else:
                os.remove(target)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Failed to delete", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to delete")

        self.audit_log.record(actor, "delete", resolved.relative_path)
        return resolved

    def read_text(self, raw_path: Optional[str]) -> str:
        """Return file content as text; oversized files are refused before reading"""
        resolved = self.resolve(raw_path)
        try:
            st = os.stat(resolved.absolute_path)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError("File not found")
        except OSError as e:
            logger.error("Failed to stat file", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to read file")

        if not stat.S_ISREG(st.st_mode):
            raise NotFoundError("File not found")
        if st.st_size > self.max_text_bytes:
            raise ValidationError("File too large to edit")

        try:
            with open(resolved.absolute_path, "rb") as f:
                data = f.read(self.max_text_bytes + 1)
        except FileNotFoundError:
            raise NotFoundError("File not found")
        except OSError as e:
            logger.error("Failed to read file", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to read file")

        if len(data) > self.max_text_bytes:
            raise ValidationError("File too large to edit")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("File is not valid UTF-8 text")

    def write_text(self, actor: str, raw_path: Optional[str], content: str) -> ResolvedPath:
        """Overwrite a file with `content` in full"""
        resolved = self.resolve(raw_path)
        if resolved.is_root:
            raise PathRejectedError()
        if not isinstance(content, str):
            raise ValidationError("Invalid content")
        try:
            data = content.encode("utf-8")
        except UnicodeEncodeError:
            raise ValidationError("Invalid content")
        if len(data) > self.max_text_bytes:
            raise ValidationError("Content too large")

        try:
            with open(resolved.absolute_path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Failed to save file", path=resolved.relative_path, error=str(e))
            raise FileSystemError("Failed to save")

        self.audit_log.record(actor, "edit", resolved.relative_path)
        return resolved
