import os
from contextlib import contextmanager
from pathlib import Path

import pytest

from filedeck.services.audit_log import AuditLog
from filedeck.services.file_service import FileService
from filedeck.utils.exceptions import (
    ConflictError,
    FileSystemError,
    NotFoundError,
    PathRejectedError,
    ValidationError,
)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    root = tmp_path / "sandbox"
    root.mkdir()
    return root


@pytest.fixture
def audit(tmp_path: Path) -> AuditLog:
    return AuditLog(tmp_path / "audit.log")


@pytest.fixture
def service(root: Path, audit: AuditLog) -> FileService:
    return FileService(root, audit, max_text_bytes=64)


def audit_lines(audit: AuditLog):
    if not audit.log_path.exists():
        return []
    return [line.split("\t") for line in audit.log_path.read_text(encoding="utf-8").splitlines()]


def test_list_dir_orders_dirs_first(service, root):
    (root / "b.txt").write_text("hello", encoding="utf-8")
    (root / "A.txt").write_text("", encoding="utf-8")
    (root / "zdir").mkdir()

    resolved, entries = service.list_dir("")
    assert resolved.relative_path == ""
    assert [e["name"] for e in entries] == ["zdir", "A.txt", "b.txt"]

    zdir, _, b_txt = entries
    assert zdir["type"] == "dir" and zdir["size"] is None
    assert b_txt["type"] == "file" and b_txt["size"] == 5
    assert b_txt["mtime"].endswith("Z")


def test_list_dir_skips_entries_removed_during_listing(service, root, monkeypatch):
    (root / "kept.txt").write_text("k", encoding="utf-8")

    class RemovedEntry:
        name = "gone.txt"

        def stat(self, follow_symlinks=True):
            raise FileNotFoundError(2, "No such file or directory")

        def is_dir(self):
            return False

    real_scandir = os.scandir

    @contextmanager
    def scandir_with_removed_entry(path):
        with real_scandir(path) as it:
            yield list(it) + [RemovedEntry()]

    monkeypatch.setattr(os, "scandir", scandir_with_removed_entry)
    _, entries = service.list_dir("")
    assert [e["name"] for e in entries] == ["kept.txt"]


def test_list_dir_dangling_symlink(service, root):
    os.symlink(root / "missing-target", root / "dangling")

    _, entries = service.list_dir("")
    assert [(e["name"], e["type"]) for e in entries] == [("dangling", "file")]


def test_list_dir_missing_directory(service):
    with pytest.raises(NotFoundError):
        service.list_dir("nope")


def test_list_dir_on_a_file(service, root):
    (root / "f.txt").write_text("x", encoding="utf-8")
    with pytest.raises(FileSystemError) as exc_info:
        service.list_dir("f.txt")
    assert str(exc_info.value) == "Failed to list directory"


def test_create_folder_and_file(service, root, audit):
    service.create_folder("admin", "", "docs")
    service.create_file("admin", "docs", "notes.txt")

    assert (root / "docs").is_dir()
    assert (root / "docs" / "notes.txt").read_text(encoding="utf-8") == ""
    assert [line[1:] for line in audit_lines(audit)] == [
        ["admin", "create_folder", "docs"],
        ["admin", "create_file", "docs/notes.txt"],
    ]


def test_create_file_never_truncates(service, root):
    (root / "keep.txt").write_text("precious", encoding="utf-8")

    with pytest.raises(ConflictError):
        service.create_file("admin", "", "keep.txt")
    assert (root / "keep.txt").read_text(encoding="utf-8") == "precious"


def test_create_folder_conflict(service, root):
    (root / "docs").mkdir()
    with pytest.raises(ConflictError):
        service.create_folder("admin", "", "docs")


@pytest.mark.parametrize("name", ["..", "../escape", "a/b", ""])
def test_create_rejects_smuggled_names(service, name, tmp_path):
    with pytest.raises(PathRejectedError):
        service.create_file("admin", "", name)
    assert not (tmp_path / "escape").exists()


def test_rename_within_parent(service, root, audit):
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("data", encoding="utf-8")

    renamed = service.rename("admin", "docs/a.txt", "b.txt")

    assert renamed.relative_path == "docs/b.txt"
    assert not (root / "docs" / "a.txt").exists()
    assert (root / "docs" / "b.txt").read_text(encoding="utf-8") == "data"
    assert audit_lines(audit)[-1][1:] == ["admin", "rename", "docs/a.txt -> docs/b.txt"]


def test_rename_refuses_existing_target(service, root):
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / "b.txt").write_text("b", encoding="utf-8")

    with pytest.raises(ConflictError):
        service.rename("admin", "a.txt", "b.txt")
    assert (root / "a.txt").read_text(encoding="utf-8") == "a"
    assert (root / "b.txt").read_text(encoding="utf-8") == "b"


def test_rename_rejects_traversal_and_root(service, root):
    (root / "a.txt").write_text("a", encoding="utf-8")

    with pytest.raises(PathRejectedError) as exc_info:
        service.rename("admin", "a.txt", "../a.txt")
    assert str(exc_info.value) == "Invalid new path"
    with pytest.raises(PathRejectedError):
        service.rename("admin", "", "x")
    assert (root / "a.txt").exists()


def test_rename_missing_source(service):
    with pytest.raises(FileSystemError):
        service.rename("admin", "ghost.txt", "other.txt")


def test_delete_recursive_and_idempotent(service, root, audit):
    (root / "d" / "e").mkdir(parents=True)
    (root / "d" / "e" / "f.txt").write_text("x", encoding="utf-8")

    service.delete("admin", "d")
    assert not (root / "d").exists()

    service.delete("admin", "d")
    assert [line[2] for line in audit_lines(audit)] == ["delete", "delete"]


def test_delete_root_is_rejected(service, root):
    with pytest.raises(PathRejectedError):
        service.delete("admin", "")
    with pytest.raises(PathRejectedError):
        service.delete("admin", "a/..")
    assert root.is_dir()


def test_write_then_read_round_trip(service, root):
    content = "line one\r\nline two\nünïcode ✓"
    service.write_text("admin", "note.txt", content)

    assert service.read_text("note.txt") == content
    assert (root / "note.txt").read_bytes() == content.encode("utf-8")


def test_write_overwrites_in_full(service, root):
    (root / "note.txt").write_text("a much longer original body", encoding="utf-8")
    service.write_text("admin", "note.txt", "short")
    assert (root / "note.txt").read_text(encoding="utf-8") == "short"


def test_write_is_audited_as_edit(service, audit):
    service.write_text("admin", "note.txt", "x")
    assert audit_lines(audit)[-1][1:] == ["admin", "edit", "note.txt"]


def test_write_rejects_oversized_and_non_text(service):
    with pytest.raises(ValidationError):
        service.write_text("admin", "big.txt", "x" * 65)
    with pytest.raises(ValidationError):
        service.write_text("admin", "n.txt", 42)


def test_write_into_missing_directory(service):
    with pytest.raises(FileSystemError) as exc_info:
        service.write_text("admin", "missing/dir/file.txt", "x")
    assert str(exc_info.value) == "Failed to save"


def test_read_refuses_large_file_before_reading(service, root, monkeypatch):
    (root / "big.txt").write_bytes(b"x" * 65)

    def fail_open(*args, **kwargs):
        raise AssertionError("file should not be opened")

    monkeypatch.setattr("filedeck.services.file_service.open", fail_open, raising=False)
    with pytest.raises(ValidationError) as exc_info:
        service.read_text("big.txt")
    assert str(exc_info.value) == "File too large to edit"


def test_read_missing_and_directory(service, root):
    (root / "dir").mkdir()
    with pytest.raises(NotFoundError):
        service.read_text("nope.txt")
    with pytest.raises(NotFoundError):
        service.read_text("dir")


def test_read_rejects_binary(service, root):
    (root / "bin.dat").write_bytes(b"\xff\xfe\x00\x01")
    with pytest.raises(ValidationError):
        service.read_text("bin.dat")


def test_audit_fields_cannot_break_lines(audit):
    audit.record("admin", "create_file", "odd\tname\nwith breaks")

    lines = audit.log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    timestamp, actor, action, target = lines[0].split("\t")
    assert timestamp.endswith("Z")
    assert (actor, action, target) == ("admin", "create_file", "odd name with breaks")


def test_audit_failure_does_not_raise(tmp_path):
    audit = AuditLog(tmp_path / "missing-dir" / "audit.log")
    audit.record("admin", "login")
