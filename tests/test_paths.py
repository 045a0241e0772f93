import os

import pytest

from filedeck.core.paths import resolve_child, resolve_path
from filedeck.utils.exceptions import PathRejectedError, ValidationError


@pytest.fixture
def root(tmp_path):
    return str(tmp_path / "sandbox")


def test_empty_input_resolves_to_root(root):
    resolved = resolve_path(root, "")
    assert resolved.absolute_path == os.path.abspath(root)
    assert resolved.relative_path == ""
    assert resolved.is_root

    assert resolve_path(root, None).absolute_path == os.path.abspath(root)
    assert resolve_path(root, ".").is_root


@pytest.mark.parametrize(
    "raw",
    [
        "..",
        "../x",
        "../../etc/passwd",
        "a/../../b",
        "a/b/../../../c",
        "/etc/passwd",
        "./..",
        "..\0",
    ],
)
def test_escaping_inputs_are_rejected(root, raw):
    with pytest.raises(PathRejectedError) as exc_info:
        resolve_path(root, raw)
    # Rejections are validation errors and never echo a filesystem location
    assert isinstance(exc_info.value, ValidationError)
    assert str(exc_info.value) == "Invalid path"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("foo..bar", "foo..bar"),
        ("..foo", "..foo"),
        ("docs/readme.txt", "docs/readme.txt"),
        ("docs/./readme.txt", "docs/readme.txt"),
        ("docs/sub/../readme.txt", "docs/readme.txt"),
        ("docs//readme.txt", "docs/readme.txt"),
        ("docs/", "docs"),
    ],
)
def test_inner_paths_stay_inside_root(root, raw, expected):
    resolved = resolve_path(root, raw)
    assert resolved.relative_path == expected
    root_abs = os.path.abspath(root)
    assert resolved.absolute_path.startswith(root_abs + os.sep)


def test_null_bytes_are_stripped(root):
    resolved = resolve_path(root, "no\0tes.txt")
    assert resolved.relative_path == "notes.txt"


def test_round_trip_is_idempotent(root):
    first = resolve_path(root, "a/./b/../c/d.txt")
    second = resolve_path(root, first.relative_path)
    assert second == first


def test_absolute_input_inside_root_is_accepted(root):
    inside = os.path.join(os.path.abspath(root), "inner", "file.txt")
    resolved = resolve_path(root, inside)
    assert resolved.relative_path == "inner/file.txt"


def test_resolved_path_helpers(root):
    resolved = resolve_path(root, "a/b/c.txt")
    assert not resolved.is_root
    assert resolved.parent_relative == "a/b"


@pytest.mark.parametrize("name", ["", ".", "..", "a/b", "..\\x", "bad\0name", "../etc"])
def test_resolve_child_rejects_bad_names(root, name):
    with pytest.raises(PathRejectedError):
        resolve_child(root, "docs", name)


def test_resolve_child_joins_parent_and_name(root):
    resolved = resolve_child(root, "docs", "notes..txt")
    assert resolved.relative_path == "docs/notes..txt"


def test_resolve_child_rejects_escaping_parent(root):
    with pytest.raises(PathRejectedError) as exc_info:
        resolve_child(root, "../outside", "x.txt", "Invalid new path")
    assert str(exc_info.value) == "Invalid new path"
