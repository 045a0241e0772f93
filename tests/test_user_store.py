import json
from pathlib import Path

import pytest

from filedeck.auth.user_auth import verify_password
from filedeck.models.user import User
from filedeck.services.user_store import UserStore
from filedeck.utils.exceptions import ConfigError, NotFoundError


@pytest.fixture
def store(tmp_path: Path) -> UserStore:
    return UserStore(tmp_path / "data" / "users.json", bcrypt_rounds=4)


def test_load_missing_file_returns_empty(store):
    assert store.load() == []


def test_load_corrupt_file_returns_empty(store):
    store.users_path.parent.mkdir(parents=True)
    store.users_path.write_text("{not json", encoding="utf-8")
    assert store.load() == []


def test_bootstrap_creates_single_admin(store):
    assert store.ensure_initial_admin("root", "s3cret") is True

    users = store.load()
    assert len(users) == 1
    assert users[0].username == "root"
    assert users[0].role == "admin"
    assert verify_password("s3cret", users[0].password_hash)


def test_bootstrap_never_runs_twice(store):
    store.ensure_initial_admin("root", "s3cret")
    assert store.ensure_initial_admin("other", "pw") is False

    users = store.load()
    assert [u.username for u in users] == ["root"]


def test_bootstrap_replaces_unreadable_document(store):
    store.users_path.parent.mkdir(parents=True)
    store.users_path.write_text("", encoding="utf-8")

    assert store.ensure_initial_admin("root", "s3cret") is True
    assert len(store.load()) == 1


def test_document_uses_camel_case_keys(store):
    store.ensure_initial_admin("root", "s3cret")
    raw = json.loads(store.users_path.read_text(encoding="utf-8"))

    record = raw["users"][0]
    assert set(record) == {"username", "passwordHash", "role", "createdAt"}


def test_reads_existing_document(store):
    store.users_path.parent.mkdir(parents=True)
    store.users_path.write_text(
        json.dumps({
            "users": [{
                "username": "alice",
                "passwordHash": "$2b$04$abcdefghijklmnopqrstuuq0Zr0wQbq0c1bGvKq0Zr0wQbq0c1bGv",
                "role": "admin",
                "createdAt": "2024-05-01T10:00:00.000Z",
            }]
        }),
        encoding="utf-8",
    )
    user = store.find_by_username("alice")
    assert user is not None
    assert user.created_at.year == 2024
    assert store.find_by_username("Alice") is None


def test_update_password(store):
    store.ensure_initial_admin("root", "old")
    updated = store.update_password("root", "new-hash")

    assert updated.password_hash == "new-hash"
    assert store.find_by_username("root").password_hash == "new-hash"


def test_update_password_unknown_user(store):
    store.ensure_initial_admin("root", "old")
    with pytest.raises(NotFoundError):
        store.update_password("ghost", "x")


def test_save_leaves_no_temp_files(store):
    store.save([User(username="a", password_hash="h")])
    store.save([User(username="b", password_hash="h")])

    files = sorted(p.name for p in store.users_path.parent.iterdir())
    assert files == ["users.json"]
    assert [u.username for u in store.load()] == ["b"]


def write_users(store, records):
    store.users_path.parent.mkdir(parents=True, exist_ok=True)
    store.users_path.write_text(json.dumps({"users": records}), encoding="utf-8")


def test_bootstrap_refuses_document_with_only_invalid_records(store):
    records = [{"username": "alice", "passwordHash": "h", "role": "admin", "createdAt": "yesterday"}]
    write_users(store, records)

    with pytest.raises(ConfigError):
        store.ensure_initial_admin("root", "s3cret")
    assert json.loads(store.users_path.read_text(encoding="utf-8")) == {"users": records}


def test_invalid_records_are_skipped_but_kept(store):
    bad = {"username": "broken", "passwordHash": "h", "createdAt": "yesterday"}
    write_users(store, [bad, {"username": "alice", "passwordHash": "old"}])

    assert store.ensure_initial_admin("root", "s3cret") is False
    assert [u.username for u in store.load()] == ["alice"]

    store.update_password("alice", "new")
    records = json.loads(store.users_path.read_text(encoding="utf-8"))["users"]
    assert records[0] == bad
    assert records[1]["passwordHash"] == "new"


def test_bootstrap_runs_for_empty_users_list(store):
    write_users(store, [])
    assert store.ensure_initial_admin("root", "s3cret") is True


def test_bootstrap_rejects_password_too_long_for_bcrypt(store):
    with pytest.raises(ConfigError):
        store.ensure_initial_admin("root", "x" * 80)
    assert not store.users_path.exists()
