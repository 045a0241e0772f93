"""
Shared pytest fixtures for FileDeck tests.

Every test gets its own sandbox root and data directory under tmp_path,
and bcrypt runs at its minimum cost so auth tests stay fast.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filedeck.utils.config import Settings

ADMIN_USER = "admin"
ADMIN_PASS = "admin-pass-123"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        root_path=tmp_path / "sandbox",
        data_dir=tmp_path / "data",
        public_dir=tmp_path / "public",
        admin_user=ADMIN_USER,
        admin_pass=ADMIN_PASS,
        session_secret="test-secret",
        bcrypt_rounds=4,
        login_max_attempts=20,
        login_window_seconds=600,
    )


def create_test_app(settings: Settings) -> TestClient:
    # Import after fixtures are built so nothing reads the real environment first
    from web.main import create_app

    return TestClient(create_app(settings))


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return create_test_app(settings)


def login(client: TestClient, username: str = ADMIN_USER, password: str = ADMIN_PASS):
    return client.post("/api/login", json={"username": username, "password": password})


@pytest.fixture
def auth_client(client: TestClient) -> TestClient:
    res = login(client)
    assert res.status_code == 200, res.text
    return client
