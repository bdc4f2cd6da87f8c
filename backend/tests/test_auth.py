"""Tests for tokens, identity resolution and storage mode selection."""

import pytest

from studyshelf.core import auth as auth_module
from studyshelf.core.config import StorageModePolicy, settings
from studyshelf.core.token_factory import create_token, decode_token
from studyshelf.models import User
from studyshelf.services.storage_mode import StorageMode, resolve_storage_mode


class TestTokenFactory:

    def test_create_and_decode(self):
        token = create_token(12, "test-secret")
        payload = decode_token(token, "test-secret")
        assert payload is not None
        assert payload.user_id == 12

    def test_wrong_secret_returns_none(self):
        token = create_token(12, "correct-secret")
        assert decode_token(token, "wrong-secret") is None

    def test_expired_token_returns_none(self):
        token = create_token(12, "secret", expires_hours=-1)
        assert decode_token(token, "secret") is None

    def test_malformed_token_returns_none(self):
        assert decode_token("not.a.token", "secret") is None
        assert decode_token("", "secret") is None

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError):
            create_token(1, "secret", algorithm="RS256")


class TestStorageMode:

    def test_per_user_policy_reads_premium_flag(self):
        assert resolve_storage_mode(User(is_premium=True), StorageModePolicy.PER_USER) is StorageMode.MIRRORED
        assert resolve_storage_mode(User(is_premium=False), StorageModePolicy.PER_USER) is StorageMode.PHYSICAL_ONLY

    def test_forced_policies(self):
        assert resolve_storage_mode(User(is_premium=False), StorageModePolicy.MIRRORED) is StorageMode.MIRRORED
        assert resolve_storage_mode(User(is_premium=True), StorageModePolicy.PHYSICAL_ONLY) is StorageMode.PHYSICAL_ONLY


class TestAuthEnabled:

    @pytest.fixture()
    def auth_on(self, monkeypatch):
        monkeypatch.setattr(auth_module.settings, "auth_enabled", True)

    def test_missing_token_is_401(self, client, auth_on):
        resp = client.get("/api/directories")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"

    def test_bad_token_is_401(self, client, auth_on):
        resp = client.get("/api/directories", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_valid_token_identifies_user(self, client, auth_on, premium_user):
        token = create_token(premium_user, settings.jwt_secret_key)
        resp = client.get("/api/directories", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["mode"] == "mirrored"

    def test_header_is_ignored_when_auth_is_enabled(self, client, auth_on, premium_user):
        token = create_token(5, settings.jwt_secret_key)
        resp = client.get(
            "/api/directories",
            headers={"Authorization": f"Bearer {token}", "X-User-Id": str(premium_user)},
        )
        assert resp.json()["mode"] == "physical-only"
