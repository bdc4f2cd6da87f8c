"""Tests for the per-user in-flight request bound and the mirror runner."""

import logging

import pytest

from studyshelf.core.concurrency import UserConcurrencyLimiter, limiter
from studyshelf.exceptions import MirrorWriteError, TooManyRequestsError
from studyshelf.services.mirror import run_mirror
from studyshelf.services.storage_mode import StorageMode


class TestUserConcurrencyLimiter:

    def test_rejects_above_limit(self):
        lim = UserConcurrencyLimiter(2)
        lim.acquire(1)
        lim.acquire(1)
        with pytest.raises(TooManyRequestsError) as exc_info:
            lim.acquire(1)
        assert exc_info.value.status_code == 429

    def test_users_are_counted_separately(self):
        lim = UserConcurrencyLimiter(1)
        lim.acquire(1)
        lim.acquire(2)
        assert lim.inflight(1) == 1
        assert lim.inflight(2) == 1

    def test_slot_releases_on_error(self):
        lim = UserConcurrencyLimiter(1)
        with pytest.raises(RuntimeError):
            with lim.slot(1):
                raise RuntimeError("boom")
        assert lim.inflight(1) == 0
        with lim.slot(1):
            assert lim.inflight(1) == 1

    def test_zero_disables_the_bound(self):
        lim = UserConcurrencyLimiter(0)
        for _ in range(100):
            lim.acquire(1)
        assert lim.inflight(1) == 100

    def test_endpoint_returns_429_when_user_is_saturated(self, client, free_headers, monkeypatch):
        monkeypatch.setattr(limiter, "limit", 1)
        limiter.acquire(1)
        try:
            resp = client.get("/api/directories", headers=free_headers)
        finally:
            limiter.release(1)
        assert resp.status_code == 429
        assert resp.json()["error"] == "TOO_MANY_REQUESTS"

    def test_slot_is_released_after_request(self, client, free_headers):
        client.get("/api/directories", headers=free_headers)
        assert limiter.inflight(1) == 0


class TestRunMirror:

    @staticmethod
    def _fail():
        raise PermissionError("read-only filesystem")

    def test_mirrored_failure_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="studyshelf.services.mirror"):
            outcome = run_mirror(StorageMode.MIRRORED, "create_directory", "A", self._fail)
        assert outcome.synced is False
        assert outcome.value is None
        assert any(getattr(r, "operation", None) == "create_directory" for r in caplog.records)

    def test_physical_only_failure_raises(self):
        with pytest.raises(MirrorWriteError) as exc_info:
            run_mirror(StorageMode.PHYSICAL_ONLY, "create_directory", "A", self._fail)
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["operation"] == "create_directory"

    def test_success_returns_value(self):
        assert run_mirror(StorageMode.MIRRORED, "noop", "", lambda: 42).value == 42
