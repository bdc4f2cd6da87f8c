"""Tests for per-user sandbox roots and containment."""

import logging
import os

import pytest

from studyshelf.exceptions import ContainmentViolationError, InvalidPathError
from studyshelf.storage.sandbox import UserRootResolver


@pytest.fixture()
def sandbox(tmp_path):
    return UserRootResolver(tmp_path / "users")


class TestRootFor:

    def test_root_is_created_lazily(self, sandbox):
        root = sandbox.root_for(7)
        assert root.name == "user_7"
        assert root.is_dir()

    def test_roots_are_distinct_per_user(self, sandbox):
        assert sandbox.root_for(1) != sandbox.root_for(2)


class TestResolve:

    def test_resolves_inside_root(self, sandbox):
        path = sandbox.resolve(3, "Math/Notes")
        assert path == sandbox.root_for(3) / "Math" / "Notes"

    def test_empty_path_is_root(self, sandbox):
        assert sandbox.resolve(3, "") == sandbox.root_for(3)

    def test_parent_reference_rejected(self, sandbox):
        with pytest.raises(InvalidPathError):
            sandbox.resolve(3, "../user_4")

    def test_symlink_escape_is_a_containment_violation(self, sandbox, tmp_path, caplog):
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, sandbox.root_for(5) / "link")

        with caplog.at_level(logging.WARNING, logger="studyshelf.storage.sandbox"):
            with pytest.raises(ContainmentViolationError):
                sandbox.resolve(5, "link/secret.txt")

        record = next(r for r in caplog.records if "escapes" in r.getMessage())
        assert record.security_event is True

    def test_symlink_to_other_user_rejected(self, sandbox):
        other = sandbox.root_for(6)
        os.symlink(other, sandbox.root_for(5) / "peek")
        with pytest.raises(ContainmentViolationError):
            sandbox.resolve(5, "peek")


class TestRelativeToRoot:

    def test_round_trip(self, sandbox):
        path = sandbox.resolve(9, "a/b/c.pdf")
        assert sandbox.relative_to_root(9, path) == "a/b/c.pdf"

    def test_root_maps_to_empty(self, sandbox):
        assert sandbox.relative_to_root(9, sandbox.root_for(9)) == ""
