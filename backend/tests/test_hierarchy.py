"""Tests for deriving physical paths from the DB tree."""

import pytest

from studyshelf.exceptions import DirectoryNotFoundError, HierarchyCycleError
from studyshelf.models import Directory
from studyshelf.services.hierarchy import HierarchyPathTranslator


def _dir(db, user_id, name, parent=None):
    d = Directory(user_id=user_id, name=name, parent_id=parent.id if parent else None)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


class TestPathFromId:

    def test_none_is_root(self, db, premium_user):
        assert HierarchyPathTranslator(db).path_from_id(premium_user, None) == ""

    def test_nested_path(self, db, premium_user):
        math = _dir(db, premium_user, "Math 101")
        week = _dir(db, premium_user, "Week 1", math)
        assert HierarchyPathTranslator(db).path_from_id(premium_user, week.id) == "Math 101/Week 1"

    def test_names_are_sanitized(self, db, premium_user):
        odd = _dir(db, premium_user, "  a/b: c?  ")
        assert HierarchyPathTranslator(db).path_from_id(premium_user, odd.id) == "ab c"

    def test_unknown_id(self, db, premium_user):
        with pytest.raises(DirectoryNotFoundError):
            HierarchyPathTranslator(db).path_from_id(premium_user, 9999)

    def test_other_users_directory_is_not_found(self, db, premium_user, free_user):
        theirs = _dir(db, free_user, "Private")
        with pytest.raises(DirectoryNotFoundError):
            HierarchyPathTranslator(db).path_from_id(premium_user, theirs.id)

    def test_cycle_is_detected(self, db, premium_user):
        a = _dir(db, premium_user, "A")
        b = _dir(db, premium_user, "B", a)
        a.parent_id = b.id
        db.commit()

        with pytest.raises(HierarchyCycleError) as exc_info:
            HierarchyPathTranslator(db).path_from_id(premium_user, b.id)
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["chain"][0] == b.id

    def test_reflects_current_rows(self, db, premium_user):
        translator = HierarchyPathTranslator(db)
        a = _dir(db, premium_user, "A")
        b = _dir(db, premium_user, "B")
        c = _dir(db, premium_user, "C", a)
        assert translator.path_from_id(premium_user, c.id) == "A/C"

        c.parent_id = b.id
        db.commit()
        assert translator.path_from_id(premium_user, c.id) == "B/C"
