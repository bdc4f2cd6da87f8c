"""Tests for the collision-avoiding name allocator."""

from concurrent.futures import ThreadPoolExecutor
from itertools import islice

import pytest

from studyshelf.exceptions import RetryExhaustedError, ValidationError
from studyshelf.storage.naming import UniqueNameAllocator, candidate_names


@pytest.fixture()
def allocator():
    return UniqueNameAllocator(max_attempts=50)


class TestCandidates:

    def test_sequence(self):
        assert list(islice(candidate_names("Notes", ".pdf"), 3)) == [
            "Notes.pdf", "Notes (2).pdf", "Notes (3).pdf",
        ]


class TestDirectories:

    def test_first_name_is_used_when_free(self, allocator, tmp_path):
        assert allocator.create_directory(tmp_path, "Math 101") == tmp_path / "Math 101"

    def test_collision_gets_counter_suffix(self, allocator, tmp_path):
        allocator.create_directory(tmp_path, "Math 101")
        second = allocator.create_directory(tmp_path, "Math 101")
        third = allocator.create_directory(tmp_path, "Math 101")
        assert second.name == "Math 101 (2)"
        assert third.name == "Math 101 (3)"

    def test_existing_file_blocks_directory_name(self, allocator, tmp_path):
        (tmp_path / "Notes").write_text("x")
        assert allocator.create_directory(tmp_path, "Notes").name == "Notes (2)"

    def test_missing_parent_raises(self, allocator, tmp_path):
        with pytest.raises(FileNotFoundError):
            allocator.create_directory(tmp_path / "nope", "x")

    def test_concurrent_creates_never_share_a_name(self, tmp_path):
        allocator = UniqueNameAllocator(max_attempts=100)
        with ThreadPoolExecutor(max_workers=8) as pool:
            created = list(pool.map(lambda _: allocator.create_directory(tmp_path, "Same"), range(20)))
        assert len({p.name for p in created}) == 20


class TestFiles:

    def test_write_file(self, allocator, tmp_path):
        first = allocator.write_file(tmp_path, "Notes", ".pdf", b"one")
        second = allocator.write_file(tmp_path, "Notes", ".pdf", b"two")
        assert first.read_bytes() == b"one"
        assert second.name == "Notes (2).pdf"
        assert second.read_bytes() == b"two"

    def test_copy_file_keeps_source(self, allocator, tmp_path):
        src = tmp_path / "src.pdf"
        src.write_bytes(b"data")
        dest_dir = tmp_path / "dest"
        dest_dir.mkdir()
        copied = allocator.copy_file(src, dest_dir, "Copy", ".pdf")
        assert copied.read_bytes() == b"data"
        assert src.exists()

    def test_move_file_renames_on_collision(self, allocator, tmp_path):
        a = tmp_path / "A"
        b = tmp_path / "B"
        a.mkdir()
        b.mkdir()
        (a / "Notes.pdf").write_bytes(b"from-a")
        (b / "Notes.pdf").write_bytes(b"already-in-b")

        moved = allocator.move_file(a / "Notes.pdf", b, "Notes", ".pdf")

        assert moved == b / "Notes (2).pdf"
        assert moved.read_bytes() == b"from-a"
        assert (b / "Notes.pdf").read_bytes() == b"already-in-b"
        assert not (a / "Notes.pdf").exists()

    def test_move_onto_itself_is_noop(self, allocator, tmp_path):
        f = tmp_path / "Notes.pdf"
        f.write_bytes(b"x")
        assert allocator.move_file(f, tmp_path, "Notes", ".pdf") == f
        assert f.read_bytes() == b"x"

    def test_failed_move_releases_reservation(self, allocator, tmp_path):
        with pytest.raises(FileNotFoundError):
            allocator.move_file(tmp_path / "missing.pdf", tmp_path, "Target", ".pdf")
        assert not (tmp_path / "Target.pdf").exists()

    def test_exhaustion_raises(self, tmp_path):
        allocator = UniqueNameAllocator(max_attempts=3)
        for name in ("N.txt", "N (2).txt", "N (3).txt"):
            (tmp_path / name).write_text("")
        with pytest.raises(RetryExhaustedError) as exc_info:
            allocator.reserve_file(tmp_path, "N", ".txt")
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["attempts"] == 3


def _summary(stem):
    return f"Resumen_{stem}.txt"


class TestMoveFilePair:

    @pytest.fixture()
    def pair(self, tmp_path):
        src = tmp_path / "src"
        src.mkdir()
        (src / "X.pdf").write_bytes(b"pdf")
        (src / "Resumen_X.txt").write_text("mine")
        dst = tmp_path / "dst"
        dst.mkdir()
        return src, dst

    def test_both_names_free(self, allocator, pair):
        src, dst = pair
        moved, companion = allocator.move_file_pair(
            src / "X.pdf", src / "Resumen_X.txt", dst, "X", ".pdf", _summary,
        )
        assert moved == dst / "X.pdf"
        assert companion.read_text() == "mine"
        assert list(src.iterdir()) == []

    def test_taken_companion_name_advances_both(self, allocator, pair):
        src, dst = pair
        (dst / "Resumen_X.txt").write_text("unrelated")

        moved, companion = allocator.move_file_pair(
            src / "X.pdf", src / "Resumen_X.txt", dst, "X", ".pdf", _summary,
        )

        assert moved.name == "X (2).pdf"
        assert companion.name == "Resumen_X (2).txt"
        assert (dst / "Resumen_X.txt").read_text() == "unrelated"
        assert not (dst / "X.pdf").exists()

    def test_exhaustion_leaves_no_reservations(self, tmp_path, pair):
        src, dst = pair
        for stem in ("X", "X (2)"):
            (dst / _summary(stem)).write_text("")
        with pytest.raises(RetryExhaustedError):
            UniqueNameAllocator(max_attempts=2).move_file_pair(
                src / "X.pdf", src / "Resumen_X.txt", dst, "X", ".pdf", _summary,
            )
        assert sorted(p.name for p in dst.iterdir()) == ["Resumen_X (2).txt", "Resumen_X.txt"]
        assert (src / "X.pdf").exists()


class TestMoveDirectory:

    def test_moves_tree_with_contents(self, allocator, tmp_path):
        src = tmp_path / "Physics"
        (src / "Week 1").mkdir(parents=True)
        (src / "Week 1" / "a.pdf").write_bytes(b"a")
        target_parent = tmp_path / "Archive"
        target_parent.mkdir()

        moved = allocator.move_directory(src, target_parent, "Physics")

        assert moved == target_parent / "Physics"
        assert (moved / "Week 1" / "a.pdf").read_bytes() == b"a"
        assert not src.exists()

    def test_collision_renames(self, allocator, tmp_path):
        (tmp_path / "src" / "Physics").mkdir(parents=True)
        (tmp_path / "dst" / "Physics").mkdir(parents=True)
        moved = allocator.move_directory(tmp_path / "src" / "Physics", tmp_path / "dst", "Physics")
        assert moved.name == "Physics (2)"

    def test_rejects_move_into_descendant(self, allocator, tmp_path):
        src = tmp_path / "A"
        (src / "B").mkdir(parents=True)
        with pytest.raises(ValidationError):
            allocator.move_directory(src, src / "B", "A")

    def test_place_directory_refuses_occupied_target(self, allocator, tmp_path):
        (tmp_path / "one").mkdir()
        (tmp_path / "two").mkdir()
        with pytest.raises(FileExistsError):
            allocator.place_directory(tmp_path / "one", tmp_path / "two")
        assert (tmp_path / "one").is_dir()

    def test_place_directory_exact_target(self, allocator, tmp_path):
        (tmp_path / "one").mkdir()
        placed = allocator.place_directory(tmp_path / "one", tmp_path / "renamed")
        assert placed == tmp_path / "renamed"
        assert placed.is_dir()
