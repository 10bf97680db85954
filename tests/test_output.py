"""Tests for filename allocation and output directory handling."""

from pathlib import Path

import pytest

from nanobanana import (
    allocate_filename,
    ensure_output_dir,
    find_file,
    save_image,
    slugify,
)


class TestSlugify:

    def test_lowercases_and_strips_punctuation(self):
        assert slugify("A Beautiful Sunset!") == "a_beautiful_sunset"

    def test_collapses_whitespace(self):
        assert slugify("hello! @world# $test") == "hello_world_test"
        assert slugify("tabs\tand\n\nnewlines") == "tabs_and_newlines"

    def test_truncates_after_sanitizing(self):
        assert slugify("a" * 100) == "a" * 32
        assert slugify("!" * 10 + "b" * 40) == "b" * 32

    @pytest.mark.parametrize("text", ["", "!!!", "???***"])
    def test_fallback(self, text):
        assert slugify(text) == "image"


class TestAllocateFilename:

    def test_empty_directory(self, tmp_path):
        assert allocate_filename("A Beautiful Sunset!", 0, tmp_path) == "a_beautiful_sunset.png"

    def test_sequential_collisions(self, tmp_path):
        names = []
        for _ in range(3):
            name = allocate_filename("test", 0, tmp_path)
            (tmp_path / name).write_bytes(b"x")
            names.append(name)
        assert names == ["test.png", "test_1.png", "test_2.png"]

    def test_ordinal_seeds_counter(self, tmp_path):
        assert allocate_filename("test", 3, tmp_path) == "test.png"
        (tmp_path / "test.png").write_bytes(b"x")
        assert allocate_filename("test", 3, tmp_path) == "test_3.png"

    def test_counter_skips_taken_suffixes(self, tmp_path):
        for name in ("test.png", "test_1.png", "test_2.png"):
            (tmp_path / name).write_bytes(b"x")
        assert allocate_filename("test", 0, tmp_path) == "test_3.png"

    def test_no_alphanumerics(self, tmp_path):
        assert allocate_filename("!!!", 0, tmp_path) == "image.png"

    def test_long_prompt_capped(self, tmp_path):
        name = allocate_filename("x" * 100, 0, tmp_path)
        assert name == "x" * 32 + ".png"

    def test_missing_directory_is_not_an_error(self, tmp_path):
        assert allocate_filename("cat", 0, tmp_path / "nope") == "cat.png"


def test_ensure_output_dir_is_idempotent(tmp_path):
    target = tmp_path / "a" / "b" / "out"
    assert ensure_output_dir(target) == target
    assert ensure_output_dir(target) == target
    assert target.is_dir()


def test_save_image_writes_bytes(tmp_path):
    out = tmp_path / "out"
    path = save_image(b"png-bytes", "cat.png", out)
    assert path == out / "cat.png"
    assert path.read_bytes() == b"png-bytes"


class TestFindFile:

    def test_absolute_path(self, tmp_path):
        target = tmp_path / "photo.png"
        target.write_bytes(b"x")
        assert find_file(str(target)) == target

    def test_absolute_path_missing(self, tmp_path):
        assert find_file(str(tmp_path / "missing.png")) is None

    def test_search_order(self, tmp_path):
        first, second = tmp_path / "first", tmp_path / "second"
        for d in (first, second):
            d.mkdir()
            (d / "photo.png").write_bytes(b"x")
        assert find_file("photo.png", [first, second]) == first / "photo.png"

    def test_relative_in_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "photo.png").write_bytes(b"x")
        assert find_file("photo.png") == Path.cwd() / "photo.png"

    def test_directories_are_skipped(self, tmp_path):
        (tmp_path / "photo.png").mkdir()
        assert find_file("photo.png", [tmp_path]) is None
        assert find_file(str(tmp_path / "photo.png")) is None

    def test_not_found(self, tmp_path):
        assert find_file("nonexistent-file-12345.png", [tmp_path]) is None
