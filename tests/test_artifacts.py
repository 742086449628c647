"""Unit tests for reading and writing tokenizer artifacts."""

import json
import os

import pytest

from mergetok import ArtifactInvalidError, ArtifactNotFoundError
from mergetok import artifacts


# Merges
# ---------------------------------------------------------------------------


def test_header_only_merges_file_raises(tmp_path):
    path = tmp_path / "merges.txt"
    path.write_text("#version: 0.2\n", encoding="utf-8")
    with pytest.raises(ArtifactInvalidError):
        artifacts.read_merges(path)


def test_missing_merges_file_raises(tmp_path):
    with pytest.raises(ArtifactNotFoundError) as exc:
        artifacts.read_merges(tmp_path / "merges.txt")
    assert exc.value.path.endswith("merges.txt")


def test_malformed_line_names_line_number(tmp_path):
    path = tmp_path / "merges.txt"
    path.write_text("#version: 0.2\na b\na b c\n", encoding="utf-8")
    with pytest.raises(ArtifactInvalidError) as exc:
        artifacts.read_merges(path)
    assert exc.value.line == 3


def test_ranks_follow_file_order(tmp_path):
    path = tmp_path / "merges.txt"
    path.write_text("#version: 0.2\n\nĠ t\nh e\n\nĠt he\n", encoding="utf-8")
    assert artifacts.read_merges(path) == {("Ġ", "t"): 0, ("h", "e"): 1, ("Ġt", "he"): 2}


def test_duplicate_pair_keeps_first_rank(tmp_path):
    path = tmp_path / "merges.txt"
    path.write_text("a b\nc d\na b\ne f\n", encoding="utf-8")
    assert artifacts.read_merges(path) == {("a", "b"): 0, ("c", "d"): 1, ("e", "f"): 2}


def test_hash_piece_after_header_is_a_merge(tmp_path):
    """Only leading lines are comments, "#" itself is a valid piece."""
    path = tmp_path / "merges.txt"
    path.write_text("#version: 0.2\na b\n# #\n", encoding="utf-8")
    assert artifacts.read_merges(path) == {("a", "b"): 0, ("#", "#"): 1}


def test_invalid_utf8_raises(tmp_path):
    path = tmp_path / "merges.txt"
    path.write_bytes(b"a b\n\xff\xfe c\n")
    with pytest.raises(ArtifactInvalidError):
        artifacts.read_merges(path)


def test_write_merges_from_ranks(tmp_path):
    path = tmp_path / "merges.txt"
    artifacts.write_merges(path, {("c", "d"): 1, ("a", "b"): 0})
    assert path.read_text(encoding="utf-8") == "#version: 0.2\na b\nc d\n"
    assert artifacts.read_merges(path) == {("a", "b"): 0, ("c", "d"): 1}


# JSON maps
# ---------------------------------------------------------------------------


def test_vocab_roundtrip_keeps_unicode(tmp_path):
    path = tmp_path / "vocab.json"
    vocab = {"Ġworld": 0, "日": 1}
    artifacts.write_vocab(path, vocab)
    raw = path.read_text(encoding="utf-8")
    assert "Ġworld" in raw
    assert "\\u" not in raw
    assert artifacts.read_vocab(path) == vocab


def test_missing_vocab_raises(tmp_path):
    with pytest.raises(ArtifactNotFoundError):
        artifacts.read_vocab(tmp_path / "vocab.json")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2, 3]",
        "{}",
        json.dumps({"a": -1}),
        json.dumps({"a": "1"}),
        json.dumps({"a": True}),
        json.dumps({"a": 1.5}),
    ],
)
def test_corrupt_vocab_raises(tmp_path, content):
    path = tmp_path / "vocab.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ArtifactInvalidError):
        artifacts.read_vocab(path)


def test_special_tokens_and_ranks_roundtrip(tmp_path):
    artifacts.write_special_tokens(tmp_path / "special_tokens.json", {"<s>": 7})
    artifacts.write_mergeable_ranks(tmp_path / "ranks.json", {"a": 0, "ab": 1})
    assert artifacts.read_special_tokens(tmp_path / "special_tokens.json") == {"<s>": 7}
    assert artifacts.read_mergeable_ranks(tmp_path / "ranks.json") == {"a": 0, "ab": 1}


# Atomic writes
# ---------------------------------------------------------------------------


def test_atomic_write_leaves_no_temp_files(tmp_path):
    target = tmp_path / "nested" / "out.txt"
    artifacts.atomic_write_text(target, "hello")
    assert target.read_text(encoding="utf-8") == "hello"
    assert sorted(p.name for p in target.parent.iterdir()) == ["out.txt"]


def test_failed_write_keeps_previous_content(tmp_path, monkeypatch):
    target = tmp_path / "out.txt"
    target.write_text("old", encoding="utf-8")

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(OSError):
        artifacts.atomic_write_text(target, "new")

    assert target.read_text(encoding="utf-8") == "old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.txt"]
