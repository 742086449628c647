"""Unit tests for the greedy mergeable-ranks tokenizer."""

from types import SimpleNamespace

import pytest
import tiktoken

import mergetok as mtok
from mergetok import (
    BYTE_UNICODE,
    ConfigError,
    MergeableRanksTokenizer,
    TokenizationError,
    TokenizerOptions,
    TokenPattern,
    UnknownTokenIdError,
)
from mergetok import artifacts


# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ranks():
    """Byte alphabet at ranks 0-255 plus a few longer pieces."""
    table = {ch: b for b, ch in enumerate(BYTE_UNICODE.alphabet())}
    table.update({"he": 256, "hell": 257, "Ġworld": 258})
    return table


@pytest.fixture
def mergeable(ranks):
    return MergeableRanksTokenizer(ranks, {"<|endoftext|>": 1000})


# Encode and decode
# ---------------------------------------------------------------------------


def test_greedy_longest_match(mergeable):
    # "hell" beats "he", "o" falls back to its byte
    assert mergeable.encode("hello world") == [257, ord("o"), 258]


@pytest.mark.parametrize(
    "text", ["hello world", "café 日本語 🎉", "  \n\t", "", "x<|endoftext|>y"]
)
def test_roundtrip(mergeable, text):
    assert mergeable.decode(mergeable.encode(text)) == text


def test_special_tokens(mergeable):
    ids = mergeable.encode("hi<|endoftext|>")
    assert ids[-1] == 1000
    assert mergeable.piece(1000) == "<|endoftext|>"


def test_missing_fallback_raises():
    tok = MergeableRanksTokenizer({"a": 0, "b": 1})
    assert tok.encode("ab") == [0, 1]
    with pytest.raises(TokenizationError) as exc:
        tok.encode("abz")
    assert exc.value.position == 2


def test_unknown_id(ranks):
    strict = MergeableRanksTokenizer(ranks)
    with pytest.raises(UnknownTokenIdError):
        strict.decode([5000])

    lenient = MergeableRanksTokenizer(ranks, options=TokenizerOptions(throw_on_unknown_id=False))
    assert lenient.decode([257, 5000]) == "hell"


def test_piece_lookup(mergeable):
    assert mergeable.piece(258) == "Ġworld"
    assert mergeable.piece_text(258) == " world"
    with pytest.raises(UnknownTokenIdError):
        mergeable.piece(5000)


def test_shares_length_options(ranks):
    tok = MergeableRanksTokenizer(ranks, options=TokenizerOptions(max_length=2))
    assert len(tok.encode("hello world again")) == 2


def test_batch_matches_serial(mergeable):
    texts = ["hello world", "café", "hell hello"] * 10
    assert mergeable.encode_batch(texts, num_workers=4) == [mergeable.encode(t) for t in texts]


# Construction
# ---------------------------------------------------------------------------


def test_empty_ranks_rejected():
    with pytest.raises(ConfigError):
        MergeableRanksTokenizer({})


def test_duplicate_ranks_rejected():
    with pytest.raises(ConfigError):
        MergeableRanksTokenizer({"a": 0, "b": 0})


def test_unmapped_piece_rejected():
    with pytest.raises(ConfigError):
        MergeableRanksTokenizer({"a": 0, "a b": 1})


def test_special_id_clash_rejected():
    with pytest.raises(ConfigError):
        MergeableRanksTokenizer({"a": 0}, {"<s>": 0})


def test_from_json(tmp_path, ranks):
    artifacts.write_mergeable_ranks(tmp_path / "ranks.json", ranks)
    artifacts.write_special_tokens(tmp_path / "special_tokens.json", {"<|endoftext|>": 1000})

    tok = MergeableRanksTokenizer.from_json(
        tmp_path / "ranks.json", tmp_path / "special_tokens.json"
    )
    assert tok.encode("hello world<|endoftext|>") == [257, ord("o"), 258, 1000]

    via_factory = mtok.get_tokenizer("mergeable", tmp_path / "ranks.json")
    assert via_factory.encode("hello") == [257, ord("o")]


def test_factory_requires_source():
    with pytest.raises(ConfigError):
        mtok.get_tokenizer("mergeable")


# tiktoken import
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_encoding(monkeypatch):
    """Stub tiktoken.get_encoding with a tiny byte-keyed encoding."""
    ranks = {bytes([b]): b for b in range(256)}
    ranks[b"hi"] = 256
    ranks[b" there"] = 257
    enc = SimpleNamespace(
        _mergeable_ranks=ranks,
        _special_tokens={"<|endoftext|>": 300},
        _pat_str=TokenPattern.GPT2.value,
    )
    requested = []

    def get_encoding(name):
        requested.append(name)
        return enc

    monkeypatch.setattr(tiktoken, "get_encoding", get_encoding)
    return requested


def test_from_tiktoken(fake_encoding):
    tok = MergeableRanksTokenizer.from_tiktoken("cl100k_base")
    assert fake_encoding == ["cl100k_base"]
    assert tok.encode("hi there<|endoftext|>") == [256, 257, 300]
    assert tok.decode([256, 257]) == "hi there"
    assert tok.piece(257) == "Ġthere"


def test_get_tokenizer_from_tiktoken(fake_encoding):
    tok = mtok.get_tokenizer("mergeable", encoding_name="gpt2")
    assert fake_encoding == ["gpt2"]
    assert tok.encode("hi") == [256]
