"""Unit tests for regex pre-tokenization."""

import pytest

from mergetok import (
    ConfigError,
    PatternError,
    TokenPattern,
    get_pre_tokenizer,
    list_patterns,
)

TEXTS = [
    "Hello world",
    "don't stop, we'll see!",
    "  leading and trailing  ",
    "tabs\tand\nnewlines\r\n",
    "café naïve 日本語 🎉",
    "\x00\x01 control \x7f bytes",
    "",
]


# Presets
# ---------------------------------------------------------------------------


def test_list_patterns():
    assert list_patterns() == ["GPT2", "CL100K"]


def test_get_is_case_insensitive():
    assert TokenPattern.get("gpt2") is TokenPattern.GPT2
    assert TokenPattern.get("cl100k") is TokenPattern.CL100K
    assert TokenPattern.get(TokenPattern.CL100K) is TokenPattern.CL100K


def test_unknown_preset_raises():
    with pytest.raises(ConfigError):
        get_pre_tokenizer("gpt9")


def test_invalid_custom_pattern_raises():
    with pytest.raises(PatternError):
        get_pre_tokenizer(custom_pattern="(unclosed")


# Segmentation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("preset", list(TokenPattern))
def test_segmentation_is_lossless(preset):
    """Concatenated segments reproduce the input for every preset."""
    pre = get_pre_tokenizer(preset)
    for text in TEXTS:
        assert "".join(pre.segment(text)) == text


def test_gpt2_splits():
    pre = get_pre_tokenizer(TokenPattern.GPT2)
    assert list(pre.segment("Hello world")) == ["Hello", " world"]
    assert list(pre.segment("don't")) == ["don", "'t"]
    assert list(pre.segment("abc 123!")) == ["abc", " 123", "!"]


def test_cl100k_splits():
    pre = get_pre_tokenizer("cl100k")
    assert list(pre.segment("  hi")) == ["  ", "hi"]
    assert list(pre.segment("don't")) == ["don't"]


def test_custom_pattern_keeps_gaps():
    """Text the pattern does not cover is still emitted."""
    pre = get_pre_tokenizer(custom_pattern=r"\d+")
    assert list(pre.segment("ab12cd")) == ["ab", "12", "cd"]


def test_segment_is_lazy():
    pre = get_pre_tokenizer()
    segments = pre.segment("Hello world")
    assert next(segments) == "Hello"


def test_special_tokens_are_isolated():
    pre = get_pre_tokenizer()
    segments = list(pre.segment("hi<|endoftext|>there", ["<|endoftext|>"]))
    assert segments == ["hi", "<|endoftext|>", "there"]


def test_longest_special_token_wins():
    pre = get_pre_tokenizer()
    segments = list(pre.segment("a<|end|>|b", ["<|end|>", "<|end|>|"]))
    assert segments == ["a", "<|end|>|", "b"]
