"""Regex pre-tokenization: splitting raw text into chunks before BPE."""

import functools
from collections.abc import Collection, Iterator
from enum import Enum

import regex as re

from .errors import ConfigError, PatternError


class TokenPattern(str, Enum):
    """
    Pre-defined regex patterns for splitting text into pre-tokens.

    Sources:
    - GPT2: https://github.com/openai/tiktoken/blob/main/tiktoken_ext/openai_public.py
    - CL100K: a denser approximation of cl100k that groups space runs, control
      runs, ascii alphanumerics with one optional contraction, and everything else.
    """

    GPT2 = (
        r"'s|'t|'re|'ve|'m|'ll|'d|"
        r" ?\p{L}+|"
        r" ?\p{N}+|"
        r" ?[^\s\p{L}\p{N}]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    CL100K = (
        r"\p{Zs}+|"
        r"[\x00-\x1F]+|"
        r"[A-Za-z0-9]+(?:['’][A-Za-z]+)?|"
        r"[^\p{Zs}\x00-\x1F]+"
    )

    @classmethod
    def get(cls, name: "str | TokenPattern") -> "TokenPattern":
        """Get patterns by name (case-insensitive)."""
        if isinstance(name, TokenPattern):
            return name
        try:
            return cls[name.upper().replace("-", "_")]
        except KeyError:
            raise ConfigError(
                f"unknown pattern preset, valid presets: {', '.join(pat.name for pat in cls)}",
                option="regex_preset",
                value=name,
            ) from None


def list_patterns() -> list[str]:
    """Return names of all available built-in pre-tokenization patterns."""
    return [pat.name for pat in TokenPattern]


class PreTokenizer:
    """
    Lossless regex segmentation of text.

    Concatenating the segments always reproduces the input: spans the pattern
    does not cover are emitted as their own segments instead of being dropped.
    """

    def __init__(self, pattern: "str | TokenPattern") -> None:
        self.pattern: str = pattern.value if isinstance(pattern, TokenPattern) else pattern
        self.compiled: re.Pattern[str] = _compile_pattern(self.pattern)

    def segment(
        self, text: str, special_tokens: Collection[str] = ()
    ) -> Iterator[str]:
        """
        Lazily yield the pre-tokens of ``text``.

        :param text: Input text.
        :param special_tokens: Literal strings to emit whole, as their own
            segments, before regex splitting is applied to the spans between them.
        """
        if not special_tokens:
            yield from self._split(text)
            return

        special_pat = _special_pattern(tuple(sorted(special_tokens)))
        pos = 0
        for m in special_pat.finditer(text):
            if m.start() > pos:
                yield from self._split(text[pos : m.start()])
            yield m.group(0)
            pos = m.end()
        if pos < len(text):
            yield from self._split(text[pos:])

    def _split(self, text: str) -> Iterator[str]:
        """Split a span with the compiled pattern, keeping unmatched gaps."""
        pos = 0
        for m in self.compiled.finditer(text):
            if m.start() > pos:
                yield text[pos : m.start()]
            # zero-width matches carry no text
            if m.end() > m.start():
                yield m.group(0)
            pos = m.end()
        if pos < len(text):
            yield text[pos:]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.pattern!r})"


def get_pre_tokenizer(
    preset: "str | TokenPattern" = TokenPattern.GPT2,
    *,
    custom_pattern: str | None = None,
) -> PreTokenizer:
    """
    Create a pre-tokenizer from a built-in preset or a custom regex.

    :param preset: Preset name or member (e.g. "gpt2", "cl100k").
                   Ignored if custom_pattern is provided.
    :param custom_pattern: Custom regex pattern string.
    :raises ConfigError: If the preset name is unknown.
    :raises PatternError: If custom_pattern is invalid regex.
    """
    if custom_pattern is not None:
        return PreTokenizer(custom_pattern)
    return PreTokenizer(TokenPattern.get(preset))


@functools.lru_cache(maxsize=64)
def _special_pattern(special_tokens: tuple[str, ...]) -> re.Pattern[str]:
    """Compile an alternation of special tokens, longest first."""
    # escape regex metachars like "|" in special tokens
    ordered = sorted(special_tokens, key=len, reverse=True)
    return re.compile("|".join(re.escape(seq) for seq in ordered))


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)
