"""
Core types for tokenization.
"""

from collections.abc import Mapping
from typing import Protocol

type Token = int
type Piece = str
type MergePair = tuple[Piece, Piece]
type MergeRanks = Mapping[MergePair, int]
type VocabMap = dict[Piece, Token]


class SupportsTokenize(Protocol):
    """Contract shared by every tokenizer variant and relied on by consumers."""

    def encode(self, text: str, add_special_tokens: bool = False) -> list[Token]: ...

    def decode(self, tokens: list[Token], errors: str = "replace") -> str: ...

    def piece(self, token: Token) -> Piece: ...
