"""
Greedy longest-match tokenizer over a table of mergeable ranks.

Unlike :class:`~mergetok.tokenizer.ByteLevelTokenizer` there are no merge rules:
the rank table lists whole byte-mapped pieces, each rank doubling as the token
id. Every pre-token is cut into the longest known pieces from left to right
by walking a character trie.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from . import artifacts
from ._sanitise import render_piece
from ._shared import (
    check_disallowed,
    enforce_max_length,
    resolve_allowed_special,
    resolve_disallowed_special,
    run_batch,
    special_option_id,
)
from .byte_unicode import BYTE_UNICODE
from .cache import LRUCache
from .config import TokenizerOptions
from .errors import ConfigError, TokenizationError, UnknownTokenIdError
from .pattern import PreTokenizer, get_pre_tokenizer
from .types import Piece, Token
from .vocab import SpecialTokens

log = logging.getLogger(__name__)


class _TrieNode:
    __slots__ = ("children", "rank")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        self.rank: int | None = None


def _build_trie(ranks: Mapping[Piece, int]) -> _TrieNode:
    root = _TrieNode()
    for piece, rank in ranks.items():
        node = root
        for ch in piece:
            child = node.children.get(ch)
            if child is None:
                child = node.children[ch] = _TrieNode()
            node = child
        node.rank = rank
    return root


class MergeableRanksTokenizer:
    """
    Tokenizer driven by a ``piece -> rank`` table in byte-mapped space.

    Shares options, special token handling and the ``encode``/``decode``/``piece``
    surface with the BPE tokenizer, so the two are interchangeable for consumers.
    """

    TOKENIZER_TYPE = "mergeable"

    def __init__(
        self,
        ranks: Mapping[Piece, int],
        special_tokens: Mapping[str, Token] | None = None,
        options: TokenizerOptions | None = None,
        *,
        pattern: str | None = None,
    ) -> None:
        """
        :param ranks: Byte-mapped piece -> rank table; ranks are the token ids.
        :param special_tokens: Special token string -> fixed id.
        :param options: Tokenizer options, defaults when omitted.
        :param pattern: Custom pre-tokenizer regex, overrides ``options.regex_preset``.
        :raises ConfigError: If ``ranks`` is empty, ranks repeat, a piece is not
            byte-mapped, or a special id is also a rank.
        :raises PatternError: If ``pattern`` is not a valid regex.
        """
        self.options = options if options is not None else TokenizerOptions()
        if not ranks:
            raise ConfigError("mergeable ranks must not be empty", option="ranks")

        inverse: dict[Token, Piece] = {}
        for piece, rank in ranks.items():
            if not BYTE_UNICODE.is_mapped(piece):
                raise ConfigError(
                    f"rank piece {piece!r} is not byte-mapped", option="ranks", value=piece
                )
            if rank in inverse:
                raise ConfigError(
                    f"rank {rank} shared by {inverse[rank]!r} and {piece!r}",
                    option="ranks",
                )
            inverse[rank] = piece

        self.ranks: Mapping[Piece, int] = MappingProxyType(dict(ranks))
        self._inverse = inverse
        self._root = _build_trie(self.ranks)

        self.special_toks = SpecialTokens(special_tokens)
        clash = self.special_toks.ids() & set(inverse)
        if clash:
            raise ConfigError(
                "special token ids overlap mergeable ranks",
                option="special_tokens",
                value=sorted(clash),
            )

        if pattern is not None:
            self.pre_tokenizer: PreTokenizer = get_pre_tokenizer(custom_pattern=pattern)
        else:
            self.pre_tokenizer = get_pre_tokenizer(self.options.regex_preset)

        capacity = self.options.merge_cache_capacity
        self._cache: LRUCache[str, tuple[Token, ...]] | None = (
            LRUCache(capacity) if capacity > 0 else None
        )

        self._allowed_special = resolve_allowed_special(self.options, self.special_toks)
        self._disallowed_special = resolve_disallowed_special(
            self.options, self.special_toks, self._allowed_special
        )
        self._bos_id = special_option_id(self.special_toks, "bos_token", self.options.bos_token)
        self._eos_id = special_option_id(self.special_toks, "eos_token", self.options.eos_token)

        log.info(
            f"mergeable ranks tokenizer ready: {len(self.ranks)} pieces, "
            f"{len(self.special_toks)} special tokens"
        )

    @classmethod
    def from_json(
        cls,
        path: str | Path,
        specials_path: str | Path | None = None,
        options: TokenizerOptions | None = None,
    ) -> "MergeableRanksTokenizer":
        """
        Load from a ranks JSON file and an optional special tokens JSON file.

        :raises ArtifactNotFoundError: If a file does not exist.
        :raises ArtifactInvalidError: If a file is not a flat string -> int object.
        """
        ranks = artifacts.read_mergeable_ranks(path)
        specials = (
            artifacts.read_special_tokens(specials_path) if specials_path is not None else None
        )
        return cls(ranks, specials, options)

    @classmethod
    def from_tiktoken(
        cls, encoding_name: str = "cl100k_base", options: TokenizerOptions | None = None
    ) -> "MergeableRanksTokenizer":
        """
        Build from a ``tiktoken`` encoding.

        The encoding's byte-keyed ranks are moved into byte-mapped space and
        its split pattern and special tokens are carried over.

        :param encoding_name: Name passed to ``tiktoken.get_encoding``.
        """
        # imported on demand
        import tiktoken

        enc = tiktoken.get_encoding(encoding_name)
        ranks = {BYTE_UNICODE.encode(raw): rank for raw, rank in enc._mergeable_ranks.items()}
        log.info(f"converted {len(ranks)} ranks from tiktoken encoding {encoding_name!r}")
        return cls(
            ranks,
            dict(enc._special_tokens),
            options,
            pattern=getattr(enc, "_pat_str", None),
        )

    def encode(self, text: str, add_special_tokens: bool = False) -> list[Token]:
        """
        Encode text into a sequence of token ids.

        :raises SpecialTokenError: If a disallowed special token occurs in ``text``.
        :raises TokenizationError: If a byte has no single-character piece.
        :raises SequenceTooLongError: If the output exceeds ``max_length`` and
            truncation is disabled.
        """
        check_disallowed(text, self._disallowed_special)

        ids: list[Token] = []
        if add_special_tokens and self._bos_id is not None:
            ids.append(self._bos_id)

        allowed = self._allowed_special
        # byte offset of the current chunk, reported on failure
        offset = 0
        for chunk in self.pre_tokenizer.segment(text, allowed):
            if chunk in allowed:
                ids.append(self.special_toks.match(chunk))
                offset += len(chunk.encode("utf-8"))
                continue
            mapped = BYTE_UNICODE.encode_text(chunk)
            ids.extend(self._lookup(mapped, offset))
            # one mapped char per byte
            offset += len(mapped)

        if add_special_tokens and self._eos_id is not None:
            ids.append(self._eos_id)

        return enforce_max_length(ids, self.options)

    def encode_batch(
        self, texts: list[str], num_workers: int | None = None
    ) -> list[list[Token]]:
        return run_batch(self.encode, texts, num_workers)

    def _lookup(self, mapped: str, offset: int) -> tuple[Token, ...]:
        if self._cache is None:
            return self._greedy(mapped, offset)
        cached = self._cache.get(mapped)
        if cached is not None:
            return cached
        ids = self._greedy(mapped, offset)
        self._cache.set(mapped, ids)
        return ids

    def _greedy(self, mapped: str, offset: int) -> tuple[Token, ...]:
        """Cut ``mapped`` into the longest known pieces, left to right."""
        out: list[Token] = []
        n = len(mapped)
        i = 0
        while i < n:
            node = self._root
            best_rank: int | None = None
            best_end = i
            j = i
            while j < n:
                node = node.children.get(mapped[j])
                if node is None:
                    break
                j += 1
                if node.rank is not None:
                    best_rank, best_end = node.rank, j
            if best_rank is None:
                raise TokenizationError(
                    f"no piece covers byte 0x{BYTE_UNICODE.to_byte(mapped[i]):02x}",
                    position=offset + i,
                )
            out.append(best_rank)
            i = best_end
        return tuple(out)

    def decode(self, tokens: list[Token], errors: str = "replace") -> str:
        """
        Decode token ids back into text.

        :raises UnknownTokenIdError: If an id is unknown and
            ``throw_on_unknown_id`` is set.
        """
        return self.decode_bytes(tokens).decode("utf-8", errors=errors)

    def decode_bytes(self, tokens: list[Token]) -> bytes:
        buf = bytearray()
        for tok in tokens:
            seq = self.special_toks.token_for(tok)
            if seq is not None:
                buf += seq.encode("utf-8")
                continue
            piece = self._inverse.get(tok)
            if piece is None:
                if self.options.throw_on_unknown_id:
                    raise UnknownTokenIdError("token not found in ranks", token_id=tok)
                log.debug(f"skipping unknown token id {tok}")
                continue
            buf += BYTE_UNICODE.decode(piece)
        return bytes(buf)

    def decode_batch(
        self,
        token_batch: list[list[Token]],
        errors: str = "replace",
        num_workers: int | None = None,
    ) -> list[str]:
        return run_batch(lambda toks: self.decode(toks, errors), token_batch, num_workers)

    def piece(self, token: Token) -> Piece:
        """
        Return the byte-mapped piece for ``token``, or the literal special token.

        :raises UnknownTokenIdError: If ``token`` is unknown.
        """
        seq = self.special_toks.token_for(token)
        if seq is not None:
            return seq
        piece = self._inverse.get(token)
        if piece is None:
            raise UnknownTokenIdError("token not found in ranks", token_id=token)
        return piece

    def piece_text(self, token: Token) -> str:
        seq = self.special_toks.token_for(token)
        if seq is not None:
            return seq
        return render_piece(self.piece(token))

    def vocab_size(self) -> int:
        return len(self.ranks) + len(self.special_toks)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(pieces={len(self.ranks)}, "
            f"specials={len(self.special_toks)})"
        )


__all__ = ["MergeableRanksTokenizer"]
