"""
Byte-level BPE tokenizer: text <-> token ids.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from . import artifacts
from ._bpe import apply_merges
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
from .cache import CacheInfo, LRUCache
from .config import TokenizerOptions
from .errors import ConfigError, UnknownTokenIdError
from .pattern import PreTokenizer, get_pre_tokenizer
from .types import MergePair, MergeRanks, Piece, Token
from .vocab import SpecialTokens, Vocabulary, reconcile_specials

log = logging.getLogger(__name__)


def _check_pieces(vocab: Mapping[Piece, Token]) -> None:
    # decode can only invert byte-mapped characters
    for piece in vocab:
        if not BYTE_UNICODE.is_mapped(piece):
            raise ConfigError(
                f"vocabulary piece {piece!r} is not byte-mapped", option="vocab", value=piece
            )


class ByteLevelTokenizer:
    """
    GPT-2 style byte-level BPE tokenizer.

    Text is split by the configured pre-tokenizer, each chunk is UTF-8 encoded
    and byte-mapped to printable characters, reduced to pieces by the merge
    rank table and finally resolved to ids. Special tokens are matched whole
    before any of that happens.

    Without a static vocabulary, ids are handed out in first-seen order as new
    pieces are encoded. The merge cache and the vocabulary are the only mutable
    state and both are lock-guarded, so one instance can be shared by threads.

    Example:
       >>> tok = ByteLevelTokenizer({("h", "i"): 0})
       >>> ids = tok.encode("hi hi")
       >>> tok.decode(ids)
       'hi hi'
    """

    TOKENIZER_TYPE = "bpe"

    def __init__(
        self,
        ranks: Mapping[MergePair, int],
        vocab: Mapping[Piece, Token] | None = None,
        special_tokens: Mapping[str, Token] | None = None,
        options: TokenizerOptions | None = None,
    ) -> None:
        """
        :param ranks: Merge rank table, ``(left, right) -> rank``; may be empty.
        :param vocab: Optional static piece -> id vocabulary.
        :param special_tokens: Special token string -> fixed id.
        :param options: Tokenizer options, defaults when omitted.
        :raises ConfigError: If ranks are not unique, options reference
            unregistered special tokens, specials collide with ``vocab``, or a
            ``vocab`` piece holds a character outside the byte mapping.
        :raises SpecialTokenError: If two special tokens share an id.
        """
        self.options = options if options is not None else TokenizerOptions()

        if len(set(ranks.values())) != len(ranks):
            raise ConfigError("merge ranks must be unique", option="ranks")
        # immutable after construction, safe to read without locking
        self.ranks: MergeRanks = MappingProxyType(dict(ranks))

        self.special_toks = SpecialTokens(special_tokens)
        static = reconcile_specials(vocab, self.special_toks) if vocab else None
        if static:
            _check_pieces(static)
        self.vocab = Vocabulary(
            static,
            reserved_ids=self.special_toks.ids(),
            n_reserved=len(self.special_toks),
        )

        self.pre_tokenizer: PreTokenizer = get_pre_tokenizer(self.options.regex_preset)

        capacity = self.options.merge_cache_capacity
        self._cache: LRUCache[str, tuple[Piece, ...]] | None = (
            LRUCache(capacity) if capacity > 0 else None
        )

        self._allowed_special = resolve_allowed_special(self.options, self.special_toks)
        self._disallowed_special = resolve_disallowed_special(
            self.options, self.special_toks, self._allowed_special
        )
        self._bos_id = special_option_id(self.special_toks, "bos_token", self.options.bos_token)
        self._eos_id = special_option_id(self.special_toks, "eos_token", self.options.eos_token)

        log.info(
            f"tokenizer ready: {len(self.ranks)} merge rules, "
            f"{len(self.vocab)} vocabulary entries, {len(self.special_toks)} special tokens"
        )

    # encoding
    # ---------------------------------------------------------------------------

    def encode(self, text: str, add_special_tokens: bool = False) -> list[Token]:
        """
        Encode text into a sequence of token ids.

        :param text: Text to encode.
        :param add_special_tokens: Wrap the output in the configured
            ``bos_token``/``eos_token``.
        :returns: Encoded token sequence.
        :raises SpecialTokenError: If a disallowed special token occurs in ``text``.
        :raises SequenceTooLongError: If the output exceeds ``max_length`` and
            truncation is disabled.
        """
        check_disallowed(text, self._disallowed_special)

        ids: list[Token] = []
        if add_special_tokens and self._bos_id is not None:
            ids.append(self._bos_id)

        allowed = self._allowed_special
        for chunk in self.pre_tokenizer.segment(text, allowed):
            # special tokens bypass bpe entirely
            if chunk in allowed:
                ids.append(self.special_toks.match(chunk))
                continue
            for piece in self._bpe(BYTE_UNICODE.encode_text(chunk)):
                ids.append(self.vocab.resolve(piece))

        if add_special_tokens and self._eos_id is not None:
            ids.append(self._eos_id)

        return enforce_max_length(ids, self.options)

    def encode_batch(
        self, texts: list[str], num_workers: int | None = None
    ) -> list[list[Token]]:
        """
        Encode many texts, in parallel across a thread pool.

        :param texts: Text inputs to encode.
        :param num_workers: Worker count, defaults to the CPU count; 1 encodes serially.
        :returns: Encoded token sequences in input order.
        """
        return run_batch(self.encode, texts, num_workers)

    def _bpe(self, mapped: str) -> tuple[Piece, ...]:
        """Run the merge engine on a byte-mapped chunk through the cache."""
        if self._cache is None:
            return tuple(apply_merges(mapped, self.ranks))

        cached = self._cache.get(mapped)
        if cached is not None:
            return cached
        pieces = tuple(apply_merges(mapped, self.ranks))
        self._cache.set(mapped, pieces)
        return pieces

    # decoding
    # ---------------------------------------------------------------------------

    def decode(self, tokens: list[Token], errors: str = "replace") -> str:
        """
        Decode token ids back into text.

        Bytes of all tokens are joined first and decoded once, since a single
        piece may hold only part of a multi-byte character.

        :param tokens: Token sequence to decode.
        :param errors: How to handle invalid UTF-8, "strict" or "replace".
        :raises UnknownTokenIdError: If an id is unknown and
            ``throw_on_unknown_id`` is set.
        """
        return self.decode_bytes(tokens).decode("utf-8", errors=errors)

    def decode_bytes(self, tokens: list[Token]) -> bytes:
        """Decode token ids into the raw byte stream they represent."""
        buf = bytearray()
        for tok in tokens:
            seq = self.special_toks.token_for(tok)
            if seq is not None:
                buf += seq.encode("utf-8")
                continue
            piece = self.vocab.get_piece(tok)
            if piece is None:
                if self.options.throw_on_unknown_id:
                    raise UnknownTokenIdError(
                        "token not found in vocabulary", token_id=tok
                    )
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
        """Decode multiple token sequences, in parallel across a thread pool."""
        return run_batch(lambda toks: self.decode(toks, errors), token_batch, num_workers)

    # lookups
    # ---------------------------------------------------------------------------

    def piece(self, token: Token) -> Piece:
        """
        Return the raw piece behind ``token`` without decoding it.

        Special tokens are returned as their literal string.

        :raises UnknownTokenIdError: If ``token`` is unknown.
        """
        seq = self.special_toks.token_for(token)
        if seq is not None:
            return seq
        return self.vocab.resolve_id(token)

    def piece_text(self, token: Token) -> str:
        """Return a human-readable rendering of ``token`` for reports."""
        seq = self.special_toks.token_for(token)
        if seq is not None:
            return seq
        return render_piece(self.vocab.resolve_id(token))

    @property
    def merges(self) -> list[MergePair]:
        """Merge rules in rank order."""
        return [pair for pair, _ in sorted(self.ranks.items(), key=lambda x: x[1])]

    def vocab_size(self) -> int:
        """Return the number of ids known so far, special tokens included."""
        return len(self.vocab) + len(self.special_toks)

    def cache_info(self) -> CacheInfo | None:
        """Return merge cache statistics, or None when caching is disabled."""
        return self._cache.info() if self._cache is not None else None

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    # persistence
    # ---------------------------------------------------------------------------

    def save(self, directory: str | Path) -> None:
        """
        Save merges, vocabulary and special tokens into ``directory``.

        The vocabulary is a snapshot that includes ids assigned dynamically so
        far, so a reloaded tokenizer reproduces every id emitted until now.
        """
        out = Path(directory)
        log.info(f"saving tokenizer to {out}")
        if not self.ranks:
            log.warning("saving tokenizer without merge rules, it cannot be reloaded")

        vocab = {**self.special_toks.as_dict(), **self.vocab.to_dict()}
        vocab = dict(sorted(vocab.items(), key=lambda x: x[1]))

        artifacts.write_merges(out / artifacts.MERGES_FILENAME, self.ranks)
        artifacts.write_vocab(out / artifacts.VOCAB_FILENAME, vocab)
        if self.special_toks:
            artifacts.write_special_tokens(
                out / artifacts.SPECIALS_FILENAME, self.special_toks.as_dict()
            )
        log.info("tokenizer saved successfully")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(merges={len(self.ranks)}, "
            f"vocab={len(self.vocab)}, specials={len(self.special_toks)})"
        )


__all__ = ["ByteLevelTokenizer"]
