"""Piece <-> id vocabulary and special-token registry."""

import logging
import threading
from collections.abc import Container, Iterator, Mapping

from .errors import (
    ArtifactInvalidError,
    ConfigError,
    SpecialTokenError,
    UnknownTokenIdError,
)
from .types import Piece, Token, VocabMap

log = logging.getLogger(__name__)


def next_free_id(start: int, *taken: Container[int]) -> int:
    """Return the smallest id >= ``start`` absent from every ``taken`` container."""
    tok = start
    while any(tok in ids for ids in taken):
        tok += 1
    return tok


class SpecialTokens:
    """
    Immutable bidirectional map of special token strings and their ids.

    Special tokens share the id space with the vocabulary but bypass BPE.
    """

    def __init__(self, mapping: Mapping[str, Token] | None = None) -> None:
        """
        :param mapping: Special token string -> fixed id.
        :raises SpecialTokenError: If a token is empty, an id is negative or
            two tokens share the same id.
        """
        tok2id: dict[str, Token] = {}
        id2tok: dict[Token, str] = {}
        for seq, tok in (mapping or {}).items():
            if not seq:
                raise SpecialTokenError("special token must be a non-empty string")
            if isinstance(tok, bool) or not isinstance(tok, int) or tok < 0:
                raise SpecialTokenError(
                    f"special token id must be a non-negative integer, got {tok!r}",
                    found_tokens={seq},
                )
            if tok in id2tok:
                raise SpecialTokenError(
                    "duplicate token ids", found_tokens={seq, id2tok[tok]}
                )
            tok2id[seq] = tok
            id2tok[tok] = seq
        self._tok2id = tok2id
        self._id2tok = id2tok

    def match(self, text: str) -> Token | None:
        """Return the id of ``text`` if it is exactly a registered special token."""
        return self._tok2id.get(text)

    def token_for(self, tok: Token) -> str | None:
        return self._id2tok.get(tok)

    def ids(self) -> frozenset[Token]:
        return frozenset(self._id2tok)

    def tokens(self) -> list[str]:
        return list(self._tok2id)

    def as_dict(self) -> dict[str, Token]:
        return dict(self._tok2id)

    def __contains__(self, seq: object) -> bool:
        return seq in self._tok2id

    def __iter__(self) -> Iterator[str]:
        return iter(self._tok2id)

    def __len__(self) -> int:
        return len(self._tok2id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._tok2id!r})"


class Vocabulary:
    """
    Thread-safe bijection between pieces and token ids.

    Built from a static mapping (e.g. a loaded ``vocab.json``) or empty. Pieces
    not yet known are assigned the next unused id on first sight, so an empty
    vocabulary grows as text is encoded. Ids in ``reserved_ids`` (special
    tokens) are never handed out.
    """

    def __init__(
        self,
        static: Mapping[Piece, Token] | None = None,
        reserved_ids: Container[Token] | None = None,
        n_reserved: int = 0,
    ) -> None:
        """
        :param static: Optional fixed piece -> id mapping.
        :param reserved_ids: Ids owned by special tokens.
        :param n_reserved: Number of reserved ids, used as the offset of the
            first dynamically assigned id.
        :raises ArtifactInvalidError: If two static pieces share an id.
        """
        piece_to_id: VocabMap = {}
        id_to_piece: dict[Token, Piece] = {}
        for piece, tok in (static or {}).items():
            if tok in id_to_piece:
                raise ArtifactInvalidError(
                    f"duplicate token id {tok} for pieces {id_to_piece[tok]!r} and {piece!r}"
                )
            piece_to_id[piece] = tok
            id_to_piece[tok] = piece

        self._piece_to_id = piece_to_id
        self._id_to_piece = id_to_piece
        self._reserved: Container[Token] = reserved_ids if reserved_ids is not None else ()
        self._next_id = len(piece_to_id) + n_reserved
        self._lock = threading.Lock()

    def resolve(self, piece: Piece) -> Token:
        """Return the id of ``piece``, assigning the next unused id if it is new."""
        with self._lock:
            tok = self._piece_to_id.get(piece)
            if tok is not None:
                return tok

            tok = next_free_id(self._next_id, self._id_to_piece, self._reserved)
            self._piece_to_id[piece] = tok
            self._id_to_piece[tok] = piece
            self._next_id = tok + 1
            log.debug(f"assigned id {tok} to new piece {piece!r}")
            return tok

    def resolve_id(self, tok: Token) -> Piece:
        """
        Return the piece for ``tok``.

        :raises UnknownTokenIdError: If ``tok`` was never assigned.
        """
        with self._lock:
            piece = self._id_to_piece.get(tok)
        if piece is None:
            raise UnknownTokenIdError("token not found in vocabulary", token_id=tok)
        return piece

    def get_id(self, piece: Piece) -> Token | None:
        """Look up ``piece`` without assigning a new id."""
        with self._lock:
            return self._piece_to_id.get(piece)

    def get_piece(self, tok: Token) -> Piece | None:
        with self._lock:
            return self._id_to_piece.get(tok)

    def to_dict(self) -> VocabMap:
        """Snapshot of the vocabulary ordered by id."""
        with self._lock:
            return {
                piece: tok
                for tok, piece in sorted(self._id_to_piece.items(), key=lambda x: x[0])
            }

    def __contains__(self, piece: object) -> bool:
        with self._lock:
            return piece in self._piece_to_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._piece_to_id)


def reconcile_specials(
    static: Mapping[Piece, Token], specials: SpecialTokens
) -> VocabMap:
    """
    Check a static vocabulary against the special tokens sharing its id space.

    An entry identical to a special token (same string, same id) is dropped
    from the returned mapping since the special registry already owns it.
    Any other overlap is ambiguous and rejected.

    :raises ConfigError: If a static id belongs to a special token with a
        different string, or a special string has a different static id.
    """
    special_ids = specials.ids()
    cleaned: VocabMap = {}
    for piece, tok in static.items():
        special_id = specials.match(piece)
        if special_id is not None:
            if special_id != tok:
                raise ConfigError(
                    f"special token {piece!r} has id {special_id} but vocabulary maps it to {tok}",
                    option="special_tokens",
                    value={piece: special_id},
                )
            continue
        if tok in special_ids:
            raise ConfigError(
                f"vocabulary piece {piece!r} reuses special token id {tok}",
                option="special_tokens",
                value={specials.token_for(tok): tok},
            )
        cleaned[piece] = tok
    return cleaned


__all__ = ["SpecialTokens", "Vocabulary", "next_free_id", "reconcile_specials"]
