"""
Core Byte Pair Encoding (BPE) operations over byte-mapped strings.
"""

import sys
from collections import Counter
from collections.abc import Iterable
from typing import Final

from .types import MergePair, MergeRanks, Piece

# rank given to pairs absent from the merge table
_NO_RANK: Final[int] = sys.maxsize


def get_pairs(pieces: list[Piece]) -> set[MergePair]:
    """Return the set of adjacent piece pairs."""
    return {(pieces[i], pieces[i + 1]) for i in range(len(pieces) - 1)}


def count_pairs(
    splits: Iterable[list[Piece]], weights: Iterable[int]
) -> Counter[MergePair]:
    """
    Count adjacent pair frequencies across many piece lists.

    :param splits: Piece lists, one per distinct pre-token.
    :param weights: Occurrence count of each pre-token, aligned with ``splits``.
    :returns: Mapping of pairs to their weighted frequency.
    """
    counts: Counter[MergePair] = Counter()
    for pieces, weight in zip(splits, weights, strict=True):
        for i in range(len(pieces) - 1):
            counts[(pieces[i], pieces[i + 1])] += weight
    return counts


def bpe_merge(pieces: list[Piece], target: MergePair) -> list[Piece]:
    """
    Merge all non-overlapping occurrences of a target pair into one piece.

    Pieces are scanned left to right, so ``a a a`` merged on ``(a, a)``
    becomes ``aa a``.

    :param pieces: Current piece sequence.
    :param target: The adjacent pair to merge.
    :returns: New piece list with every occurrence of ``target`` merged.
    """
    left, right = target
    merged = left + right
    newpieces: list[Piece] = []

    i = 0
    n = len(pieces)
    while i < n:
        # check if we can form a pair and it matches the target
        if i < n - 1 and pieces[i] == left and pieces[i + 1] == right:
            newpieces.append(merged)
            i += 2
        else:
            newpieces.append(pieces[i])
            i += 1

    return newpieces


def apply_merges(mapped: str, ranks: MergeRanks) -> list[Piece]:
    """
    Reduce one byte-mapped pre-token to its BPE pieces.

    Starting from single characters, the lowest-rank adjacent pair present in
    ``ranks`` is merged everywhere, and the scan repeats until no ranked pair
    remains or a single piece is left. Worst case is quadratic in the chunk
    length, which is fine for word-sized pre-tokens.

    :param mapped: Pre-token already passed through the byte-unicode codec.
    :param ranks: Merge rank table, lower rank merges first.
    :returns: Pieces whose concatenation equals ``mapped``.
    """
    if not mapped:
        return []

    pieces = list(mapped)
    while len(pieces) > 1:
        best = min(get_pairs(pieces), key=lambda pair: ranks.get(pair, _NO_RANK))
        if best not in ranks:
            break
        pieces = bpe_merge(pieces, best)

    return pieces


__all__ = ["get_pairs", "count_pairs", "bpe_merge", "apply_merges"]
