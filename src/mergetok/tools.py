"""
Helpers built on the public tokenizer contract: token statistics and
trimming text to a token budget.
"""

from collections import Counter
from dataclasses import dataclass

import regex as re

from .types import Piece, SupportsTokenize

# runs of non-space or space, separators kept so joins are lossless
_WORD_RUNS = re.compile(r"\S+|\s+")


@dataclass(frozen=True)
class TokenStats:
    """Token frequency summary of one text."""

    total_tokens: int
    top_tokens: list[tuple[Piece, int]]
    top_bigrams: list[tuple[tuple[Piece, Piece], int]]


def analyze(tokenizer: SupportsTokenize, text: str, top: int = 20) -> TokenStats:
    """
    Count the most frequent tokens and adjacent token pairs in ``text``.

    Entries are ordered by count, ties by ascending token id, so reports are
    stable across runs.

    :param tokenizer: Any tokenizer with ``encode`` and ``piece``.
    :param text: Text to analyse.
    :param top: Number of entries kept in each list.
    """
    ids = tokenizer.encode(text)
    freq = Counter(ids)
    bigrams = Counter(zip(ids, ids[1:]))

    top_ids = sorted(freq.items(), key=lambda x: (-x[1], x[0]))[:top]
    top_pairs = sorted(bigrams.items(), key=lambda x: (-x[1], x[0]))[:top]

    return TokenStats(
        total_tokens=len(ids),
        top_tokens=[(tokenizer.piece(tok), count) for tok, count in top_ids],
        top_bigrams=[
            ((tokenizer.piece(a), tokenizer.piece(b)), count) for (a, b), count in top_pairs
        ],
    )


def trim_to_budget(
    tokenizer: SupportsTokenize, text: str, budget: int, ellipsis: str = "…"
) -> tuple[str, int]:
    """
    Cut ``text`` on word boundaries so that it encodes into at most ``budget`` tokens.

    A trimmed snippet ends with ``ellipsis``, which counts against the budget.

    :returns: The snippet and the number of tokens it encodes to.
    """
    if budget <= 0 or not text:
        return "", 0

    n_tokens = len(tokenizer.encode(text))
    if n_tokens <= budget:
        return text, n_tokens

    runs = _WORD_RUNS.findall(text)

    def fits(n_runs: int) -> bool:
        return len(tokenizer.encode("".join(runs[:n_runs]) + ellipsis)) <= budget

    # binary search for the longest prefix of runs that still fits
    lo, hi = 0, len(runs)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if fits(mid):
            lo = mid
        else:
            hi = mid - 1

    if lo == 0 and not fits(0):
        return "", 0

    snippet = "".join(runs[:lo]) + ellipsis
    return snippet, len(tokenizer.encode(snippet))


__all__ = ["TokenStats", "analyze", "trim_to_budget"]
