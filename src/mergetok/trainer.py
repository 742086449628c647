"""Learning BPE merge rules from a text corpus."""

import logging
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from . import artifacts
from ._bpe import bpe_merge, count_pairs
from ._decorators import measure_time
from ._progress import _is_enabled
from ._sanitise import render_piece
from .byte_unicode import BYTE_UNICODE
from .config import TrainerOptions
from .errors import ArtifactNotFoundError, ConfigError
from .pattern import get_pre_tokenizer
from .types import MergePair, Piece, Token, VocabMap
from .vocab import SpecialTokens, next_free_id

log = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Results from one BPE training run."""

    merges: list[MergePair]
    frequencies: list[int]
    vocab: VocabMap
    n_merges_completed: int

    @property
    def ranks(self) -> dict[MergePair, int]:
        """Merge rank table, rank = position in ``merges``."""
        return {pair: rank for rank, pair in enumerate(self.merges)}


class ProgressReporter(Protocol):
    """Receives training progress events."""

    def on_start(self, target_merges: int, n_distinct: int) -> None: ...

    def on_merge(self, n_done: int, target_merges: int, pair: MergePair, freq: int) -> None: ...

    def on_done(self, n_done: int) -> None: ...


class LoggingProgress:
    """
    Default progress reporter writing to the module logger.

    Silent when progress is disabled through :func:`mergetok.disable_progress`
    or ``MERGETOK_DISABLE_PROGRESS=1``.
    """

    def __init__(self, every: int = 100) -> None:
        self.every = max(1, every)

    def on_start(self, target_merges: int, n_distinct: int) -> None:
        if _is_enabled():
            log.info(
                f"learning up to {target_merges} merges over {n_distinct} distinct pre-tokens"
            )

    def on_merge(self, n_done: int, target_merges: int, pair: MergePair, freq: int) -> None:
        if _is_enabled() and n_done % self.every == 0:
            log.debug(f"progress: {n_done}/{target_merges} merges")

    def on_done(self, n_done: int) -> None:
        if _is_enabled():
            log.info(f"learned {n_done} merges")


class BPETrainer:
    """
    Byte-level BPE trainer.

    Each round counts adjacent piece pairs over the corpus (weighted by how
    often each distinct pre-token occurs) and merges the most frequent one.
    Ties go to the lexicographically smallest pair, so training is
    deterministic for a given corpus.

    Example:
       >>> result = BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
       >>> result.merges
       [('a', 'a')]
    """

    def __init__(
        self, options: TrainerOptions | None = None, progress: ProgressReporter | None = None
    ) -> None:
        """
        :param options: Trainer options, defaults when omitted.
        :param progress: Progress reporter, a logging reporter when omitted.
        :raises SpecialTokenError: If ``options.special_tokens`` is invalid.
        """
        self.options = options if options is not None else TrainerOptions()
        self.special_toks = SpecialTokens(self.options.special_tokens)
        self.pre_tokenizer = get_pre_tokenizer(self.options.pattern)
        self.progress: ProgressReporter = progress if progress is not None else LoggingProgress()

    @measure_time("training")
    def train(self, corpus_paths: Iterable[str | Path]) -> TrainingResult:
        """
        Train on corpus files.

        :param corpus_paths: UTF-8 text files, a leading BOM is tolerated.
        :raises ConfigError: If no corpus path is given.
        :raises ArtifactNotFoundError: If any corpus file does not exist.
        """
        paths = [Path(p) for p in corpus_paths]
        if not paths:
            raise ConfigError("at least one corpus path is required", option="corpus_paths")
        # fail before any work starts
        for p in paths:
            if not p.is_file():
                raise ArtifactNotFoundError("corpus file does not exist", path=str(p))
        return self._train(_read_lines(paths))

    @measure_time("training")
    def train_from_texts(self, texts: Iterable[str]) -> TrainingResult:
        """Train on in-memory strings."""
        return self._train(texts)

    def train_to_files(
        self, corpus_paths: Iterable[str | Path], output_dir: str | Path
    ) -> TrainingResult:
        """
        Train on corpus files and write ``merges.txt``, ``vocab.json`` and,
        when special tokens are configured, ``special_tokens.json``.
        """
        result = self.train(corpus_paths)
        out = Path(output_dir)
        artifacts.write_merges(out / artifacts.MERGES_FILENAME, result.merges)
        artifacts.write_vocab(out / artifacts.VOCAB_FILENAME, result.vocab)
        if self.special_toks:
            artifacts.write_special_tokens(
                out / artifacts.SPECIALS_FILENAME, self.special_toks.as_dict()
            )
        log.info(f"training artifacts written to {out}")
        return result

    def _train(self, texts: Iterable[str]) -> TrainingResult:
        opts = self.options
        target = opts.target_merges
        min_freq = opts.min_pair_frequency

        # identical pre-tokens share one piece list, weighted by their count
        word_counts = self._count_words(texts)
        splits = [list(word) for word in word_counts]
        weights = list(word_counts.values())

        self.progress.on_start(target, len(splits))

        merges: list[MergePair] = []
        frequencies: list[int] = []
        while len(merges) < target:
            pair_counts = count_pairs(splits, weights)

            best: MergePair | None = None
            best_freq = 0
            for pair, freq in pair_counts.items():
                if freq < min_freq:
                    continue
                if freq > best_freq or (freq == best_freq and pair < best):
                    best, best_freq = pair, freq
            if best is None:
                break

            merges.append(best)
            frequencies.append(best_freq)
            splits = [bpe_merge(pieces, best) if len(pieces) > 1 else pieces for pieces in splits]

            if opts.verbose:
                left, right = best
                log.info(
                    f"merge {len(merges)}/{target}: {render_piece(left)!r} + "
                    f"{render_piece(right)!r} -> {render_piece(left + right)!r} "
                    f"({best_freq} occurrences)"
                )
            self.progress.on_merge(len(merges), target, best, best_freq)

        if len(merges) < target:
            log.warning(
                f"training stopped after {len(merges)} of {target} merges: "
                f"no pair occurs at least {min_freq} times"
            )
        self.progress.on_done(len(merges))

        return TrainingResult(
            merges=merges,
            frequencies=frequencies,
            vocab=self._build_vocab(splits, merges),
            n_merges_completed=len(merges),
        )

    def _count_words(self, texts: Iterable[str]) -> Counter[str]:
        specials = self.special_toks
        counts: Counter[str] = Counter()
        for text in texts:
            for chunk in self.pre_tokenizer.segment(text, specials.tokens()):
                # special tokens in the corpus are never merged
                if chunk in specials:
                    continue
                counts[BYTE_UNICODE.encode_text(chunk)] += 1
        return counts

    def _build_vocab(self, splits: list[list[Piece]], merges: list[MergePair]) -> VocabMap:
        """
        Assign ids: special tokens at their fixed ids, then the 256 base
        symbols, the pieces of the merged corpus in first-seen order and
        finally merge products never observed whole.
        """
        vocab: VocabMap = self.special_toks.as_dict()
        taken: set[Token] = set(vocab.values())
        next_id = 0

        def add(piece: Piece) -> None:
            nonlocal next_id
            if piece in vocab:
                return
            next_id = next_free_id(next_id, taken)
            vocab[piece] = next_id
            taken.add(next_id)
            next_id += 1

        for ch in BYTE_UNICODE.alphabet():
            add(ch)
        for pieces in splits:
            for piece in pieces:
                add(piece)
        for left, right in merges:
            add(left + right)

        log.debug(f"built vocabulary with {len(vocab)} entries")
        return vocab


def _read_lines(paths: list[Path]) -> Iterator[str]:
    """Stream corpus lines, keeping their line endings."""
    for p in paths:
        log.info(f"reading corpus file {p}")
        with p.open("r", encoding="utf-8-sig", newline="") as f:
            yield from f


__all__ = ["BPETrainer", "TrainingResult", "ProgressReporter", "LoggingProgress"]
