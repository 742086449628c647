"""Unit tests for BPE training."""

import logging

import pytest

import mergetok as mtok
from mergetok import (
    ArtifactNotFoundError,
    BPETrainer,
    BYTE_UNICODE,
    ConfigError,
    TrainerOptions,
)

from conftest import CORPUS


class RecordingProgress:
    """Progress reporter that remembers every event."""

    def __init__(self):
        self.events = []

    def on_start(self, target_merges, n_distinct):
        self.events.append(("start", target_merges, n_distinct))

    def on_merge(self, n_done, target_merges, pair, freq):
        self.events.append(("merge", n_done, pair, freq))

    def on_done(self, n_done):
        self.events.append(("done", n_done))


# Merge selection
# ---------------------------------------------------------------------------


def test_most_frequent_pair_first():
    """Repeated "aa" learns (a, a) before (Ġ, a)."""
    result = BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
    assert result.merges == [("a", "a")]
    assert result.frequencies == [3]
    assert result.n_merges_completed == 1


def test_tie_break_is_lexicographic():
    opts = TrainerOptions(max_merges=1, min_pair_frequency=1)
    result = BPETrainer(opts).train_from_texts(["cd", "ab"])
    assert result.merges == [("a", "b")]


def test_merges_cascade_across_rounds():
    opts = TrainerOptions(max_merges=2, min_pair_frequency=1)
    result = BPETrainer(opts).train_from_texts(["abc abc"])
    assert result.merges[0] in {("a", "b"), ("b", "c")}
    assert len(result.merges) == 2
    assert result.ranks == {pair: i for i, pair in enumerate(result.merges)}


def test_threshold_stops_training(caplog):
    opts = TrainerOptions(max_merges=10, min_pair_frequency=4)
    with caplog.at_level(logging.WARNING, logger="mergetok.trainer"):
        result = BPETrainer(opts).train_from_texts(["aa aa aa"])
    assert result.merges == []
    assert result.n_merges_completed == 0
    assert "training stopped" in caplog.text


def test_empty_corpus_is_not_an_error():
    result = BPETrainer(TrainerOptions(max_merges=5)).train_from_texts([])
    assert result.merges == []
    # base symbols are always present
    assert len(result.vocab) == 256


def test_merge_count_is_bounded():
    opts = TrainerOptions(vocab_size=256 + 1 + 4, special_tokens={"<s>": 0})
    result = BPETrainer(opts).train_from_texts(CORPUS * 5)
    assert len(result.merges) <= 4
    assert all(freq >= opts.min_pair_frequency for freq in result.frequencies)
    # frequencies never grow, each round picks the current maximum
    assert result.frequencies == sorted(result.frequencies, reverse=True)


def test_training_is_deterministic():
    opts = TrainerOptions(max_merges=40)
    a = BPETrainer(opts).train_from_texts(CORPUS)
    b = BPETrainer(opts).train_from_texts(CORPUS)
    assert a.merges == b.merges
    assert a.vocab == b.vocab


# Vocabulary
# ---------------------------------------------------------------------------


def test_vocab_layout(trained):
    vocab = trained.vocab
    assert vocab["<|endoftext|>"] == 0
    alphabet = BYTE_UNICODE.alphabet()
    assert [vocab[ch] for ch in alphabet] == list(range(1, 257))
    assert len(set(vocab.values())) == len(vocab)


def test_vocab_holds_every_merge_product(trained):
    for left, right in trained.merges:
        assert left + right in trained.vocab


def test_special_tokens_in_corpus_are_not_merged():
    opts = TrainerOptions(max_merges=20, min_pair_frequency=1, special_tokens={"<s>": 0})
    result = BPETrainer(opts).train_from_texts(["<s><s><s><s>"])
    assert result.merges == []


# Corpus files and artifacts
# ---------------------------------------------------------------------------


def test_missing_corpus_raises(tmp_path):
    with pytest.raises(ArtifactNotFoundError):
        BPETrainer().train([tmp_path / "nope.txt"])


def test_train_requires_a_corpus_path():
    with pytest.raises(ConfigError) as exc:
        BPETrainer().train([])
    assert exc.value.option == "corpus_paths"


def test_train_from_file_strips_bom(tmp_path):
    corpus = tmp_path / "corpus.txt"
    corpus.write_text("\ufeffaa aa aa", encoding="utf-8")

    opts = TrainerOptions(max_merges=3)
    from_file = BPETrainer(opts).train([corpus])
    from_text = BPETrainer(opts).train_from_texts(["aa aa aa"])
    assert from_file.merges == from_text.merges
    assert from_file.vocab == from_text.vocab


def test_train_to_files_roundtrip(tmp_path):
    corpus = tmp_path / "corpus.txt"
    corpus.write_text("".join(CORPUS), encoding="utf-8")
    out = tmp_path / "artifacts"

    opts = TrainerOptions(max_merges=30, special_tokens={"<|endoftext|>": 0})
    result = BPETrainer(opts).train_to_files([corpus], out)

    merges_text = (out / "merges.txt").read_text(encoding="utf-8")
    assert merges_text.startswith("#version: 0.2\n")

    tok = mtok.from_pretrained(out)
    assert tok.merges == result.merges
    for text in CORPUS:
        assert tok.decode(tok.encode(text)) == text
    assert tok.encode("<|endoftext|>") == [0]


# Progress and logging
# ---------------------------------------------------------------------------


def test_progress_events():
    progress = RecordingProgress()
    opts = TrainerOptions(max_merges=1)
    BPETrainer(opts, progress=progress).train_from_texts(["aa aa aa"])
    assert progress.events == [
        ("start", 1, 2),
        ("merge", 1, ("a", "a"), 3),
        ("done", 1),
    ]


def test_verbose_logs_each_merge(caplog):
    opts = TrainerOptions(max_merges=1, verbose=True)
    with caplog.at_level(logging.INFO, logger="mergetok.trainer"):
        BPETrainer(opts).train_from_texts(["aa aa aa"])
    assert "merge 1/1: 'a' + 'a' -> 'aa'" in caplog.text


def test_progress_can_be_disabled(caplog, monkeypatch):
    monkeypatch.setenv("MERGETOK_DISABLE_PROGRESS", "1")
    with caplog.at_level(logging.INFO, logger="mergetok.trainer"):
        BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
    assert "learning up to" not in caplog.text


def test_disable_progress_toggle(caplog):
    mtok.disable_progress()
    with caplog.at_level(logging.INFO, logger="mergetok.trainer"):
        BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
    assert "learning up to" not in caplog.text


def test_training_is_timed(caplog):
    with caplog.at_level(logging.INFO, logger="mergetok._decorators"):
        BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa"])
    assert "training completed in" in caplog.text


def test_progress_disabled_context_restores_state(caplog):
    with mtok.progress_disabled():
        with caplog.at_level(logging.INFO, logger="mergetok.trainer"):
            BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
        assert "learning up to" not in caplog.text

    caplog.clear()
    with caplog.at_level(logging.INFO, logger="mergetok.trainer"):
        BPETrainer(TrainerOptions(max_merges=1)).train_from_texts(["aa aa aa"])
    assert "learning up to" in caplog.text
