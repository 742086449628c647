"""Shared fixtures for the mergetok test suite."""

import pytest

import mergetok as mtok

CORPUS = [
    "hello world, hello there world!\n",
    "the quick brown fox jumps over the lazy dog\n",
    "hello hello world world the the\n",
    "café naïve 日本語 🎉 don't we'll\n",
]

SPECIALS = {"<|endoftext|>": 0}


@pytest.fixture(autouse=True)
def _progress_enabled():
    """Keep the global progress toggle from leaking between tests."""
    mtok.enable_progress()
    yield
    mtok.enable_progress()


@pytest.fixture
def trained():
    """Return a training result over a small mixed-script corpus."""
    trainer = mtok.BPETrainer(
        mtok.TrainerOptions(max_merges=60, special_tokens=SPECIALS)
    )
    return trainer.train_from_texts(CORPUS)


@pytest.fixture
def bpe_tokenizer(trained):
    """Return a tokenizer built from the trained merges and vocabulary."""
    return mtok.ByteLevelTokenizer(trained.ranks, trained.vocab, SPECIALS)


@pytest.fixture
def byte_tokenizer():
    """Return a tokenizer without merges: one id per byte, assigned on first sight."""
    return mtok.ByteLevelTokenizer({})
