"""Benchmark training, encode_batch() and decode_batch() on a slice of a Gutenberg dataset.

Outputs one markdown table row:
  Corpus Size | Vocab Size | Training Time | Encoding Throughput |
  Decoding Throughput | Compression Ratio | Size Reduction
"""

import argparse
import logging
import time
from pathlib import Path

from datasets import load_dataset

from mergetok import (
    BPETrainer,
    ByteLevelTokenizer,
    TrainerOptions,
    from_pretrained,
)

HF_DATASET = "stevez80/Sci-Fi-Books-gutenberg"

log = logging.getLogger("bench")


def load_corpus(num_docs: int | None) -> list[str]:
    """Load up to `num_docs` documents via dataset indexing; full dataset when None."""
    log.info(f"loading {HF_DATASET} (non-streaming)")
    ds = load_dataset(HF_DATASET, split="train")
    if num_docs is not None:
        return ds[:num_docs]["text"]
    return ds["text"]


def train_tokenizer(docs: list[str], vocab_size: int) -> tuple[ByteLevelTokenizer, float]:
    """Train merges on `docs` and return a tokenizer plus training time in seconds."""
    trainer = BPETrainer(TrainerOptions(vocab_size=vocab_size))
    start = time.perf_counter()
    result = trainer.train_from_texts(docs)
    elapsed = time.perf_counter() - start
    return ByteLevelTokenizer(result.ranks, result.vocab), elapsed


def load_or_train(
    model_dir: Path | None, docs: list[str], vocab_size: int
) -> tuple[ByteLevelTokenizer, float]:
    """Return (tokenizer, training_seconds), loading from disk when requested."""
    if model_dir and model_dir.is_dir():
        log.info(f"loading tokenizer from {model_dir}")
        return from_pretrained(model_dir), 0.0
    if model_dir:
        log.warning(f"no tokenizer at {model_dir}, training a new one")
    log.info(f"training new tokenizer (vocab_size={vocab_size:,})")
    return train_tokenizer(docs, vocab_size)


def main() -> None:
    """Run the benchmark and print a markdown table row."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    parser = argparse.ArgumentParser(
        description="Benchmark mergetok training, encode_batch() and decode_batch()."
    )
    parser.add_argument(
        "--num-docs",
        type=int,
        default=None,
        help="Number of documents to use (default: full dataset).",
    )
    parser.add_argument(
        "--vocab-size",
        type=int,
        default=10_000,
        help="Vocab size for training (default: 10,000).",
    )
    parser.add_argument(
        "--model-dir",
        type=str,
        default=None,
        help="Optional directory with saved artifacts; default trains a fresh tokenizer.",
    )
    parser.add_argument(
        "--save-dir",
        type=str,
        default=None,
        help="Optional directory to save the tokenizer to after benchmarking.",
    )
    args = parser.parse_args()

    docs = load_corpus(args.num_docs)
    if not docs:
        raise RuntimeError("No documents loaded from dataset.")

    total_bytes = sum(len(d.encode("utf-8")) for d in docs)
    corpus_mb = total_bytes / (1024 * 1024)

    model_dir = Path(args.model_dir) if args.model_dir else None
    tokenizer, train_secs = load_or_train(model_dir, docs, args.vocab_size)

    # --- Encoding ---
    t0 = time.perf_counter()
    encoded: list[list[int]] = tokenizer.encode_batch(docs)
    encode_elapsed = time.perf_counter() - t0
    encode_mbps = total_bytes / encode_elapsed / (1024 * 1024)

    # --- Decoding ---
    t0 = time.perf_counter()
    tokenizer.decode_batch(encoded, errors="replace")
    decode_elapsed = time.perf_counter() - t0
    total_tokens = sum(len(seq) for seq in encoded)
    decode_mtps = total_tokens / decode_elapsed / 1_000_000

    # --- Compression stats ---
    compression_ratio = total_bytes / total_tokens
    size_reduction = (1 - 1 / compression_ratio) * 100

    if train_secs >= 60:
        train_str = f"{train_secs / 60:.2f} mins"
    else:
        train_str = f"{train_secs:.1f} secs"

    log.info(f"merge cache: {tokenizer.cache_info()}")

    if args.save_dir:
        tokenizer.save(args.save_dir)

    # --- Output ---
    print()
    header = (
        f"| {'Corpus Size':22} | {'Vocab Size':10} | {'Training Time':18} "
        f"| {'Encoding Throughput':29} | {'Decoding Throughput':19} "
        f"| {'Compression Ratio':17} | {'Size Reduction':14} |"
    )
    sep = (
        f"| {'-' * 22} | {'-' * 10} | {'-' * 18} "
        f"| {'-' * 29} | {'-' * 19} "
        f"| {'-' * 17} | {'-' * 14} |"
    )
    row = (
        f"| {f'{corpus_mb:.2f} MB ({len(docs):,} docs)':22} "
        f"| {tokenizer.vocab_size():<10,} "
        f"| {train_str:18} "
        f"| {f'{encode_mbps:.2f} MB/s':29} "
        f"| {f'{decode_mtps:.2f}M tokens/s':19} "
        f"| {f'{compression_ratio:.2f}x':17} "
        f"| {f'{size_reduction:.1f}%':14} |"
    )
    print(header)
    print(sep)
    print(row)


if __name__ == "__main__":
    main()
