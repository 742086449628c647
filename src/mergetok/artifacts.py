"""
Reading and writing tokenizer artifacts.

Merges are stored as a line-oriented text file, one ``left right`` pair per
line in rank order, after an optional block of leading ``#`` comment lines. Vocabularies, special
tokens and mergeable ranks are flat JSON objects of string -> int. Writes go
to a temporary file in the destination directory which is then renamed over
the target, so readers never observe a half-written artifact.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Final

from .errors import ArtifactInvalidError, ArtifactNotFoundError
from .types import MergePair, MergeRanks, Token

MERGES_FILENAME: Final[str] = "merges.txt"
VOCAB_FILENAME: Final[str] = "vocab.json"
SPECIALS_FILENAME: Final[str] = "special_tokens.json"
RANKS_FILENAME: Final[str] = "ranks.json"
MERGES_HEADER: Final[str] = "#version: 0.2"

log = logging.getLogger(__name__)


def atomic_write_text(path: str | Path, content: str) -> None:
    """
    Write ``content`` to ``path`` atomically.

    The data is written to a temporary sibling file and moved into place with
    ``os.replace``; the temporary file is removed if anything fails.
    """
    target = Path(path)
    # create directory if does not exist
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _require_file(path: str | Path, kind: str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise ArtifactNotFoundError(f"{kind} file does not exist", path=str(p))
    return p


def read_merges(path: str | Path) -> dict[MergePair, int]:
    """
    Load a merges file as a rank table.

    :param path: Path to a ``merges.txt`` style file.
    :returns: Mapping of ``(left, right)`` to rank, in file order.
    :raises ArtifactNotFoundError: If the file does not exist.
    :raises ArtifactInvalidError: If the file is unreadable, a line is not a
        pair, or no pair is found.
    """
    p = _require_file(path, "merges")
    log.info(f"loading merges from {p}")

    ranks: dict[MergePair, int] = {}
    try:
        with p.open("r", encoding="utf-8") as f:
            for lineno, raw in enumerate(f, start=1):
                line = raw.strip()
                if not line:
                    continue
                # only the leading block may hold comments: "#" is a valid piece
                if not ranks and line.startswith("#"):
                    continue
                parts = line.split()
                if len(parts) != 2:
                    raise ArtifactInvalidError(
                        f"expected 'left right' merge pair, got {line!r}",
                        path=str(p),
                        line=lineno,
                    )
                pair = (parts[0], parts[1])
                # duplicated pairs keep their first (highest priority) rank
                if pair not in ranks:
                    ranks[pair] = len(ranks)
    except (OSError, UnicodeDecodeError) as e:
        raise ArtifactInvalidError(f"unreadable merges file: {e}", path=str(p)) from e

    if not ranks:
        raise ArtifactInvalidError("no merges parsed", path=str(p))

    log.debug(f"loaded {len(ranks)} merge rules")
    return ranks


def write_merges(
    path: str | Path,
    merges: Iterable[MergePair] | MergeRanks,
    header: str | None = MERGES_HEADER,
) -> None:
    """
    Persist merges in rank order.

    :param merges: Ordered pairs, or a rank table (sorted by rank before writing).
    :param header: Optional comment line written first.
    """
    if isinstance(merges, Mapping):
        pairs = [pair for pair, _ in sorted(merges.items(), key=lambda x: x[1])]
    else:
        pairs = list(merges)

    lines = [header] if header else []
    lines.extend(f"{left} {right}" for left, right in pairs)
    atomic_write_text(path, "\n".join(lines) + "\n")
    log.debug(f"wrote {len(pairs)} merge rules to {path}")


def _read_int_map(path: str | Path, kind: str) -> dict[str, int]:
    """Load a flat JSON object of string -> non-negative int."""
    p = _require_file(path, kind)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArtifactInvalidError(f"malformed {kind} json: {e}", path=str(p)) from e

    if not isinstance(data, dict):
        raise ArtifactInvalidError(
            f"{kind} json must be an object, got {type(data).__name__}", path=str(p)
        )
    if not data:
        raise ArtifactInvalidError(f"empty {kind} json", path=str(p))
    for key, value in data.items():
        # bool is an int subclass, reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ArtifactInvalidError(
                f"{kind} entry {key!r} must map to a non-negative integer, got {value!r}",
                path=str(p),
            )
    return data


def _write_int_map(path: str | Path, mapping: Mapping[str, int]) -> None:
    # keep non-ascii pieces readable instead of \u escapes
    atomic_write_text(path, json.dumps(dict(mapping), ensure_ascii=False, indent=2) + "\n")


def read_vocab(path: str | Path) -> dict[str, Token]:
    """
    Load a ``vocab.json`` piece -> id mapping.

    :raises ArtifactNotFoundError: If the file does not exist.
    :raises ArtifactInvalidError: If the JSON is malformed, empty or not a flat
        string -> int object.
    """
    vocab = _read_int_map(path, "vocab")
    log.info(f"loaded vocabulary with {len(vocab)} entries from {path}")
    return vocab


def write_vocab(path: str | Path, vocab: Mapping[str, Token]) -> None:
    """Persist a piece -> id mapping as UTF-8 JSON."""
    _write_int_map(path, vocab)
    log.debug(f"wrote {len(vocab)} vocabulary entries to {path}")


def read_special_tokens(path: str | Path) -> dict[str, Token]:
    """Load a special token -> id JSON mapping."""
    return _read_int_map(path, "special tokens")


def write_special_tokens(path: str | Path, special_toks: Mapping[str, Token]) -> None:
    _write_int_map(path, special_toks)


def read_mergeable_ranks(path: str | Path) -> dict[str, int]:
    """Load a byte-mapped piece -> rank JSON mapping for greedy tokenizers."""
    ranks = _read_int_map(path, "ranks")
    log.info(f"loaded {len(ranks)} mergeable ranks from {path}")
    return ranks


def write_mergeable_ranks(path: str | Path, ranks: Mapping[str, int]) -> None:
    _write_int_map(path, ranks)


__all__ = [
    "MERGES_FILENAME",
    "VOCAB_FILENAME",
    "SPECIALS_FILENAME",
    "RANKS_FILENAME",
    "atomic_write_text",
    "read_merges",
    "write_merges",
    "read_vocab",
    "write_vocab",
    "read_special_tokens",
    "write_special_tokens",
    "read_mergeable_ranks",
    "write_mergeable_ranks",
]
