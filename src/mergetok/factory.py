"""Factory functions for creating tokenizers."""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Final, Literal, overload

from . import artifacts
from .config import TokenizerOptions
from .errors import ConfigError
from .mergeable import MergeableRanksTokenizer
from .tokenizer import ByteLevelTokenizer
from .types import Token

log = logging.getLogger(__name__)

type TokenizerKind = Literal["bpe", "mergeable"]
type Tokenizer = ByteLevelTokenizer | MergeableRanksTokenizer

_TOKENIZER_REGISTRY: Final[dict[str, type[Tokenizer]]] = {
    ByteLevelTokenizer.TOKENIZER_TYPE: ByteLevelTokenizer,
    MergeableRanksTokenizer.TOKENIZER_TYPE: MergeableRanksTokenizer,
}


def list_tokenizers() -> list[str]:
    """Return available tokenizer kinds."""
    return list(_TOKENIZER_REGISTRY.keys())


# Loading from artifacts
# ===================================================================================


def from_files(
    merges_path: str | Path,
    vocab_path: str | Path | None = None,
    special_tokens: Mapping[str, Token] | None = None,
    options: TokenizerOptions | None = None,
) -> ByteLevelTokenizer:
    """
    Build a BPE tokenizer from a merges file and an optional vocabulary file.

    :param merges_path: Path to ``merges.txt``.
    :param vocab_path: Path to ``vocab.json``; ids are assigned on first sight when omitted.
    :param special_tokens: Special token string -> fixed id.
    :param options: Tokenizer options.
    :raises ArtifactNotFoundError: If a file does not exist.
    :raises ArtifactInvalidError: If a file is malformed or holds no merges.

    .. code-block:: python

        tok = from_files("merges.txt", "vocab.json", {"<|endoftext|>": 50256})
        ids = tok.encode("Hello world")
    """
    ranks = artifacts.read_merges(merges_path)
    vocab = artifacts.read_vocab(vocab_path) if vocab_path is not None else None
    return ByteLevelTokenizer(ranks, vocab, special_tokens, options)


def from_pretrained(
    directory: str | Path, options: TokenizerOptions | None = None
) -> ByteLevelTokenizer:
    """
    Load a BPE tokenizer saved by :meth:`ByteLevelTokenizer.save` or the trainer.

    ``merges.txt`` is required, ``vocab.json`` and ``special_tokens.json`` are
    picked up when present.

    :param directory: Directory holding the artifacts.
    :raises ArtifactNotFoundError: If ``merges.txt`` does not exist.
    :raises ArtifactInvalidError: If an artifact is malformed.

    .. code-block:: python

        tok = from_pretrained("artifacts/")
    """
    root = Path(directory)
    vocab_path = root / artifacts.VOCAB_FILENAME
    specials_path = root / artifacts.SPECIALS_FILENAME

    specials = artifacts.read_special_tokens(specials_path) if specials_path.is_file() else None
    log.info(f"loading pretrained tokenizer from {root}")
    return from_files(
        root / artifacts.MERGES_FILENAME,
        vocab_path if vocab_path.is_file() else None,
        specials,
        options,
    )


# ===================================================================================


# Tokenizer factory
# ===================================================================================


@overload
def get_tokenizer(
    kind: Literal["bpe"] = ...,
    source: str | Path | None = None,
    *,
    options: TokenizerOptions | None = None,
) -> ByteLevelTokenizer: ...


@overload
def get_tokenizer(
    kind: Literal["mergeable"],
    source: str | Path | None = None,
    *,
    options: TokenizerOptions | None = None,
    encoding_name: str | None = None,
) -> MergeableRanksTokenizer: ...


def get_tokenizer(
    kind: TokenizerKind = "bpe",
    source: str | Path | None = None,
    *,
    options: TokenizerOptions | None = None,
    encoding_name: str | None = None,
) -> Tokenizer:
    """
    Create a tokenizer of the given kind.

    :param kind: "bpe" for merge-rule BPE, "mergeable" for greedy mergeable ranks.
    :param source: For "bpe", an artifact directory (None gives a tokenizer
                   without merges, one id per byte). For "mergeable", a ranks JSON file.
    :param options: Tokenizer options.
    :param encoding_name: For "mergeable" without ``source``, a ``tiktoken`` encoding name.
    :return: Configured tokenizer instance.
    :raises ConfigError: If ``kind`` is unknown or "mergeable" gets no source.

    .. code-block:: python

        tok = get_tokenizer("bpe", "artifacts/")
        tok = get_tokenizer("mergeable", encoding_name="cl100k_base")
    """
    if kind not in _TOKENIZER_REGISTRY:
        raise ConfigError(
            f"unknown tokenizer kind, valid kinds: {', '.join(list_tokenizers())}",
            option="kind",
            value=kind,
        )

    if kind == ByteLevelTokenizer.TOKENIZER_TYPE:
        if source is None:
            return ByteLevelTokenizer({}, options=options)
        return from_pretrained(source, options)

    if source is not None:
        return MergeableRanksTokenizer.from_json(source, options=options)
    if encoding_name is not None:
        return MergeableRanksTokenizer.from_tiktoken(encoding_name, options)
    raise ConfigError(
        "mergeable tokenizer needs a ranks file or a tiktoken encoding name",
        option="source",
        value=None,
    )


# ===================================================================================


__all__ = ["from_files", "from_pretrained", "get_tokenizer", "list_tokenizers"]
