"""Option bundles for tokenizers and the trainer."""

from dataclasses import dataclass, field
from typing import Final, Literal

from .errors import ConfigError
from .pattern import TokenPattern
from .types import Token

DEFAULT_CACHE_CAPACITY: Final[int] = 50_000

type SpecialSelection = Literal["all"] | frozenset[str]


@dataclass(frozen=True)
class TokenizerOptions:
    """
    Cross-tokenizer options.

    :param max_length: Maximum number of ids returned by ``encode`` (None = unlimited).
    :param truncate: Truncate to ``max_length`` when exceeded; raise
        ``SequenceTooLongError`` instead when False.
    :param throw_on_unknown_id: Raise on undecodable ids; skip them when False.
    :param merge_cache_capacity: Entries kept in the merge LRU cache, 0 disables it.
    :param regex_preset: Pre-tokenizer preset (name or ``TokenPattern``).
    :param allowed_special: Special tokens recognised in input text, or "all".
    :param disallowed_special: Special tokens whose presence in input text is an
        error, or "all" for every registered token not in ``allowed_special``.
    :param bos_token: Special token prepended when ``add_special_tokens`` is set.
    :param eos_token: Special token appended when ``add_special_tokens`` is set.
    """

    max_length: int | None = None
    truncate: bool = True
    throw_on_unknown_id: bool = True
    merge_cache_capacity: int = DEFAULT_CACHE_CAPACITY
    regex_preset: TokenPattern | str = TokenPattern.GPT2
    allowed_special: SpecialSelection = "all"
    disallowed_special: SpecialSelection = frozenset()
    bos_token: str | None = None
    eos_token: str | None = None

    def __post_init__(self) -> None:
        if self.max_length is not None and self.max_length <= 0:
            raise ConfigError(
                "max_length must be positive", option="max_length", value=self.max_length
            )
        if self.merge_cache_capacity < 0:
            raise ConfigError(
                "merge_cache_capacity must be >= 0",
                option="merge_cache_capacity",
                value=self.merge_cache_capacity,
            )
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "regex_preset", TokenPattern.get(self.regex_preset))
        for name in ("allowed_special", "disallowed_special"):
            selection = getattr(self, name)
            if selection == "all":
                continue
            if isinstance(selection, str):
                raise ConfigError(
                    f'{name} must be "all" or a set of tokens', option=name, value=selection
                )
            object.__setattr__(self, name, frozenset(selection))


@dataclass(frozen=True)
class TrainerOptions:
    """
    Options for :class:`~mergetok.trainer.BPETrainer`.

    :param vocab_size: Total vocabulary size including special tokens and the
        256 base symbols.
    :param max_merges: Number of merges to learn; overrides ``vocab_size`` when set.
    :param min_pair_frequency: Minimum frequency for a pair to be merged.
    :param special_tokens: Reserved special tokens and their fixed ids.
    :param pattern: Pre-tokenizer preset used to split the corpus.
    :param verbose: Log each learned merge at INFO level.
    """

    vocab_size: int = 5000
    max_merges: int | None = None
    min_pair_frequency: int = 2
    special_tokens: dict[str, Token] = field(default_factory=dict)
    pattern: TokenPattern | str = TokenPattern.GPT2
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.vocab_size < 0:
            raise ConfigError(
                "vocab_size must be >= 0", option="vocab_size", value=self.vocab_size
            )
        if self.max_merges is not None and self.max_merges < 0:
            raise ConfigError(
                "max_merges must be >= 0", option="max_merges", value=self.max_merges
            )
        if self.min_pair_frequency < 1:
            raise ConfigError(
                "min_pair_frequency must be >= 1",
                option="min_pair_frequency",
                value=self.min_pair_frequency,
            )
        object.__setattr__(self, "pattern", TokenPattern.get(self.pattern))

    @property
    def target_merges(self) -> int:
        """Merge budget: ``max_merges`` or what fits in ``vocab_size``."""
        if self.max_merges is not None:
            return self.max_merges
        return max(0, self.vocab_size - len(self.special_tokens) - 256)


__all__ = ["TokenizerOptions", "TrainerOptions", "DEFAULT_CACHE_CAPACITY"]
