"""mergetok: byte-level BPE tokenization library."""

from ._progress import disable_progress, enable_progress, progress_disabled
from .byte_unicode import BYTE_UNICODE, ByteUnicodeCodec
from .cache import CacheInfo, LRUCache
from .config import TokenizerOptions, TrainerOptions
from .errors import (
    ArtifactInvalidError,
    ArtifactNotFoundError,
    ConfigError,
    MergeTokError,
    PatternError,
    SequenceTooLongError,
    SpecialTokenError,
    TokenizationError,
    UnknownTokenIdError,
)
from .factory import from_files, from_pretrained, get_tokenizer, list_tokenizers
from .mergeable import MergeableRanksTokenizer
from .metrics import InstrumentedTokenizer, LoggingMetrics, NullMetrics, TokenizerMetrics
from .pattern import PreTokenizer, TokenPattern, get_pre_tokenizer, list_patterns
from .tokenizer import ByteLevelTokenizer
from .tools import TokenStats, analyze, trim_to_budget
from .trainer import BPETrainer, TrainingResult
from .types import SupportsTokenize

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mergetok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "ByteLevelTokenizer",
    "MergeableRanksTokenizer",
    "BPETrainer",
    "TrainingResult",
    "TokenizerOptions",
    "TrainerOptions",
    "TokenPattern",
    "PreTokenizer",
    "ByteUnicodeCodec",
    "BYTE_UNICODE",
    "LRUCache",
    "CacheInfo",
    "SupportsTokenize",
    "TokenStats",
    "InstrumentedTokenizer",
    "TokenizerMetrics",
    "NullMetrics",
    "LoggingMetrics",
    "MergeTokError",
    "ConfigError",
    "ArtifactNotFoundError",
    "ArtifactInvalidError",
    "UnknownTokenIdError",
    "SequenceTooLongError",
    "PatternError",
    "SpecialTokenError",
    "TokenizationError",
    "analyze",
    "trim_to_budget",
    "from_files",
    "from_pretrained",
    "get_tokenizer",
    "get_pre_tokenizer",
    "list_patterns",
    "list_tokenizers",
    "enable_progress",
    "disable_progress",
    "progress_disabled",
]
