"""Option handling shared by the tokenizer variants."""

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from .config import TokenizerOptions
from .errors import ConfigError, SequenceTooLongError, SpecialTokenError
from .types import Token
from .vocab import SpecialTokens

log = logging.getLogger(__name__)


def resolve_allowed_special(
    options: TokenizerOptions, specials: SpecialTokens
) -> frozenset[str]:
    """
    Return the special tokens recognised in input text.

    :raises ConfigError: If ``allowed_special`` names an unregistered token.
    """
    allowed = options.allowed_special
    if allowed == "all":
        return frozenset(specials)
    unknown = allowed - frozenset(specials)
    if unknown:
        raise ConfigError(
            "allowed_special names unregistered special tokens",
            option="allowed_special",
            value=sorted(unknown),
        )
    return allowed


def resolve_disallowed_special(
    options: TokenizerOptions, specials: SpecialTokens, allowed: frozenset[str]
) -> frozenset[str]:
    """Return the special tokens whose presence in input text is an error."""
    disallowed = options.disallowed_special
    if disallowed == "all":
        return frozenset(specials) - allowed
    return disallowed


def special_option_id(
    specials: SpecialTokens, option: str, seq: str | None
) -> Token | None:
    """Resolve a ``bos_token``/``eos_token`` option to its special id."""
    if seq is None:
        return None
    tok = specials.match(seq)
    if tok is None:
        raise ConfigError(
            f"{option} must be a registered special token", option=option, value=seq
        )
    return tok


def check_disallowed(text: str, disallowed: frozenset[str]) -> None:
    """
    :raises SpecialTokenError: If any disallowed special token occurs in ``text``.
    """
    if not disallowed:
        return
    found = {seq for seq in disallowed if seq in text}
    if found:
        raise SpecialTokenError(
            "special tokens found in text but not allowed", found_tokens=found
        )


def enforce_max_length(ids: list[Token], options: TokenizerOptions) -> list[Token]:
    """Truncate ``ids`` to ``max_length`` or raise when truncation is off."""
    max_length = options.max_length
    if max_length is None or len(ids) <= max_length:
        return ids
    if not options.truncate:
        raise SequenceTooLongError(
            "encoded sequence exceeds max_length",
            length=len(ids),
            max_length=max_length,
        )
    log.debug(f"truncating {len(ids)} tokens to max_length {max_length}")
    return ids[:max_length]


def run_batch[T, R](
    func: Callable[[T], R], items: Sequence[T], num_workers: int | None = None
) -> list[R]:
    """
    Apply ``func`` to every item, in parallel across a thread pool.

    :param num_workers: Worker count, defaults to the CPU count; 1 runs serially.
    :returns: Results in input order.
    """
    if num_workers is None:
        workers = os.cpu_count() or 1
    else:
        workers = max(1, num_workers)  # "0" interpreted as 1 worker

    if workers == 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(func, items))
