"""Process-wide switch for training progress reporting."""

import contextlib
import os
from collections.abc import Iterator
from typing import Final

PROGRESS_ENV_VAR: Final[str] = "MERGETOK_DISABLE_PROGRESS"

_enabled: bool = True


def enable_progress() -> None:
    global _enabled
    _enabled = True


def disable_progress() -> None:
    """Mute progress events of every trainer until :func:`enable_progress` is called."""
    global _enabled
    _enabled = False


@contextlib.contextmanager
def progress_disabled() -> Iterator[None]:
    """Mute progress reporting inside a ``with`` block, then restore the previous state."""
    global _enabled
    previous = _enabled
    _enabled = False
    try:
        yield
    finally:
        _enabled = previous


def _is_enabled() -> bool:
    # the env var wins over the in-code toggle
    return _enabled and os.environ.get(PROGRESS_ENV_VAR, "").strip() != "1"
