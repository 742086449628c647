"""
Encode/decode metrics around any tokenizer.

:class:`InstrumentedTokenizer` times each ``encode`` and ``decode`` call on the
wrapped tokenizer and reports sizes and elapsed milliseconds to a
:class:`TokenizerMetrics` sink.

Example:
   >>> tok = InstrumentedTokenizer(ByteLevelTokenizer({}), LoggingMetrics())
   >>> tok.decode(tok.encode("hi"))
   'hi'
"""

import logging
import time
from typing import Protocol

from .types import Piece, SupportsTokenize, Token

log = logging.getLogger(__name__)


class TokenizerMetrics(Protocol):
    """Sink called once per completed encode or decode."""

    def on_encode_completed(
        self, input_chars: int, output_tokens: int, elapsed_ms: float
    ) -> None: ...

    def on_decode_completed(
        self, input_tokens: int, output_chars: int, elapsed_ms: float
    ) -> None: ...


class NullMetrics:
    """Discards every report."""

    def on_encode_completed(
        self, input_chars: int, output_tokens: int, elapsed_ms: float
    ) -> None:
        pass

    def on_decode_completed(
        self, input_tokens: int, output_chars: int, elapsed_ms: float
    ) -> None:
        pass


def _rate(n_tokens: int, elapsed_ms: float) -> float:
    return n_tokens / (elapsed_ms / 1000) if elapsed_ms > 0 else 0.0


class LoggingMetrics:
    """
    Logs each call with its token throughput and keeps running totals.

    :param level: Logging level for the per-call records.
    """

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level
        self.tokens_processed = 0
        self.n_encodes = 0
        self.n_decodes = 0

    def on_encode_completed(
        self, input_chars: int, output_tokens: int, elapsed_ms: float
    ) -> None:
        self.n_encodes += 1
        self.tokens_processed += output_tokens
        log.log(
            self.level,
            f"encode: chars={input_chars} tokens={output_tokens} "
            f"{_rate(output_tokens, elapsed_ms):.1f} tok/s in {elapsed_ms:.1f} ms",
        )

    def on_decode_completed(
        self, input_tokens: int, output_chars: int, elapsed_ms: float
    ) -> None:
        self.n_decodes += 1
        self.tokens_processed += input_tokens
        log.log(
            self.level,
            f"decode: tokens={input_tokens} chars={output_chars} "
            f"{_rate(input_tokens, elapsed_ms):.1f} tok/s in {elapsed_ms:.1f} ms",
        )


class InstrumentedTokenizer:
    """
    Wrap a tokenizer and report every ``encode``/``decode`` to ``metrics``.

    Output is exactly that of the wrapped tokenizer; errors propagate and are
    not reported.

    :param inner: Any tokenizer variant.
    :param metrics: Metrics sink, a :class:`NullMetrics` when omitted.
    """

    def __init__(
        self, inner: SupportsTokenize, metrics: TokenizerMetrics | None = None
    ) -> None:
        self.inner = inner
        self.metrics: TokenizerMetrics = metrics if metrics is not None else NullMetrics()

    def encode(self, text: str, add_special_tokens: bool = False) -> list[Token]:
        start = time.perf_counter()
        ids = self.inner.encode(text, add_special_tokens)
        elapsed_ms = (time.perf_counter() - start) * 1000
        self.metrics.on_encode_completed(len(text), len(ids), elapsed_ms)
        return ids

    def decode(self, tokens: list[Token], errors: str = "replace") -> str:
        # materialise once so iterators are counted correctly
        tokens = list(tokens)
        start = time.perf_counter()
        text = self.inner.decode(tokens, errors)
        elapsed_ms = (time.perf_counter() - start) * 1000
        self.metrics.on_decode_completed(len(tokens), len(text), elapsed_ms)
        return text

    def piece(self, token: Token) -> Piece:
        return self.inner.piece(token)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.inner!r})"


__all__ = ["TokenizerMetrics", "NullMetrics", "LoggingMetrics", "InstrumentedTokenizer"]
