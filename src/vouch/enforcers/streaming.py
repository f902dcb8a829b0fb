"""Stream aggregation: forward vendor deltas, then decode the whole.

The aggregator is both a consumer (of the enforcer's delta iterator) and
a producer (for the caller). Deltas pass through unchanged and in arrival
order; the structured answer resolves once the stream is exhausted.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from vouch.enforcers.decoding import decode_structured_answer
from vouch.models.answer import StructuredAnswer
from vouch.models.trace import TokenUsage

logger = logging.getLogger(__name__)


class StreamAggregator:
    """Async iterator over text deltas that also builds the final answer.

    Usage:
        aggregator = await enforcer.enforce_stream(request)
        async for delta in aggregator:
            send(delta)
        answer = aggregator.answer

    A vendor error raised mid-stream ends iteration quietly; the answer
    is then the unparsed fallback over whatever text had arrived.
    """

    def __init__(
        self,
        deltas: AsyncIterator[str],
        usage: TokenUsage | None = None,
        vendor: str = "",
    ) -> None:
        self._deltas = deltas
        self._chunks: list[str] = []
        self._answer: StructuredAnswer | None = None
        self._closed = False
        self.usage = usage if usage is not None else TokenUsage()
        self.vendor = vendor
        self.interrupted = False

    def __aiter__(self) -> "StreamAggregator":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            delta = await self._deltas.__anext__()
        except StopAsyncIteration:
            self._finish(decode_structured_answer(self.text))
            raise
        except Exception as exc:
            logger.warning(
                "[Stream] %s stream failed after %d chunks: %s",
                self.vendor or "vendor",
                len(self._chunks),
                type(exc).__name__,
            )
            self.interrupted = True
            self._finish(StructuredAnswer.fallback(self.text))
            await self._close_source()
            raise StopAsyncIteration from exc
        self._chunks.append(delta)
        return delta

    @property
    def text(self) -> str:
        """Everything received so far, concatenated."""
        return "".join(self._chunks)

    @property
    def done(self) -> bool:
        return self._answer is not None

    @property
    def answer(self) -> StructuredAnswer:
        """The decoded answer. Only available after the stream is drained."""
        if self._answer is None:
            raise RuntimeError("stream not exhausted; drain it before reading the answer")
        return self._answer

    async def aclose(self) -> None:
        """Stop forwarding and release the upstream connection."""
        if self._closed:
            return
        await self._close_source()

    def _finish(self, answer: StructuredAnswer) -> None:
        self._answer = answer
        self._closed = True

    async def _close_source(self) -> None:
        self._closed = True
        close = getattr(self._deltas, "aclose", None)
        if close is not None:
            await close()


async def collect(aggregator: StreamAggregator) -> tuple[list[str], StructuredAnswer]:
    """Drain an aggregator, returning every delta and the final answer."""
    deltas = [delta async for delta in aggregator]
    return deltas, aggregator.answer
