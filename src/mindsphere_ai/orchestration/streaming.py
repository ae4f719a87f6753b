"""Stream aggregation: adapter deltas to progress events and a final response."""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from mindsphere_ai.logging import get_logger
from mindsphere_ai.providers.base import ProviderAdapter
from mindsphere_ai.providers.errors import StreamInterruptedError
from mindsphere_ai.providers.models import (
    AIResponse,
    ConversationContext,
    StreamChunk,
    StreamEvent,
    TokenUsage,
)

log = get_logger("mindsphere_ai.orchestration.streaming")

ProgressCallback = Callable[[StreamChunk], Awaitable[None] | None]

CANCELLED_FINISH_REASON = "cancelled"

_END = object()
_CANCELLED = object()


@dataclass
class StreamState:
    """Progress shared with the caller, e.g. to veto retries once output was forwarded."""

    chunks_forwarded: int = 0


class StreamAggregator:
    """Consumes one adapter stream and relays normalized progress.

    Callbacks run inline, one per chunk, in order. A slow callback delays
    every later chunk.
    """

    async def consume(
        self,
        adapter: ProviderAdapter,
        context: ConversationContext,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
        state: StreamState | None = None,
    ) -> AIResponse:
        """Drain ``adapter.stream(context)`` into an ``AIResponse``.

        Setting ``cancel_event`` interrupts a pending read right away; the
        partial content comes back with ``finish_reason="cancelled"``.

        Raises:
            StreamInterruptedError: the stream ended without a terminal chunk.
        """
        state = state or StreamState()
        started = time.monotonic()
        content = ""
        model = adapter.model_for(context)
        tokens_so_far = 0

        def cancelled() -> AIResponse:
            log.info("stream_cancelled", provider=adapter.name, chars=len(content))
            return AIResponse(
                content=content,
                model=model,
                provider=adapter.name,
                usage=TokenUsage(output_tokens=tokens_so_far),
                cost=None,
                latency_ms=(time.monotonic() - started) * 1000,
                finish_reason=CANCELLED_FINISH_REASON,
            )

        stream = adapter.stream(context)
        try:
            while True:
                event = await _next_event(stream, cancel_event)
                if event is _CANCELLED:
                    return cancelled()
                if not isinstance(event, StreamEvent):
                    break

                content += event.delta
                model = event.model or model
                tokens_so_far = max(tokens_so_far, event.output_tokens)

                if event.is_complete:
                    usage = TokenUsage(
                        input_tokens=event.input_tokens, output_tokens=event.output_tokens
                    )
                    finish_reason = event.finish_reason or "stop"
                    if await self._emit(
                        on_progress,
                        StreamChunk(
                            content_so_far=content,
                            is_complete=True,
                            model=model,
                            tokens_so_far=usage.output_tokens,
                            finish_reason=finish_reason,
                        ),
                    ):
                        state.chunks_forwarded += 1
                    return AIResponse(
                        content=content,
                        model=model,
                        provider=adapter.name,
                        usage=usage,
                        cost=adapter.calculate_cost(usage.input_tokens, usage.output_tokens),
                        latency_ms=(time.monotonic() - started) * 1000,
                        finish_reason=finish_reason,
                    )

                if await self._emit(
                    on_progress,
                    StreamChunk(
                        content_so_far=content,
                        is_complete=False,
                        model=model,
                        tokens_so_far=tokens_so_far,
                    ),
                ):
                    state.chunks_forwarded += 1
        finally:
            await _aclose(stream)

        # A cancelled call is never reported as a failure
        if cancel_event is not None and cancel_event.is_set():
            return cancelled()

        log.error(
            "stream_missing_terminal_chunk",
            provider=adapter.name,
            chunks=state.chunks_forwarded,
        )
        raise StreamInterruptedError(
            f"{adapter.name} stream ended without a completion marker", adapter.name
        )

    @staticmethod
    async def _emit(on_progress: ProgressCallback | None, chunk: StreamChunk) -> bool:
        """Relay ``chunk``; returns whether a caller actually received it."""
        if on_progress is None:
            return False
        result = on_progress(chunk)
        if inspect.isawaitable(result):
            await result
        return True


async def _pull(stream: AsyncIterator[StreamEvent]) -> StreamEvent | object:
    try:
        return await anext(stream)
    except StopAsyncIteration:
        return _END


async def _next_event(
    stream: AsyncIterator[StreamEvent], cancel_event: asyncio.Event | None
) -> StreamEvent | object:
    """Next stream event, ``_END`` when drained, or ``_CANCELLED`` if cancelled first."""
    if cancel_event is None:
        return await _pull(stream)
    if cancel_event.is_set():
        return _CANCELLED

    read = asyncio.ensure_future(_pull(stream))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({read, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (read, waiter):
            if not task.done():
                task.cancel()
        # The stream is closed afterwards; the read must be settled first
        await asyncio.gather(read, waiter, return_exceptions=True)

    if read in done:
        return read.result()
    return _CANCELLED


async def _aclose(stream: object) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()
