"""Streaming accumulation of Anthropic message events.

A stream is consumed through :class:`StreamAccumulator` (or its async twin).
Each text or thinking delta is handed out at once as a partial
:class:`~llm_anthropic_bridge.types.LLMResponse`; meanwhile every event is
folded into a snapshot of the full message, which becomes the final
``turn_complete`` response once the event source is exhausted.

Usage::

    events = client.messages.create(**params, stream=True)
    with StreamAccumulator(events) as stream:
        for response in stream:
            if response.partial:
                render(response.content.parts[0].text)

Leaving the ``with`` block early, calling :meth:`StreamAccumulator.close` or
dropping an unfinished sync stream stops consumption and closes the event
source.
"""

from __future__ import annotations

import copy
import inspect
import logging
from enum import Enum
from typing import Any, AsyncIterable, Dict, Iterable, List, Mapping, Optional

from .converters._util import wire_field
from .converters.response import (
    message_to_llm_response,
    stream_delta_to_partial_response,
    stream_thinking_delta_to_partial_response,
)
from .exceptions import StreamAccumulationError, StreamError, StreamTransportError
from .types import LLMResponse

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    OPEN = "open"
    DRAINING = "draining"
    CLOSED = "closed"


# Which block types each delta kind may be applied to.
_DELTA_TARGETS: Dict[str, frozenset[str]] = {
    "text_delta": frozenset({"text"}),
    "citations_delta": frozenset({"text"}),
    "thinking_delta": frozenset({"thinking"}),
    "signature_delta": frozenset({"thinking"}),
    "input_json_delta": frozenset({"tool_use", "server_tool_use"}),
}


def _to_wire_dict(obj: Any, what: str) -> Dict[str, Any]:
    """Deep-copy an SDK object or mapping into a plain mutable dict."""
    if isinstance(obj, Mapping):
        return copy.deepcopy(dict(obj))
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    raise StreamAccumulationError(f"cannot read {what} of type {type(obj).__name__}")


class MessageAccumulator:
    """Folds stream events into a snapshot of the complete message.

    The snapshot is a dict in the Messages API JSON shape, so it can be fed
    straight to :func:`message_to_llm_response`.
    """

    def __init__(self) -> None:
        self.message: Dict[str, Any] = {
            "role": "assistant",
            "content": [],
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": 0, "output_tokens": 0},
        }

    def accumulate(self, event: Any) -> Optional[LLMResponse]:
        """Fold *event* into the snapshot.

        Returns a partial response for text and thinking deltas, ``None``
        for every other event.

        Raises:
            StreamAccumulationError: The event does not fit the snapshot.
            StreamTransportError: The event is a provider ``error`` event.
        """
        event_type = wire_field(event, "type", "")

        if event_type == "message_start":
            self.message = _to_wire_dict(wire_field(event, "message"), "message")
            self.message.setdefault("content", [])
            self.message["content"] = list(self.message["content"] or [])
            return None

        if event_type == "content_block_start":
            block = _to_wire_dict(wire_field(event, "content_block"), "content block")
            self.message["content"].append(block)
            return None

        if event_type == "content_block_delta":
            return self._apply_delta(event)

        if event_type == "content_block_stop":
            self._block_at(wire_field(event, "index"), event_type)
            return None

        if event_type == "message_delta":
            self._apply_message_delta(event)
            return None

        if event_type == "error":
            error = wire_field(event, "error")
            raise StreamTransportError(
                f"stream error: {wire_field(error, 'message', 'unknown error')}"
            )

        if event_type not in ("message_stop", "ping"):
            logger.debug("Ignoring unsupported stream event type '%s'", event_type)
        return None

    def to_response(self) -> LLMResponse:
        """Convert the snapshot to the final, ``turn_complete`` response."""
        response = message_to_llm_response(self.message)
        response.turn_complete = True
        return response

    # ------------------------------------------------------------------

    def _block_at(self, index: Any, event_type: str) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = self.message["content"]
        if not isinstance(index, int) or not 0 <= index < len(content):
            raise StreamAccumulationError(
                f"received event of type {event_type} but there was no "
                f"content block at index {index}"
            )
        return content[index]

    def _apply_delta(self, event: Any) -> Optional[LLMResponse]:
        block = self._block_at(wire_field(event, "index"), "content_block_delta")
        delta = wire_field(event, "delta")
        delta_type = wire_field(delta, "type", "")

        targets = _DELTA_TARGETS.get(delta_type)
        if targets is None:
            logger.debug("Ignoring unsupported delta type '%s'", delta_type)
            return None
        if block.get("type") not in targets:
            raise StreamAccumulationError(
                f"cannot apply {delta_type} to a {block.get('type')} block"
            )

        if delta_type == "text_delta":
            text = wire_field(delta, "text", "")
            block["text"] = (block.get("text") or "") + text
            return stream_delta_to_partial_response(text)

        if delta_type == "thinking_delta":
            thinking = wire_field(delta, "thinking", "")
            block["thinking"] = (block.get("thinking") or "") + thinking
            return stream_thinking_delta_to_partial_response(thinking)

        if delta_type == "signature_delta":
            block["signature"] = wire_field(delta, "signature", "")
        elif delta_type == "input_json_delta":
            partial_json = wire_field(delta, "partial_json", "")
            current = block.get("input")
            # Blocks start with an empty decoded input; the deltas replace it.
            if isinstance(current, str):
                block["input"] = current + partial_json
            elif partial_json:
                block["input"] = partial_json
        elif delta_type == "citations_delta":
            citation = _to_wire_dict(wire_field(delta, "citation"), "citation")
            block["citations"] = list(block.get("citations") or []) + [citation]
        return None

    def _apply_message_delta(self, event: Any) -> None:
        delta = wire_field(event, "delta")
        stop_reason = wire_field(delta, "stop_reason")
        if stop_reason is not None:
            self.message["stop_reason"] = stop_reason
        stop_sequence = wire_field(delta, "stop_sequence")
        if stop_sequence is not None:
            self.message["stop_sequence"] = stop_sequence

        usage = wire_field(event, "usage")
        if usage is None:
            return
        totals = self.message.get("usage")
        if not isinstance(totals, dict):
            totals = {"input_tokens": 0, "output_tokens": 0}
            self.message["usage"] = totals
        totals["output_tokens"] = wire_field(usage, "output_tokens", 0)
        input_tokens = wire_field(usage, "input_tokens")
        if input_tokens is not None:
            totals["input_tokens"] = input_tokens


class _StreamMachine:
    """State shared by the sync and async accumulators."""

    def __init__(self, source: Any, events: Any) -> None:
        self._source = source
        self._events = events
        self._accumulator = MessageAccumulator()
        self.state = StreamState.OPEN

    @property
    def message(self) -> Dict[str, Any]:
        """The running snapshot of the message received so far."""
        return self._accumulator.message

    def _fold(self, event: Any) -> Optional[LLMResponse]:
        try:
            return self._accumulator.accumulate(event)
        except StreamError:
            self.state = StreamState.CLOSED
            raise
        except Exception as e:
            self.state = StreamState.CLOSED
            raise StreamAccumulationError(f"failed to accumulate stream event: {e}") from e

    def _finish(self) -> LLMResponse:
        self.state = StreamState.CLOSED
        try:
            return self._accumulator.to_response()
        except Exception as e:
            raise StreamAccumulationError(
                f"failed to convert accumulated message: {e}"
            ) from e

    def _sources(self) -> List[Any]:
        """The event source plus its iterator when they are distinct objects."""
        sources = [self._source]
        if self._events is not None and self._events is not self._source:
            sources.append(self._events)
        return sources


class StreamAccumulator(_StreamMachine):
    """Single-pass iterator of responses over a synchronous event source.

    States move Open → Draining → Closed. Any error closes the stream and is
    raised from the pull that hit it; partial responses already handed out
    stay valid. The event source is closed on exhaustion, on error, on
    :meth:`close` and when an unfinished accumulator is garbage collected,
    so breaking out of a plain ``for`` loop does not leave it open.
    """

    def __init__(self, events: Iterable[Any]) -> None:
        super().__init__(events, iter(events))

    def __iter__(self) -> "StreamAccumulator":
        return self

    def __next__(self) -> LLMResponse:
        while True:
            if self.state is StreamState.CLOSED:
                raise StopIteration

            if self.state is StreamState.DRAINING:
                try:
                    return self._finish()
                finally:
                    self._release()

            try:
                event = next(self._events)
            except StopIteration:
                self.state = StreamState.DRAINING
                continue
            except Exception as e:
                self.state = StreamState.CLOSED
                self._release()
                raise StreamTransportError(f"stream error: {e}") from e

            try:
                partial = self._fold(event)
            except StreamError:
                self._release()
                raise
            if partial is not None:
                return partial

    def close(self) -> None:
        """Stop consuming; no further responses are produced."""
        if self.state is not StreamState.CLOSED:
            logger.debug("Stream closed by consumer in state %s", self.state.value)
        self.state = StreamState.CLOSED
        self._release()

    def __enter__(self) -> "StreamAccumulator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "state", StreamState.CLOSED) is not StreamState.CLOSED:
            self.close()

    def _release(self) -> None:
        for source in self._sources():
            close = getattr(source, "close", None)
            if callable(close):
                close()


class AsyncStreamAccumulator(_StreamMachine):
    """Async counterpart of :class:`StreamAccumulator`.

    Closing an async source needs an event loop, so an unfinished stream is
    only released by :meth:`aclose`, ``async with`` or running it to the end.
    """

    def __init__(self, events: AsyncIterable[Any]) -> None:
        super().__init__(events, events.__aiter__())

    def __aiter__(self) -> "AsyncStreamAccumulator":
        return self

    async def __anext__(self) -> LLMResponse:
        while True:
            if self.state is StreamState.CLOSED:
                raise StopAsyncIteration

            if self.state is StreamState.DRAINING:
                try:
                    return self._finish()
                finally:
                    await self._release()

            try:
                event = await self._events.__anext__()
            except StopAsyncIteration:
                self.state = StreamState.DRAINING
                continue
            except Exception as e:
                self.state = StreamState.CLOSED
                await self._release()
                raise StreamTransportError(f"stream error: {e}") from e

            try:
                partial = self._fold(event)
            except StreamError:
                await self._release()
                raise
            if partial is not None:
                return partial

    async def aclose(self) -> None:
        """Stop consuming; no further responses are produced."""
        if self.state is not StreamState.CLOSED:
            logger.debug("Stream closed by consumer in state %s", self.state.value)
        self.state = StreamState.CLOSED
        await self._release()

    async def __aenter__(self) -> "AsyncStreamAccumulator":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _release(self) -> None:
        for source in self._sources():
            close = getattr(source, "aclose", None) or getattr(source, "close", None)
            if callable(close):
                result = close()
                if inspect.isawaitable(result):
                    await result
