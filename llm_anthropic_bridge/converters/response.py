"""Anthropic messages and content blocks to neutral responses."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

from ..types import (
    Citation,
    CitationMetadata,
    Content,
    FinishReason,
    FunctionCallPart,
    FunctionResponsePart,
    LLMResponse,
    Part,
    TextPart,
    UsageMetadata,
)
from ._util import wire_field

logger = logging.getLogger(__name__)

REDACTED_THINKING_TEXT = "[thinking redacted]"
WEB_SEARCH_TOOL_NAME = "web_search"

_FINISH_REASONS: Dict[str, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
    "stop_sequence": FinishReason.STOP,
    "tool_use": FinishReason.STOP,
}


def message_to_llm_response(message: Any) -> LLMResponse:
    """Convert a complete Anthropic message to an :class:`LLMResponse`.

    *message* may be an ``anthropic.types.Message`` or its JSON mapping. A
    missing message yields an error response instead of raising, so the
    caller always has something to hand on.
    """
    if message is None:
        return LLMResponse(
            error_code="UNKNOWN_ERROR",
            error_message="nil message received",
        )

    blocks = wire_field(message, "content", [])
    parts: List[Part] = []
    citations: List[Citation] = []

    for block in blocks:
        part = content_block_to_part(block)
        if part is not None:
            parts.append(part)
        citations.extend(extract_citations(block))

    return LLMResponse(
        content=Content(role="model", parts=parts),
        usage_metadata=usage_to_metadata(wire_field(message, "usage")),
        finish_reason=stop_reason_to_finish_reason(wire_field(message, "stop_reason")),
        citation_metadata=CitationMetadata(citations=citations) if citations else None,
    )


def content_block_to_part(block: Any) -> Optional[Part]:
    """Convert one content block to a neutral part.

    Unknown block types return ``None`` and are skipped by the caller.
    """
    block_type = wire_field(block, "type", "")

    if block_type == "text":
        return TextPart(text=wire_field(block, "text", ""))

    if block_type == "thinking":
        return TextPart(
            text=wire_field(block, "thinking", ""),
            thought=True,
            thought_signature=_decode_signature(wire_field(block, "signature", "")),
        )

    if block_type == "redacted_thinking":
        # The payload is encrypted; keep only the marker.
        return TextPart(text=REDACTED_THINKING_TEXT, thought=True)

    if block_type in ("tool_use", "server_tool_use"):
        return FunctionCallPart(
            id=wire_field(block, "id", ""),
            name=str(wire_field(block, "name", "")),
            args=decode_tool_input(wire_field(block, "input")),
        )

    if block_type == "web_search_tool_result":
        return _web_search_result_to_part(block)

    logger.debug("Skipping unsupported content block type '%s'", block_type)
    return None


def decode_tool_input(raw: Any) -> Dict[str, Any]:
    """Decode a tool input payload into an argument dict.

    Streaming leaves the input as raw JSON text; complete messages carry it
    already decoded. Anything that does not decode to an object becomes
    ``{}``.
    """
    if raw is None:
        return {}
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Tool input is not valid JSON; using empty arguments")
            return {}
    elif not isinstance(raw, dict) and hasattr(raw, "model_dump"):
        raw = raw.model_dump()
    return dict(raw) if isinstance(raw, dict) else {}


def _decode_signature(signature: str) -> Optional[bytes]:
    if not signature:
        return None
    try:
        return base64.b64decode(signature)
    except (binascii.Error, ValueError):
        logger.debug("Thinking signature is not valid base64; dropping it")
        return None


def _web_search_result_to_part(block: Any) -> FunctionResponsePart:
    content = wire_field(block, "content")
    response: Dict[str, Any]

    if isinstance(content, (list, tuple)):
        response = {
            "results": [
                {
                    "title": wire_field(result, "title", ""),
                    "url": wire_field(result, "url", ""),
                    "page_age": wire_field(result, "page_age", ""),
                }
                for result in content
            ]
        }
    else:
        response = {"error": str(wire_field(content, "error_code", "unknown"))}

    return FunctionResponsePart(
        id=wire_field(block, "tool_use_id", ""),
        name=WEB_SEARCH_TOOL_NAME,
        response=response,
    )


def extract_citations(block: Any) -> List[Citation]:
    """Collect neutral citations from a text block's ``citations`` list."""
    if wire_field(block, "type", "") != "text":
        return []

    citations = []
    for raw in wire_field(block, "citations", []):
        citation = citation_to_neutral(raw)
        if citation is not None:
            citations.append(citation)
    return citations


def citation_to_neutral(raw: Any) -> Optional[Citation]:
    citation_type = wire_field(raw, "type", "")

    if citation_type == "char_location":
        return Citation(
            title=wire_field(raw, "document_title"),
            start_index=wire_field(raw, "start_char_index"),
            end_index=wire_field(raw, "end_char_index"),
        )
    if citation_type == "web_search_result_location":
        return Citation(
            title=wire_field(raw, "title"),
            uri=wire_field(raw, "url"),
        )
    if citation_type == "search_result_location":
        return Citation(title=wire_field(raw, "title"))
    if citation_type in ("page_location", "content_block_location"):
        return Citation(title=wire_field(raw, "document_title"))

    logger.debug("Skipping unsupported citation type '%s'", citation_type)
    return None


def usage_to_metadata(usage: Any) -> UsageMetadata:
    input_tokens = wire_field(usage, "input_tokens", 0)
    output_tokens = wire_field(usage, "output_tokens", 0)
    return UsageMetadata(
        prompt_token_count=input_tokens,
        candidates_token_count=output_tokens,
        total_token_count=input_tokens + output_tokens,
    )


def stop_reason_to_finish_reason(stop_reason: Optional[str]) -> FinishReason:
    return _FINISH_REASONS.get(str(stop_reason or ""), FinishReason.UNSPECIFIED)


# ---------------------------------------------------------------------------
# Streaming partials
# ---------------------------------------------------------------------------


def stream_delta_to_partial_response(text: str) -> LLMResponse:
    return LLMResponse(
        content=Content(role="model", parts=[TextPart(text=text)]),
        partial=True,
    )


def stream_thinking_delta_to_partial_response(thinking: str) -> LLMResponse:
    return LLMResponse(
        content=Content(role="model", parts=[TextPart(text=thinking, thought=True)]),
        partial=True,
    )
