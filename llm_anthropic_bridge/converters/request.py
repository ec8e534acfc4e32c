"""Neutral request contents to Anthropic Messages API params.

The Messages API is stricter than the neutral model:

- roles must alternate between ``user`` and ``assistant``;
- tool results must travel in user messages and tool calls in assistant
  messages, whatever role the neutral turn declares;
- ``max_tokens`` is mandatory;
- the history must end on a user message.

Everything here returns plain dicts in the Messages API JSON shape, which is
what ``anthropic.Anthropic().messages.create(**params)`` accepts.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..exceptions import (
    ConversionError,
    SerializationError,
    UnsupportedMediaTypeError,
    UnsupportedPartTypeError,
    UnsupportedRoleError,
)
from ..types import (
    CodeExecutionResultPart,
    Content,
    ExecutableCodePart,
    FileDataPart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    LLMRequest,
    Part,
    TextPart,
)
from .tools import tools_to_anthropic_tools

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

DEFAULT_MAX_TOKENS = 4096

_IMAGE_MEDIA_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
_PDF_MEDIA_TYPE = "application/pdf"

_EMPTY_HISTORY_PROMPT = "Handle the requests as specified in the System Instruction."
_CONTINUE_PROMPT = "Continue processing previous requests as instructed."


# ---------------------------------------------------------------------------
# Contents → messages
# ---------------------------------------------------------------------------


def contents_to_messages(
    contents: Optional[Sequence[Optional[Content]]],
) -> Optional[List[Dict[str, Any]]]:
    """Convert neutral contents to alternating Anthropic messages.

    Returns ``None`` for an empty or missing history. Turns that produce no
    content blocks are dropped; consecutive same-role messages are merged.

    Raises:
        ConversionError: A subclass describing the first turn/part that has
            no wire equivalent, with its location in the message.
    """
    if not contents:
        return None

    messages: List[Dict[str, Any]] = []
    for index, content in enumerate(contents):
        if content is None:
            continue
        try:
            message = content_to_message(content)
        except ConversionError as e:
            raise e.with_location(content_index=index) from e
        if message is not None:
            messages.append(message)
        else:
            logger.debug("Dropping content %d: no convertible parts", index)

    return merge_consecutive_messages(messages)


def content_to_message(content: Optional[Content]) -> Optional[Dict[str, Any]]:
    """Convert one turn, or return ``None`` if it yields no blocks."""
    if content is None or not content.parts:
        return None

    role = effective_role(content)
    if role not in (ROLE_USER, ROLE_ASSISTANT):
        raise UnsupportedRoleError(f"unsupported role: {content.role}")

    blocks: List[Dict[str, Any]] = []
    for index, part in enumerate(content.parts):
        if part is None:
            continue
        try:
            block = part_to_content_block(part)
        except ConversionError as e:
            raise e.with_location(part_index=index) from e
        if block is not None:
            blocks.append(block)

    if not blocks:
        return None
    return {"role": role, "content": blocks}


def effective_role(content: Content) -> str:
    """Return the wire role for *content*.

    A function response anywhere in the turn forces ``user``; otherwise a
    function call forces ``assistant``. Unknown declared roles come back
    lower-cased and unmapped.
    """
    parts = [p for p in content.parts if p is not None]
    if any(isinstance(p, FunctionResponsePart) for p in parts):
        return ROLE_USER
    if any(isinstance(p, FunctionCallPart) for p in parts):
        return ROLE_ASSISTANT
    return map_role(content.role)


def map_role(role: Optional[str]) -> str:
    normalized = (role or "").lower()
    if normalized == "user":
        return ROLE_USER
    if normalized in ("model", "assistant"):
        return ROLE_ASSISTANT
    return normalized


def merge_consecutive_messages(
    messages: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Merge consecutive messages with the same role.

    Anthropic requires alternating user/assistant messages. Blocks are
    concatenated in order; nothing is dropped.
    """
    if not messages:
        return messages

    merged: List[Dict[str, Any]] = [messages[0]]
    for msg in messages[1:]:
        if msg["role"] == merged[-1]["role"]:
            merged[-1]["content"] = merged[-1]["content"] + msg["content"]
        else:
            merged.append(msg)

    if len(merged) < len(messages):
        logger.debug(
            "Merged %d messages into %d alternating messages",
            len(messages),
            len(merged),
        )
    return merged


# ---------------------------------------------------------------------------
# Parts → content blocks
# ---------------------------------------------------------------------------


def part_to_content_block(part: Optional[Part]) -> Optional[Dict[str, Any]]:
    """Convert one neutral part to an Anthropic content block.

    Returns ``None`` for parts with nothing to send (e.g. empty text).
    """
    if part is None:
        return None

    if isinstance(part, TextPart):
        return _text_to_block(part)
    if isinstance(part, InlineDataPart):
        return inline_data_to_block(part)
    if isinstance(part, FileDataPart):
        return file_data_to_block(part)
    if isinstance(part, FunctionResponsePart):
        return function_response_to_block(part)
    if isinstance(part, FunctionCallPart):
        return function_call_to_block(part)
    if isinstance(part, (ExecutableCodePart, CodeExecutionResultPart)):
        raise UnsupportedPartTypeError(
            "ExecutableCode and CodeExecutionResult are not supported by Anthropic"
        )
    raise TypeError(f"Unknown part type: {type(part).__name__}")


def _text_to_block(part: TextPart) -> Optional[Dict[str, Any]]:
    if not part.text:
        return None
    if part.thought:
        if part.thought_signature:
            return {
                "type": "thinking",
                "thinking": part.text,
                "signature": base64.b64encode(part.thought_signature).decode("ascii"),
            }
        logger.warning("Thought part has no signature; sending it as plain text")
    return {"type": "text", "text": part.text}


def inline_data_to_block(blob: InlineDataPart) -> Dict[str, Any]:
    mime_type = blob.mime_type.lower()
    data = base64.b64encode(blob.data).decode("ascii")

    if mime_type.startswith("image/"):
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": map_image_media_type(mime_type),
                "data": data,
            },
        }
    if mime_type == _PDF_MEDIA_TYPE:
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": _PDF_MEDIA_TYPE, "data": data},
        }
    raise UnsupportedMediaTypeError(
        f"unsupported MIME type for inline data: {mime_type}"
    )


def map_image_media_type(mime_type: str) -> str:
    if mime_type not in _IMAGE_MEDIA_TYPES:
        raise UnsupportedMediaTypeError(f"unsupported image media type: {mime_type}")
    return mime_type


def file_data_to_block(file_data: FileDataPart) -> Dict[str, Any]:
    mime_type = file_data.mime_type.lower()

    if mime_type.startswith("image/"):
        return {"type": "image", "source": {"type": "url", "url": file_data.file_uri}}
    if mime_type == _PDF_MEDIA_TYPE:
        return {
            "type": "document",
            "source": {"type": "url", "url": file_data.file_uri},
        }
    raise UnsupportedMediaTypeError(f"unsupported MIME type for file data: {mime_type}")


def function_response_to_block(resp: FunctionResponsePart) -> Dict[str, Any]:
    content = ""
    if resp.response is not None:
        try:
            content = json.dumps(resp.response, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"failed to marshal function response '{resp.name}': {e}"
            ) from e

    return {
        "type": "tool_result",
        "tool_use_id": resp.id or resp.name,
        "content": content,
        "is_error": False,
    }


def function_call_to_block(call: FunctionCallPart) -> Dict[str, Any]:
    return {
        "type": "tool_use",
        "id": call.id,
        "name": call.name,
        "input": call.args if call.args is not None else {},
    }


# ---------------------------------------------------------------------------
# System instruction and history shape
# ---------------------------------------------------------------------------


def system_instruction_to_system(
    instruction: Optional[Content],
) -> Optional[List[Dict[str, Any]]]:
    """Turn the text parts of *instruction* into Anthropic system text blocks."""
    if instruction is None or not instruction.parts:
        return None

    blocks = [
        {"type": "text", "text": part.text}
        for part in instruction.parts
        if isinstance(part, TextPart) and part.text
    ]
    return blocks or None


def ensure_user_turn(
    contents: Optional[Sequence[Optional[Content]]],
) -> List[Optional[Content]]:
    """Return *contents* with a trailing user turn appended when needed.

    An empty history gets a prompt pointing at the system instruction; a
    history ending on a non-user turn gets a continuation prompt. The input
    sequence is not modified.
    """
    result = list(contents or [])
    if not result:
        result.append(Content.from_text(_EMPTY_HISTORY_PROMPT, role="user"))
        return result

    last = result[-1]
    if last is not None and effective_role(last) != ROLE_USER:
        result.append(Content.from_text(_CONTINUE_PROMPT, role="user"))
    return result


# ---------------------------------------------------------------------------
# Request envelope
# ---------------------------------------------------------------------------


def llm_request_to_params(
    request: LLMRequest,
    model: str,
    default_max_tokens: int = DEFAULT_MAX_TOKENS,
) -> Dict[str, Any]:
    """Build the keyword arguments for ``client.messages.create``."""
    messages = contents_to_messages(ensure_user_turn(request.contents))

    params: Dict[str, Any] = {
        "model": model,
        "messages": messages or [],
        "max_tokens": default_max_tokens,
    }

    config = request.config
    if config is None:
        return params

    system = system_instruction_to_system(config.system_instruction)
    if system:
        params["system"] = system

    if config.temperature is not None:
        params["temperature"] = config.temperature
    if config.top_p is not None:
        params["top_p"] = config.top_p
    if config.top_k is not None:
        params["top_k"] = config.top_k
    if config.stop_sequences:
        params["stop_sequences"] = list(config.stop_sequences)
    if config.max_output_tokens:
        params["max_tokens"] = config.max_output_tokens

    tools = tools_to_anthropic_tools(config.tools)
    if tools:
        params["tools"] = tools

    return params
