# llm_anthropic_bridge/llm_anthropic_bridge/converters/__init__.py
"""Conversions between the neutral model and the Anthropic Messages API."""

from .request import (
    contents_to_messages,
    ensure_user_turn,
    llm_request_to_params,
    part_to_content_block,
    system_instruction_to_system,
)
from .response import (
    content_block_to_part,
    message_to_llm_response,
    stop_reason_to_finish_reason,
    usage_to_metadata,
)
from .tools import function_declaration_to_tool, tools_to_anthropic_tools

__all__ = [
    "contents_to_messages",
    "ensure_user_turn",
    "llm_request_to_params",
    "part_to_content_block",
    "system_instruction_to_system",
    "content_block_to_part",
    "message_to_llm_response",
    "stop_reason_to_finish_reason",
    "usage_to_metadata",
    "function_declaration_to_tool",
    "tools_to_anthropic_tools",
]
