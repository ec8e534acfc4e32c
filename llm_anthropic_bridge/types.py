"""Provider-neutral conversation model.

These are the shapes the rest of an agent runtime works with: role-tagged
:class:`Content` turns made of typed parts, function declarations with their
parameter schemas, generation settings, and the :class:`LLMResponse` handed
back after each call (or each streamed delta).

Usage::

    from llm_anthropic_bridge.types import Content, LLMRequest, TextPart

    request = LLMRequest(
        contents=[Content(role="user", parts=[TextPart(text="Hi")])],
    )
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Parts
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    """Plain text, or model reasoning when ``thought`` is set."""

    type: Literal["text"] = "text"
    text: str = ""
    thought: bool = False
    thought_signature: Optional[bytes] = None


class InlineDataPart(BaseModel):
    """Raw bytes with their MIME type (images, PDFs)."""

    type: Literal["inline_data"] = "inline_data"
    mime_type: str
    data: bytes


class FileDataPart(BaseModel):
    """A file referenced by URI."""

    type: Literal["file_data"] = "file_data"
    mime_type: str
    file_uri: str


class FunctionCallPart(BaseModel):
    """A tool invocation requested by the model."""

    type: Literal["function_call"] = "function_call"
    id: str = ""
    name: str
    args: Optional[Dict[str, Any]] = None


class FunctionResponsePart(BaseModel):
    """The result of running a tool, fed back to the model."""

    type: Literal["function_response"] = "function_response"
    id: str = ""
    name: str
    response: Optional[Dict[str, Any]] = None


class ExecutableCodePart(BaseModel):
    type: Literal["executable_code"] = "executable_code"
    code: str
    language: str = "PYTHON"


class CodeExecutionResultPart(BaseModel):
    type: Literal["code_execution_result"] = "code_execution_result"
    outcome: str
    output: str = ""


Part = Annotated[
    Union[
        TextPart,
        InlineDataPart,
        FileDataPart,
        FunctionCallPart,
        FunctionResponsePart,
        ExecutableCodePart,
        CodeExecutionResultPart,
    ],
    Field(discriminator="type"),
]


class Content(BaseModel):
    """One role-tagged turn of the conversation."""

    role: str = "user"
    parts: List[Optional[Part]] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, role: str = "user") -> "Content":
        return cls(role=role, parts=[TextPart(text=text)])


# ---------------------------------------------------------------------------
# Tool declarations
# ---------------------------------------------------------------------------


class Schema(BaseModel):
    """Structured parameter schema.

    ``type`` uses the upper-case names common to neutral schemas
    (``"OBJECT"``, ``"STRING"``...); it is lower-cased on the wire.
    """

    type: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[List[str]] = None
    format: Optional[str] = None
    items: Optional[Schema] = None
    properties: Optional[Dict[str, Optional[Schema]]] = None
    required: Optional[List[str]] = None
    nullable: Optional[bool] = None
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    pattern: Optional[str] = None
    any_of: Optional[List[Schema]] = None


class JsonSchema(BaseModel):
    """A JSON Schema document held as an object rather than a plain mapping."""

    type: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[List[Any]] = None
    items: Optional[JsonSchema] = None
    properties: Optional[Dict[str, Optional[JsonSchema]]] = None
    required: Optional[List[str]] = None


class FunctionDeclaration(BaseModel):
    """A callable tool the model may invoke.

    When both ``parameters`` and ``parameters_json_schema`` are set,
    ``parameters`` wins.
    """

    name: str
    description: Optional[str] = None
    parameters: Optional[Schema] = None
    # Plain mappings must stay mappings: they may carry keywords JsonSchema lacks.
    parameters_json_schema: Optional[Union[Dict[str, Any], JsonSchema]] = Field(
        default=None, union_mode="left_to_right"
    )


class Tool(BaseModel):
    function_declarations: List[Optional[FunctionDeclaration]] = Field(
        default_factory=list
    )


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class GenerateContentConfig(BaseModel):
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    max_output_tokens: Optional[int] = None
    system_instruction: Optional[Content] = None
    tools: Optional[List[Optional[Tool]]] = None


class LLMRequest(BaseModel):
    model: Optional[str] = None
    contents: List[Optional[Content]] = Field(default_factory=list)
    config: Optional[GenerateContentConfig] = None


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class FinishReason(str, Enum):
    UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"


class UsageMetadata(BaseModel):
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


class Citation(BaseModel):
    title: Optional[str] = None
    uri: Optional[str] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None


class CitationMetadata(BaseModel):
    citations: List[Citation] = Field(default_factory=list)


class LLMResponse(BaseModel):
    """Neutral response for one model call, or one streamed delta.

    Attributes:
        content: The model turn; role is always ``"model"``.
        partial: Set on in-progress streaming deltas.
        turn_complete: Set on the final response of a stream.
        error_code: Populated instead of content when the call produced nothing.
    """

    content: Optional[Content] = None
    usage_metadata: Optional[UsageMetadata] = None
    finish_reason: Optional[FinishReason] = None
    citation_metadata: Optional[CitationMetadata] = None
    partial: bool = False
    turn_complete: bool = False
    error_code: Optional[str] = None
    error_message: Optional[str] = None


Schema.model_rebuild()
JsonSchema.model_rebuild()
