"""Configuration for the Anthropic model facade."""

from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel

VARIANT_ANTHROPIC_API = "ANTHROPIC_API"
VARIANT_VERTEX_AI = "VERTEX_AI"

API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"
USE_VERTEX_ENV_VAR = "ANTHROPIC_USE_VERTEX"
VERTEX_PROJECT_ENV_VAR = "GOOGLE_CLOUD_PROJECT"
VERTEX_REGION_ENV_VAR = "GOOGLE_CLOUD_REGION"

_TRUE_VALUES = frozenset({"1", "t", "true"})


class AnthropicConfig(BaseModel):
    """Settings for :class:`~llm_anthropic_bridge.model.AnthropicModel`.

    Attributes:
        api_key: Key for the direct Anthropic API. Falls back to the
            ``ANTHROPIC_API_KEY`` environment variable.
        vertex_project_id: Google Cloud project for Vertex AI. Falls back to
            ``GOOGLE_CLOUD_PROJECT``.
        vertex_region: Google Cloud region for Vertex AI (e.g.
            ``"us-east5"``). Falls back to ``GOOGLE_CLOUD_REGION``.
        variant: Backend to call. When unset, ``ANTHROPIC_USE_VERTEX``
            decides (see :func:`get_variant`).
        default_max_tokens: ``max_tokens`` sent when the request does not set
            ``max_output_tokens``. Anthropic requires one on every call.
        timeout: Client timeout in seconds.
    """

    api_key: Optional[str] = None
    vertex_project_id: Optional[str] = None
    vertex_region: Optional[str] = None
    variant: Optional[Literal["ANTHROPIC_API", "VERTEX_AI"]] = None
    default_max_tokens: int = 4096
    timeout: float = 180.0

    def resolved_variant(self) -> str:
        return self.variant or get_variant()

    def resolved_api_key(self) -> Optional[str]:
        return self.api_key or os.environ.get(API_KEY_ENV_VAR)

    def resolved_vertex_project_id(self) -> Optional[str]:
        return self.vertex_project_id or os.environ.get(VERTEX_PROJECT_ENV_VAR)

    def resolved_vertex_region(self) -> Optional[str]:
        return self.vertex_region or os.environ.get(VERTEX_REGION_ENV_VAR)


def get_variant() -> str:
    """Return the backend selected by ``ANTHROPIC_USE_VERTEX``.

    ``"1"``, ``"t"`` or ``"true"`` (any case, surrounding whitespace ignored)
    select Vertex AI; anything else selects the direct API.
    """
    value = os.environ.get(USE_VERTEX_ENV_VAR, "").strip().lower()
    if value in _TRUE_VALUES:
        return VARIANT_VERTEX_AI
    return VARIANT_ANTHROPIC_API
