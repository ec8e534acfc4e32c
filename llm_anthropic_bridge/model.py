"""Anthropic Claude behind the neutral request/response model."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Iterator, Optional

from .config import VARIANT_VERTEX_AI, AnthropicConfig
from .converters._util import bare_model_name
from .converters.request import DEFAULT_MAX_TOKENS, llm_request_to_params
from .converters.response import message_to_llm_response
from .exceptions import ConfigurationError, ProviderError
from .streaming import AsyncStreamAccumulator, StreamAccumulator
from .types import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)

# Sampling settings go through ``extra_body``; recent SDK releases no longer
# accept them as ``messages.create`` keywords.
_BODY_FIELDS = ("temperature", "top_p", "top_k")


def _create_kwargs(params: Dict[str, Any]) -> Dict[str, Any]:
    kwargs = dict(params)
    body = {name: kwargs.pop(name) for name in _BODY_FIELDS if name in kwargs}
    if body:
        kwargs["extra_body"] = body
    return kwargs


class AnthropicModel:
    """Calls Claude through the Messages API using neutral requests.

    The backend is either the direct Anthropic API or Anthropic on Vertex
    AI, chosen by ``config.variant`` or the ``ANTHROPIC_USE_VERTEX``
    environment variable. SDK clients are created lazily unless passed in.

    Usage::

        model = AnthropicModel("claude-sonnet-4-5")
        for response in model.generate_content(request, stream=True):
            ...
    """

    def __init__(
        self,
        model: str,
        config: Optional[AnthropicConfig] = None,
        *,
        client: Any = None,
        async_client: Any = None,
    ) -> None:
        self.config = config or AnthropicConfig()
        self.variant = self.config.resolved_variant()

        if self.variant == VARIANT_VERTEX_AI:
            if not self.config.resolved_vertex_project_id():
                raise ConfigurationError(
                    "vertex_project_id is required for Vertex AI "
                    "(set GOOGLE_CLOUD_PROJECT)"
                )
            if not self.config.resolved_vertex_region():
                raise ConfigurationError(
                    "vertex_region is required for Vertex AI "
                    "(set GOOGLE_CLOUD_REGION)"
                )

        self._model = bare_model_name(model)
        self._default_max_tokens = self.config.default_max_tokens or DEFAULT_MAX_TOKENS
        self._client = client
        self._async_client = async_client

    @property
    def name(self) -> str:
        return self._model

    # ------------------------------------------------------------------
    # Client construction
    # ------------------------------------------------------------------

    @staticmethod
    def _import_sdk() -> Any:
        try:
            import anthropic
        except ImportError:
            raise ConfigurationError(
                "Anthropic models require the 'anthropic' package. "
                "Install it with: pip install anthropic"
            )
        return anthropic

    def _client_kwargs(self) -> Dict[str, Any]:
        if self.variant == VARIANT_VERTEX_AI:
            return {
                "project_id": self.config.resolved_vertex_project_id(),
                "region": self.config.resolved_vertex_region(),
                "timeout": self.config.timeout,
            }

        key = self.config.resolved_api_key()
        if not key:
            raise ConfigurationError(
                "Anthropic API key not found. Provide via api_key or "
                "set the ANTHROPIC_API_KEY environment variable."
            )
        return {"api_key": key, "timeout": self.config.timeout}

    def _get_client(self) -> Any:
        """Lazily create an ``Anthropic`` (or ``AnthropicVertex``) client."""
        if self._client is not None:
            return self._client

        anthropic = self._import_sdk()
        kwargs = self._client_kwargs()
        if self.variant == VARIANT_VERTEX_AI:
            self._client = anthropic.AnthropicVertex(**kwargs)
        else:
            self._client = anthropic.Anthropic(**kwargs)
        return self._client

    def _get_async_client(self) -> Any:
        """Lazily create an ``AsyncAnthropic`` (or ``AsyncAnthropicVertex``) client."""
        if self._async_client is not None:
            return self._async_client

        anthropic = self._import_sdk()
        kwargs = self._client_kwargs()
        if self.variant == VARIANT_VERTEX_AI:
            self._async_client = anthropic.AsyncAnthropicVertex(**kwargs)
        else:
            self._async_client = anthropic.AsyncAnthropic(**kwargs)
        return self._async_client

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def build_params(self, request: LLMRequest) -> Dict[str, Any]:
        """Translate *request* into ``messages.create`` keyword arguments.

        Temperature, ``top_p`` and ``top_k`` are carried in ``extra_body``.
        """
        params = llm_request_to_params(
            request, self._model, default_max_tokens=self._default_max_tokens
        )
        return _create_kwargs(params)

    def generate_content(
        self, request: LLMRequest, stream: bool = False
    ) -> Iterator[LLMResponse]:
        """Call the model and return an iterator of responses.

        Without *stream* the iterator holds exactly one response. With
        *stream* it is a :class:`StreamAccumulator` producing partial
        responses followed by one ``turn_complete`` response. Breaking out
        of the loop early releases the HTTP stream once the accumulator is
        dropped; use it as a context manager to release it at once.

        Raises:
            ConversionError: The request cannot be expressed for Anthropic.
            ProviderError: The client rejected the request.
        """
        params = self.build_params(request)
        client = self._get_client()

        if stream:
            try:
                events = client.messages.create(**params, stream=True)
            except Exception as e:
                raise ProviderError(f"Anthropic API stream error: {e}") from e
            return StreamAccumulator(events)

        try:
            message = client.messages.create(**params)
        except Exception as e:
            raise ProviderError(f"Anthropic API error: {e}") from e
        return iter([message_to_llm_response(message)])

    async def generate_content_async(
        self, request: LLMRequest, stream: bool = False
    ) -> AsyncIterator[LLMResponse]:
        """Async twin of :meth:`generate_content`."""
        params = self.build_params(request)
        client = self._get_async_client()

        if stream:
            try:
                events = await client.messages.create(**params, stream=True)
            except Exception as e:
                raise ProviderError(f"Anthropic API stream error: {e}") from e
            return AsyncStreamAccumulator(events)

        try:
            message = await client.messages.create(**params)
        except Exception as e:
            raise ProviderError(f"Anthropic API error: {e}") from e
        return _single(message_to_llm_response(message))


async def _single(response: LLMResponse) -> AsyncIterator[LLMResponse]:
    yield response
