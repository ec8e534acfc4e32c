"""Unit tests for AnthropicModel without calling any real APIs."""

from __future__ import annotations

import inspect
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from llm_anthropic_bridge.config import AnthropicConfig
from llm_anthropic_bridge.exceptions import (
    ConfigurationError,
    ProviderError,
    StreamTransportError,
    UnsupportedPartTypeError,
)
from llm_anthropic_bridge.model import AnthropicModel
from llm_anthropic_bridge.streaming import AsyncStreamAccumulator, StreamAccumulator
from llm_anthropic_bridge.types import (
    Content,
    ExecutableCodePart,
    FinishReason,
    FunctionDeclaration,
    GenerateContentConfig,
    LLMRequest,
    TextPart,
    Tool,
)

from stream_events import text_stream


def _request(**config: Any) -> LLMRequest:
    return LLMRequest(
        contents=[Content.from_text("Hi")],
        config=GenerateContentConfig(**config) if config else None,
    )


def _fake_message(text: str = "Hello") -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        stop_reason="end_turn",
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_USE_VERTEX",
        "GOOGLE_CLOUD_PROJECT",
        "GOOGLE_CLOUD_REGION",
    ):
        monkeypatch.delenv(var, raising=False)


class TestConstructor:
    def test_direct_api_defaults(self) -> None:
        model = AnthropicModel("claude-sonnet-4-5", AnthropicConfig(api_key="k"))
        assert model.name == "claude-sonnet-4-5"
        assert model.variant == "ANTHROPIC_API"
        assert model._default_max_tokens == 4096  # noqa: SLF001

    def test_provider_prefix_stripped(self) -> None:
        model = AnthropicModel("anthropic/claude-sonnet-4-5")
        assert model.name == "claude-sonnet-4-5"

    def test_custom_max_tokens(self) -> None:
        model = AnthropicModel("m", AnthropicConfig(default_max_tokens=8192))
        assert model._default_max_tokens == 8192  # noqa: SLF001

    def test_zero_max_tokens_uses_default(self) -> None:
        model = AnthropicModel("m", AnthropicConfig(default_max_tokens=0))
        assert model._default_max_tokens == 4096  # noqa: SLF001

    def test_vertex_missing_project(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GOOGLE_CLOUD_REGION", "us-east5")
        with pytest.raises(ConfigurationError, match="GOOGLE_CLOUD_PROJECT"):
            AnthropicModel("m", AnthropicConfig(variant="VERTEX_AI"))

    def test_vertex_missing_region(self) -> None:
        with pytest.raises(ConfigurationError, match="GOOGLE_CLOUD_REGION"):
            AnthropicModel(
                "m", AnthropicConfig(variant="VERTEX_AI", vertex_project_id="p")
            )

    def test_vertex_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_USE_VERTEX", "true")
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "proj")
        monkeypatch.setenv("GOOGLE_CLOUD_REGION", "us-east5")
        model = AnthropicModel("m")
        assert model.variant == "VERTEX_AI"


class TestGetClient:
    def test_missing_sdk_raises_config_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        model = AnthropicModel("m", AnthropicConfig(api_key="k"))
        import builtins

        real_import = builtins.__import__

        def fake_import(name: str, *args: Any, **kwargs: Any) -> Any:
            if name == "anthropic":
                raise ImportError("no module")
            return real_import(name, *args, **kwargs)

        monkeypatch.setattr(builtins, "__import__", fake_import)

        with pytest.raises(ConfigurationError, match="anthropic"):
            model._get_client()  # noqa: SLF001

    def test_missing_api_key_raises_config_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        model = AnthropicModel("m")
        fake_module = SimpleNamespace(Anthropic=lambda **kw: SimpleNamespace())
        monkeypatch.setattr(AnthropicModel, "_import_sdk", staticmethod(lambda: fake_module))

        with pytest.raises(ConfigurationError, match="API key not found"):
            model._get_client()  # noqa: SLF001

    def test_direct_client_created_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        created = []
        fake_module = SimpleNamespace(
            Anthropic=lambda **kw: created.append(kw) or SimpleNamespace(kw=kw)
        )
        monkeypatch.setattr(AnthropicModel, "_import_sdk", staticmethod(lambda: fake_module))
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

        model = AnthropicModel("m", AnthropicConfig(timeout=30.0))
        first = model._get_client()  # noqa: SLF001
        assert model._get_client() is first  # noqa: SLF001
        assert created == [{"api_key": "env-key", "timeout": 30.0}]

    def test_vertex_clients(self, monkeypatch: pytest.MonkeyPatch) -> None:
        fake_module = SimpleNamespace(
            AnthropicVertex=lambda **kw: SimpleNamespace(sync=True, kw=kw),
            AsyncAnthropicVertex=lambda **kw: SimpleNamespace(sync=False, kw=kw),
        )
        monkeypatch.setattr(AnthropicModel, "_import_sdk", staticmethod(lambda: fake_module))
        model = AnthropicModel(
            "m",
            AnthropicConfig(
                variant="VERTEX_AI", vertex_project_id="proj", vertex_region="us-east5"
            ),
        )
        sync_client = model._get_client()  # noqa: SLF001
        async_client = model._get_async_client()  # noqa: SLF001
        assert sync_client.sync is True
        assert async_client.sync is False
        assert sync_client.kw["project_id"] == "proj"
        assert sync_client.kw["region"] == "us-east5"


class TestGenerateContent:
    def test_non_streaming(self) -> None:
        create = MagicMock(return_value=_fake_message())
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("claude-test", client=client)

        responses = list(model.generate_content(_request(temperature=0.5)))

        assert len(responses) == 1
        assert responses[0].content.parts == [TextPart(text="Hello")]
        assert responses[0].finish_reason is FinishReason.STOP
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["extra_body"] == {"temperature": 0.5}
        assert "temperature" not in kwargs
        assert "stream" not in kwargs

    def test_streaming(self) -> None:
        create = MagicMock(return_value=iter(text_stream("He", "llo")))
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("claude-test", client=client)

        stream = model.generate_content(_request(), stream=True)
        assert isinstance(stream, StreamAccumulator)
        responses = list(stream)

        assert [r.partial for r in responses] == [True, True, False]
        assert responses[-1].turn_complete is True
        assert create.call_args.kwargs["stream"] is True

    def test_request_conversion_error_not_wrapped(self) -> None:
        create = MagicMock()
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", client=client)
        request = LLMRequest(
            contents=[Content(role="user", parts=[ExecutableCodePart(code="1")])]
        )

        with pytest.raises(UnsupportedPartTypeError):
            model.generate_content(request)
        create.assert_not_called()

    def test_api_error_wrapped(self) -> None:
        create = MagicMock(side_effect=RuntimeError("rate limit"))
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", client=client)

        with pytest.raises(ProviderError, match="Anthropic API error") as exc_info:
            model.generate_content(_request())
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_stream_open_error_wrapped(self) -> None:
        create = MagicMock(side_effect=RuntimeError("boom"))
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", client=client)

        with pytest.raises(ProviderError, match="stream error"):
            model.generate_content(_request(), stream=True)

    def test_continuation_sent_for_model_terminated_history(self) -> None:
        create = MagicMock(return_value=_fake_message())
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", client=client)
        request = LLMRequest(
            contents=[Content.from_text("Hi"), Content.from_text("Hello", role="model")]
        )

        list(model.generate_content(request))

        messages = create.call_args.kwargs["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert len(request.contents) == 2


class TestGenerateContentAsync:
    @pytest.mark.asyncio
    async def test_non_streaming(self) -> None:
        create = AsyncMock(return_value=_fake_message("Async hello"))
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", async_client=client)

        responses = [r async for r in await model.generate_content_async(_request())]

        assert len(responses) == 1
        assert responses[0].content.parts[0].text == "Async hello"
        assert responses[0].usage_metadata.total_token_count == 15

    @pytest.mark.asyncio
    async def test_streaming(self) -> None:
        async def _events():
            for event in text_stream("a", "b"):
                yield event

        create = AsyncMock(return_value=_events())
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", async_client=client)

        stream = await model.generate_content_async(_request(), stream=True)
        assert isinstance(stream, AsyncStreamAccumulator)
        responses = [r async for r in stream]

        assert [r.content.parts[0].text for r in responses] == ["a", "b", "ab"]
        assert responses[-1].turn_complete is True

    @pytest.mark.asyncio
    async def test_stream_failure_surfaces(self) -> None:
        async def _events():
            yield text_stream("a")[0]
            raise ConnectionError("dropped")

        create = AsyncMock(return_value=_events())
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", async_client=client)

        stream = await model.generate_content_async(_request(), stream=True)
        with pytest.raises(StreamTransportError, match="dropped"):
            async for _ in stream:
                pass

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        create = AsyncMock(side_effect=RuntimeError("rate limit"))
        client = SimpleNamespace(messages=SimpleNamespace(create=create))
        model = AnthropicModel("m", async_client=client)

        with pytest.raises(ProviderError, match="Anthropic API error"):
            await model.generate_content_async(_request())


class TestBuildParams:
    def _full_request(self) -> LLMRequest:
        return LLMRequest(
            contents=[Content.from_text("What's the weather in Paris?")],
            config=GenerateContentConfig(
                temperature=0.2,
                top_p=0.9,
                top_k=40,
                stop_sequences=["END"],
                max_output_tokens=256,
                system_instruction=Content.from_text("Be brief."),
                tools=[
                    Tool(
                        function_declarations=[
                            FunctionDeclaration(
                                name="get_weather",
                                description="Current weather",
                                parameters_json_schema={
                                    "type": "object",
                                    "properties": {"city": {"type": "string"}},
                                    "required": ["city"],
                                },
                            )
                        ]
                    )
                ],
            ),
        )

    def test_sampling_fields_in_extra_body(self) -> None:
        params = AnthropicModel("m", client=object()).build_params(self._full_request())
        assert params["extra_body"] == {"temperature": 0.2, "top_p": 0.9, "top_k": 40}
        assert params["max_tokens"] == 256
        assert params["stop_sequences"] == ["END"]

    def test_no_sampling_no_extra_body(self) -> None:
        params = AnthropicModel("m", client=object()).build_params(_request())
        assert "extra_body" not in params

    @pytest.mark.parametrize("stream", [False, True])
    @pytest.mark.parametrize("resource", ["Messages", "AsyncMessages"])
    def test_params_bind_to_sdk_signature(self, resource: str, stream: bool) -> None:
        resources = pytest.importorskip("anthropic.resources")
        create = getattr(resources, resource).create
        params = AnthropicModel("m", client=object()).build_params(self._full_request())
        if stream:
            params["stream"] = True

        inspect.signature(create).bind(None, **params)
