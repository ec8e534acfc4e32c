# llm_anthropic_bridge/examples/streaming_tool_example.py
import json
import logging
from typing import Any, Dict

from llm_anthropic_bridge import AnthropicModel
from llm_anthropic_bridge.types import (
    Content,
    FunctionCallPart,
    FunctionDeclaration,
    FunctionResponsePart,
    GenerateContentConfig,
    LLMRequest,
    Schema,
    Tool,
)

logging.basicConfig(level=logging.INFO)
module_logger = logging.getLogger(__name__)

WEATHER_TOOL = Tool(
    function_declarations=[
        FunctionDeclaration(
            name="get_weather",
            description="Get the current weather for a city.",
            parameters=Schema(
                type="OBJECT",
                properties={"city": Schema(type="STRING", description="City name.")},
                required=["city"],
            ),
        )
    ]
)


def get_weather(city: str) -> Dict[str, Any]:
    """Mock weather lookup."""
    return {"city": city, "temp_c": 22, "condition": "sunny"}


def main() -> None:
    model = AnthropicModel("claude-haiku-4-5")
    config = GenerateContentConfig(
        system_instruction=Content.from_text("Answer in one short sentence.", role="system"),
        tools=[WEATHER_TOOL],
    )
    history = [Content.from_text("What's the weather in Lisbon?")]

    while True:
        final = None
        with model.generate_content(
            LLMRequest(contents=history, config=config), stream=True
        ) as stream:
            for response in stream:
                if response.partial:
                    print(response.content.parts[0].text, end="", flush=True)
                elif response.turn_complete:
                    final = response
        print()

        history.append(final.content)
        calls = [p for p in final.content.parts if isinstance(p, FunctionCallPart)]
        if not calls:
            break

        results = []
        for call in calls:
            result = get_weather(**(call.args or {}))
            module_logger.info(f"[{call.name}] {json.dumps(result)}")
            results.append(FunctionResponsePart(id=call.id, name=call.name, response=result))
        history.append(Content(role="user", parts=results))


if __name__ == "__main__":
    main()
