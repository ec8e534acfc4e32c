# llm_anthropic_bridge/llm_anthropic_bridge/__init__.py
import logging
import os
from dotenv import load_dotenv

# Configure basic logging for the library
# Users can customize this further in their application
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Load a .env file from the working directory so ANTHROPIC_API_KEY and the
# Vertex AI variables are visible before the first client is created.
try:
    dotenv_path = os.path.join(os.getcwd(), ".env")
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path=dotenv_path)
except Exception as e:
    logging.getLogger(__name__).warning(f"Could not load .env file: {e}")


# Expose key components for easy import
from .config import AnthropicConfig, get_variant  # noqa: E402
from .model import AnthropicModel  # noqa: E402
from .streaming import (  # noqa: E402
    AsyncStreamAccumulator,
    MessageAccumulator,
    StreamAccumulator,
    StreamState,
)
from .exceptions import (  # noqa: E402
    LLMBridgeError,
    ConfigurationError,
    ProviderError,
    ConversionError,
    UnsupportedRoleError,
    UnsupportedMediaTypeError,
    UnsupportedPartTypeError,
    SerializationError,
    StreamError,
    StreamAccumulationError,
    StreamTransportError,
)
from .types import (  # noqa: E402
    Content,
    FunctionDeclaration,
    GenerateContentConfig,
    LLMRequest,
    LLMResponse,
    Schema,
    Tool,
)

__all__ = [
    "AnthropicConfig",
    "AnthropicModel",
    "AsyncStreamAccumulator",
    "MessageAccumulator",
    "StreamAccumulator",
    "StreamState",
    "get_variant",
    "LLMBridgeError",
    "ConfigurationError",
    "ProviderError",
    "ConversionError",
    "UnsupportedRoleError",
    "UnsupportedMediaTypeError",
    "UnsupportedPartTypeError",
    "SerializationError",
    "StreamError",
    "StreamAccumulationError",
    "StreamTransportError",
    "Content",
    "FunctionDeclaration",
    "GenerateContentConfig",
    "LLMRequest",
    "LLMResponse",
    "Schema",
    "Tool",
]

try:
    from importlib.metadata import version

    __version__ = version("llm-anthropic-bridge")
except Exception:
    __version__ = "0.0.0-unknown"
