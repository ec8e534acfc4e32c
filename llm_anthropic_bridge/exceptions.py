# llm_anthropic_bridge/llm_anthropic_bridge/exceptions.py
from typing import Optional


class LLMBridgeError(Exception):
    """Base exception class for the llm_anthropic_bridge library."""

    pass


class ConfigurationError(LLMBridgeError):
    """Exception raised for configuration errors (e.g., missing API key)."""

    pass


class ProviderError(LLMBridgeError):
    """Exception raised for errors originating from the provider client."""

    pass


class ConversionError(LLMBridgeError):
    """Base class for errors raised while translating neutral content to wire format.

    ``content_index`` and ``part_index`` locate the offending turn and part
    when known.
    """

    def __init__(
        self,
        message: str,
        *,
        content_index: Optional[int] = None,
        part_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.content_index = content_index
        self.part_index = part_index

    def with_location(
        self,
        *,
        content_index: Optional[int] = None,
        part_index: Optional[int] = None,
    ) -> "ConversionError":
        """Return a copy of this error with its location prefixed to the message."""
        if part_index is not None:
            message = f"failed to convert part {part_index}: {self}"
        elif content_index is not None:
            message = f"failed to convert content {content_index}: {self}"
        else:
            return self
        return type(self)(
            message,
            content_index=(
                content_index if content_index is not None else self.content_index
            ),
            part_index=part_index if part_index is not None else self.part_index,
        )


class UnsupportedRoleError(ConversionError):
    """Raised when a content role maps to neither user nor assistant."""

    pass


class UnsupportedMediaTypeError(ConversionError):
    """Raised when inline or file data has a MIME type with no wire equivalent."""

    pass


class UnsupportedPartTypeError(ConversionError):
    """Raised for executable code and code execution result parts."""

    pass


class SerializationError(ConversionError):
    """Raised when a function response payload cannot be encoded as JSON."""

    pass


class StreamError(LLMBridgeError):
    """Base class for errors that terminate a response stream."""

    pass


class StreamAccumulationError(StreamError):
    """Raised when a stream event cannot be folded into the running message."""

    pass


class StreamTransportError(StreamError):
    """Raised when the underlying event source reports an error."""

    pass
