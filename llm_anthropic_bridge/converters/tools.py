"""Function declarations to Anthropic tool definitions."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..types import FunctionDeclaration, JsonSchema, Schema, Tool

logger = logging.getLogger(__name__)


def tools_to_anthropic_tools(
    tools: Optional[Sequence[Optional[Tool]]],
) -> Optional[List[Dict[str, Any]]]:
    """Flatten every function declaration of *tools* into Anthropic tool dicts.

    Returns ``None`` when there is nothing to declare so callers can leave the
    ``tools`` request field unset.
    """
    if not tools:
        return None

    result: List[Dict[str, Any]] = []
    for tool in tools:
        if tool is None or not tool.function_declarations:
            continue
        for declaration in tool.function_declarations:
            if declaration is None:
                continue
            result.append(function_declaration_to_tool(declaration))
    return result or None


def function_declaration_to_tool(fd: FunctionDeclaration) -> Dict[str, Any]:
    """Convert one declaration to an Anthropic tool definition.

    ``parameters`` takes precedence over ``parameters_json_schema``.
    ``parameters_json_schema`` may be a plain mapping with ``properties`` and
    ``required`` keys or a :class:`JsonSchema`; anything else is ignored.
    """
    # Anthropic requires an object schema at the root.
    input_schema: Dict[str, Any] = {"type": "object", "properties": {}}
    required: List[str] = []

    if fd.parameters is not None:
        props = schema_properties_to_dict(fd.parameters.properties)
        if props is not None:
            input_schema["properties"] = props
        required = list(fd.parameters.required or [])
    elif isinstance(fd.parameters_json_schema, JsonSchema):
        props = json_schema_to_properties(fd.parameters_json_schema)
        if props is not None:
            input_schema["properties"] = props
        required = list(fd.parameters_json_schema.required or [])
    elif isinstance(fd.parameters_json_schema, Mapping):
        props = fd.parameters_json_schema.get("properties")
        if isinstance(props, Mapping):
            input_schema["properties"] = dict(props)
        required = extract_required_fields(fd.parameters_json_schema.get("required"))
    elif fd.parameters_json_schema is not None:
        logger.debug(
            "Ignoring parameters_json_schema of type %s for tool '%s'",
            type(fd.parameters_json_schema).__name__,
            fd.name,
        )

    if required:
        input_schema["required"] = required

    tool: Dict[str, Any] = {"name": fd.name, "input_schema": input_schema}
    if fd.description:
        tool["description"] = fd.description
    return tool


def extract_required_fields(value: Any) -> List[str]:
    """Normalise a JSON-schema ``required`` value to a list of field names.

    Hand-built schemas carry a list of strings; schemas decoded from JSON
    may carry arbitrary values, of which only the strings are kept.
    """
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


# ---------------------------------------------------------------------------
# JsonSchema objects
# ---------------------------------------------------------------------------


def json_schema_to_properties(
    schema: Optional[JsonSchema],
) -> Optional[Dict[str, Any]]:
    if schema is None or schema.properties is None:
        return None
    return {
        name: json_schema_property_to_dict(prop)
        for name, prop in schema.properties.items()
    }


def json_schema_property_to_dict(
    schema: Optional[JsonSchema],
) -> Optional[Dict[str, Any]]:
    # Only type/description/enum/items/properties/required are carried here.
    if schema is None:
        return None

    result: Dict[str, Any] = {}
    if schema.type:
        result["type"] = schema.type
    if schema.description:
        result["description"] = schema.description
    if schema.enum:
        result["enum"] = list(schema.enum)
    if schema.items is not None:
        result["items"] = json_schema_property_to_dict(schema.items)
    if schema.properties is not None:
        result["properties"] = json_schema_to_properties(schema)
    if schema.required:
        result["required"] = list(schema.required)
    return result


# ---------------------------------------------------------------------------
# Structured Schema
# ---------------------------------------------------------------------------


def schema_properties_to_dict(
    props: Optional[Mapping[str, Optional[Schema]]],
) -> Optional[Dict[str, Any]]:
    if props is None:
        return None
    return {
        name: schema_to_dict(schema)
        for name, schema in props.items()
        if schema is not None
    }


def schema_to_dict(schema: Optional[Schema]) -> Optional[Dict[str, Any]]:
    """Convert a :class:`Schema` (recursively) to a JSON-schema dict."""
    if schema is None:
        return None

    result: Dict[str, Any] = {}

    if schema.type:
        result["type"] = schema.type.lower()
    if schema.description:
        result["description"] = schema.description
    if schema.enum:
        result["enum"] = list(schema.enum)
    if schema.format:
        result["format"] = schema.format
    if schema.items is not None:
        result["items"] = schema_to_dict(schema.items)
    if schema.properties:
        result["properties"] = schema_properties_to_dict(schema.properties)
    if schema.required:
        result["required"] = list(schema.required)
    if schema.nullable:
        result["nullable"] = True
    if schema.default is not None:
        result["default"] = schema.default

    for attr, key in _BOUND_FIELDS:
        value = getattr(schema, attr)
        if value is not None:
            result[key] = value

    if schema.pattern:
        result["pattern"] = schema.pattern

    if schema.any_of:
        any_of = [m for m in (schema_to_dict(s) for s in schema.any_of) if m is not None]
        if any_of:
            result["anyOf"] = any_of

    return result


_BOUND_FIELDS = (
    ("minimum", "minimum"),
    ("maximum", "maximum"),
    ("min_length", "minLength"),
    ("max_length", "maxLength"),
    ("min_items", "minItems"),
    ("max_items", "maxItems"),
)
