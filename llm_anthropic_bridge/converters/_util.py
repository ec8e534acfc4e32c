"""Shared utility helpers for the wire converters."""

from __future__ import annotations

from typing import Any, Mapping


def bare_model_name(model: str) -> str:
    """Strip the ``provider/`` prefix to get the bare model name."""
    return model.split("/", 1)[-1] if "/" in model else model


def wire_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK object or a decoded JSON mapping."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value
