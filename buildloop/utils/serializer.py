"""Serialization helpers for step outputs and tool results."""

import json
from typing import Any

from pydantic import BaseModel


def serialize(obj: Any) -> Any:
    """Convert an object into a JSON-compatible value.

    Pydantic models are dumped in JSON mode; lists and dicts are walked
    recursively. Anything else must already be JSON serializable.

    Raises:
        TypeError: If the value cannot be represented as JSON
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, list):
        return [serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {key: serialize(value) for key, value in obj.items()}
    try:
        json.dumps(obj)
    except (TypeError, ValueError) as e:
        raise TypeError(
            f"Object of type {type(obj).__name__} is not JSON serializable. "
            f"If it's a Pydantic model, ensure it inherits from BaseModel."
        ) from e
    return obj


def json_serialize(obj: Any) -> str:
    """Serialize a value to a JSON string. Strings are passed through as-is."""
    if isinstance(obj, str):
        return obj
    return json.dumps(serialize(obj))


def schema_name_for(result: Any) -> str | None:
    """Return the import path used to rebuild a Pydantic result on replay."""
    if isinstance(result, BaseModel):
        return f"{result.__class__.__module__}.{result.__class__.__name__}"
    if isinstance(result, list) and result and isinstance(result[0], BaseModel):
        item = result[0]
        return f"list[{item.__class__.__module__}.{item.__class__.__name__}]"
    return None


def _import_model(path: str) -> type[BaseModel]:
    module_path, class_name = path.rsplit(".", 1)
    module = __import__(module_path, fromlist=[class_name])
    return getattr(module, class_name)


async def deserialize(obj: Any, output_schema_name: str | None = None) -> Any:
    """Deserialize a stored step output.

    Args:
        obj: Stored JSON value
        output_schema_name: The name of the output schema (can be
            "list[module.ClassName]" for lists)

    Returns:
        Deserialized object
    """
    if not output_schema_name:
        return obj

    try:
        if output_schema_name.startswith("list[") and isinstance(obj, list):
            model_class = _import_model(output_schema_name[5:-1])
            if issubclass(model_class, BaseModel):
                return [model_class.model_validate(item) for item in obj]
            return obj

        if isinstance(obj, dict):
            model_class = _import_model(output_schema_name)
            if issubclass(model_class, BaseModel):
                return model_class.model_validate(obj)
    except (ImportError, AttributeError, ValueError, TypeError) as e:
        raise Exception(
            f"Failed to reconstruct Pydantic model from output_schema_name: "
            f"{output_schema_name}. Error: {str(e)}"
        ) from e
    return obj


def safe_serialize(value):
    """Serialize with fallback for non-serializable values."""
    try:
        return serialize(value)
    except (TypeError, ValueError):
        if hasattr(value, "__name__"):
            return f"<{value.__name__}>"
        return f"<{type(value).__name__}>"
