"""Body serialization for JSON and XML requests, and typed response mapping."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic_core import PydanticSerializationError, to_json

from rest_builder.xml_body import dict_to_xml, xml_to_dict

T = TypeVar("T")


class SerializationError(ValueError):
    """Raised when a body value cannot be rendered in the requested format."""


def serialize_json(value: Any) -> str:
    """Render a body value as JSON text.

    Strings are treated as already serialized and passed through.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    try:
        return to_json(value).decode("utf-8")
    except PydanticSerializationError as e:
        raise SerializationError(
            f"Cannot serialize {type(value).__name__} as JSON: {e}"
        ) from e


def serialize_xml(value: Any) -> str:
    """Render a body value as XML text.

    Strings pass through unchanged. A dict must have a single root key.
    A pydantic model is rooted at its class name.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = {type(value).__name__: value.model_dump(mode="json", by_alias=True)}
    if not isinstance(value, dict):
        raise SerializationError(f"Cannot serialize {type(value).__name__} as XML")
    try:
        return dict_to_xml(value)
    except ValueError as e:
        raise SerializationError(str(e)) from e


def deserialize_json(raw: str | bytes, target_type: type[T]) -> T:
    """Validate JSON text into target_type.

    Raises:
        pydantic.ValidationError: If raw is not valid JSON for target_type.
    """
    return TypeAdapter(target_type).validate_json(raw)


def deserialize_xml(
    raw: str | bytes,
    target_type: type[T],
    force_list: set[str] | None = None,
) -> T:
    """Validate an XML document into target_type.

    The document is converted with `xml_to_dict`, so target_type sees a dict
    keyed by the root tag, e.g. ``{"Item": {"Id": "1"}}``.

    Raises:
        xml.etree.ElementTree.ParseError: If raw is not well-formed XML.
        pydantic.ValidationError: If the converted dict does not fit target_type.
    """
    return TypeAdapter(target_type).validate_python(xml_to_dict(raw, force_list))
