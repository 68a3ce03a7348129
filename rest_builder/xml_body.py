"""Dict-to-XML and XML-to-dict conversion for request and response bodies.

Request bodies given as plain dicts are rendered to XML text here. A dict
must have exactly one top-level key, which becomes the root element:

    {"Order": {"Id": 7, "Line": [{"Sku": "a"}, {"Sku": "b"}]}}

renders as ``<Order><Id>7</Id><Line><Sku>a</Sku></Line><Line>...``.
Keys starting with ``@`` become attributes and ``#text`` becomes the text of
an element that also has attributes or children. `xml_to_dict` is the
inverse, for callers that map XML responses.

Namespaces are not emitted and are stripped when parsing.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any


# ---------------------------------------------------------------------------
# Python dict -> XML text  (request serialization)
# ---------------------------------------------------------------------------


def dict_to_xml(data: dict[str, Any]) -> str:
    """Render a single-root dict as an XML document string.

    Args:
        data: Dict with exactly one top-level key (the root element name).

    Returns:
        XML text with a UTF-8 declaration.

    Raises:
        ValueError: If *data* does not have exactly one top-level key.
    """
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(
            f"dict_to_xml expects a dict with exactly one top-level key "
            f"(the root element), got {type(data).__name__} with "
            f"{len(data) if isinstance(data, dict) else 'N/A'} keys"
        )

    root_tag, root_value = next(iter(data.items()))
    root = _build_element(str(root_tag), root_value)
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="utf-8"?>{body}'


def _build_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)

    if value is None:
        return element

    if isinstance(value, dict):
        for key, child in value.items():
            key = str(key)
            if key.startswith("@"):
                if child is not None:
                    element.set(key[1:], _text(child))
            elif key == "#text":
                if child is not None:
                    element.text = _text(child)
            elif isinstance(child, (list, tuple)):
                # Repeated siblings share the tag
                for item in child:
                    element.append(_build_element(key, item))
            else:
                element.append(_build_element(key, child))
    elif isinstance(value, (list, tuple)):
        for item in value:
            element.append(_build_element("item", item))
    else:
        element.text = _text(value)

    return element


def _text(value: Any) -> str:
    # XML Schema booleans are lower case
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# XML text -> Python dict  (response mapping)
# ---------------------------------------------------------------------------


def xml_to_dict(
    xml_text: str | bytes,
    force_list: set[str] | None = None,
) -> dict[str, Any]:
    """Parse an XML document into a JSON-compatible dict.

    Args:
        xml_text: XML document.
        force_list: Tags that are always lists, even with a single element.

    Returns:
        Dict with the root tag as its single key.

    Raises:
        ET.ParseError: If *xml_text* is not well-formed.
    """
    root = ET.fromstring(xml_text)
    return {_local_name(root.tag): _parse_element(root, force_list or set())}


def _local_name(tag: str) -> str:
    """``{urn:x}Name`` -> ``Name``."""
    return tag.rsplit("}", 1)[-1]


def _parse_element(element: ET.Element, force_list: set[str]) -> Any:
    result: dict[str, Any] = {
        f"@{_local_name(name)}": value
        for name, value in element.attrib.items()
        if not name.startswith("xmlns")
    }

    grouped: dict[str, list[Any]] = {}
    for child in element:
        grouped.setdefault(_local_name(child.tag), []).append(
            _parse_element(child, force_list)
        )
    for tag, values in grouped.items():
        result[tag] = values if tag in force_list or len(values) > 1 else values[0]

    text = (element.text or "").strip()
    if text and not result:
        return text
    if text:
        result["#text"] = text
    return result or None
