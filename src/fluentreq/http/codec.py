"""
Body codecs for JSON and XML payloads.

XML values are either lxml elements or single-root mappings such as::

    {"widget": {"@id": "7", "name": "foo", "tag": ["a", "b"]}}

which encodes to ``<widget id="7"><name>foo</name><tag>a</tag><tag>b</tag></widget>``.
Keys starting with ``@`` become attributes, lists become repeated children,
``"#text"`` holds text next to attributes or children, and ``None`` is an
empty element. `element_to_dict` is the inverse; XML carries no types, so
scalars come back as strings.
"""
import dataclasses
import json
from collections.abc import Mapping
from typing import Any, Callable

from lxml import etree

from fluentreq.errors import DecodeError, EncodeError

JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

TEXT_KEY = "#text"
ATTR_PREFIX = "@"

# Never resolve entities or reach the network while parsing response bodies.
_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def encode_json(value: Any) -> bytes:
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodeError("json", str(exc)) from exc


def decode_json(data: bytes, into: Callable | None = None) -> Any:
    try:
        value = json.loads(data)
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"invalid JSON body: {exc}") from exc
    return convert(value, into)


def encode_xml(value: Any) -> bytes:
    if isinstance(value, etree._Element):
        root = value
    elif isinstance(value, Mapping):
        if len(value) != 1:
            raise EncodeError("xml", f"mapping must have exactly one root key, got {len(value)}")
        (tag, content), = value.items()
        try:
            root = dict_to_element(tag, content)
        except (TypeError, ValueError) as exc:
            raise EncodeError("xml", str(exc)) from exc
    else:
        raise EncodeError("xml", f"unsupported value of type {type(value).__name__}")
    return etree.tostring(root, encoding="utf-8", xml_declaration=True)


def decode_xml(data: bytes, into: Callable | None = None) -> Any:
    try:
        root = etree.fromstring(data, parser=_XML_PARSER)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise DecodeError(f"invalid XML body: {exc}") from exc
    if into is None:
        return root
    if _is_model(into):
        # models are built from the root's content, not the element itself
        return convert(element_to_dict(root)[root.tag], into)
    return convert(root, into)


def dict_to_element(tag: str, content: Any, parent: etree._Element | None = None) -> etree._Element:
    elem = etree.Element(tag) if parent is None else etree.SubElement(parent, tag)

    if content is None:
        return elem

    if isinstance(content, Mapping):
        for key, child in content.items():
            if not isinstance(key, str):
                raise TypeError(f"XML keys must be str, got {type(key).__name__}")
            if key == TEXT_KEY:
                elem.text = _scalar_text(child)
            elif key.startswith(ATTR_PREFIX):
                elem.set(key[len(ATTR_PREFIX):], _scalar_text(child))
            elif isinstance(child, (list, tuple)):
                for item in child:
                    dict_to_element(key, item, elem)
            else:
                dict_to_element(key, child, elem)
        return elem

    elem.text = _scalar_text(content)
    return elem


def element_to_dict(elem: etree._Element) -> dict[str, Any]:
    children: dict[str, Any] = {}
    for name, value in elem.attrib.items():
        children[ATTR_PREFIX + name] = value

    for child in elem:
        if not isinstance(child.tag, str):
            # comments and processing instructions
            continue
        value = element_to_dict(child)[child.tag]
        if child.tag in children:
            existing = children[child.tag]
            if not isinstance(existing, list):
                children[child.tag] = existing = [existing]
            existing.append(value)
        else:
            children[child.tag] = value

    text = elem.text.strip() if elem.text and elem.text.strip() else None
    if not children:
        return {elem.tag: text}
    if text is not None:
        children[TEXT_KEY] = text
    return {elem.tag: children}


def convert(value: Any, into: Callable | None) -> Any:
    """Shape a decoded value with `into`: a model class, a dataclass or any callable."""
    if into is None:
        return value
    try:
        if hasattr(into, "model_validate"):
            return into.model_validate(value)
        if dataclasses.is_dataclass(into) and isinstance(value, Mapping):
            return into(**value)
        return into(value)
    except (TypeError, ValueError, KeyError) as exc:
        name = getattr(into, "__name__", repr(into))
        raise DecodeError(f"cannot decode body into {name}: {exc}") from exc


def _is_model(into: Callable) -> bool:
    return hasattr(into, "model_validate") or (
        isinstance(into, type) and dataclasses.is_dataclass(into)
    )


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError(f"cannot render {type(value).__name__} as XML text")
