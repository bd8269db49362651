# src/xml_transform/codecs/mapping.py

from collections.abc import Mapping
from typing import Any

from lxml import etree

from .base import Namespaces, RecordCodec
from .config import CodecConfig
from .element import ElementCodec, scope_element

ATTR_KEY = "$"
TEXT_KEY = "_"

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


class MappingCodec(RecordCodec):
    """
    Records are plain dicts, one key for the root element.

    Shape:
    - ``{"tag": "text"}`` for a leaf element without attributes
    - ``{"tag": {"$": {attrs}, "_": "text", "child": [value, ...]}}`` otherwise
    - Children are always lists, one per child tag name
    - Text of mixed content is concatenated into ``"_"``
    - Comments and processing instructions inside a record are dropped

    Names are kept as written, ``prefix:local``. Namespace declarations made
    on an element are ordinary ``xmlns``/``xmlns:prefix`` attributes;
    inherited ones do not appear in the record.

    Decoding and encoding go through ElementCodec, so the CDATA, indentation
    and header policy is shared.
    """

    def __init__(self, config: CodecConfig = CodecConfig()) -> None:
        self._config = config
        self._elements = ElementCodec(config)

    @property
    def config(self) -> CodecConfig:
        return self._config

    def decode(
        self, data: bytes, namespaces: Namespaces | None = None
    ) -> dict[str, Any]:
        root = self._elements.decode(data, namespaces)
        return {_element_name(root): _to_value(root)}

    def encode(
        self, record: Mapping[str, Any], namespaces: Namespaces | None = None
    ) -> bytes:
        if not isinstance(record, Mapping) or len(record) != 1:
            raise ValueError("Record must be a mapping with exactly one root key")

        ((name, value),) = record.items()
        scope = scope_element(namespaces or {})
        _build(scope, name, value, dict(namespaces or {}))
        return self._elements.encode(scope[0], namespaces)


def _to_value(element: etree._Element) -> Any:
    children = [child for child in element if isinstance(child.tag, str)]
    text = "".join(
        [element.text or ""] + [child.tail or "" for child in element]
    )
    attrs = _declarations(element)
    for key, value in element.attrib.items():
        attrs[_attribute_name(key, element.nsmap)] = value

    if not children and not attrs:
        return text

    node: dict[str, Any] = {}
    if attrs:
        node[ATTR_KEY] = attrs
    # Indentation between children is not content
    if text.strip() or (text and not children):
        node[TEXT_KEY] = text
    for child in children:
        node.setdefault(_element_name(child), []).append(_to_value(child))
    return node


def _element_name(element: etree._Element) -> str:
    local = etree.QName(element).localname
    return f"{element.prefix}:{local}" if element.prefix else local


def _attribute_name(key: str, nsmap: Mapping[str | None, str]) -> str:
    qname = etree.QName(key)
    if qname.namespace is None:
        return qname.localname
    if qname.namespace == XML_NAMESPACE:
        return f"xml:{qname.localname}"
    for prefix, uri in nsmap.items():
        if prefix and uri == qname.namespace:
            return f"{prefix}:{qname.localname}"
    return key


def _declarations(element: etree._Element) -> dict[str, str]:
    """``xmlns`` attributes of ``element`` that its parent does not already have."""
    parent = element.getparent()
    inherited = parent.nsmap if parent is not None else {}
    return {
        (f"xmlns:{prefix}" if prefix else "xmlns"): uri
        for prefix, uri in element.nsmap.items()
        if inherited.get(prefix) != uri
    }


def _build(
    parent: etree._Element, name: str, value: Any, scope: dict[str | None, str]
) -> None:
    attrs = (value.get(ATTR_KEY) or {}) if isinstance(value, Mapping) else {}
    declared: dict[str | None, str] = {}
    plain: dict[str, Any] = {}
    for key, attr_value in attrs.items():
        if key == "xmlns" or key.startswith("xmlns:"):
            declared[None if key == "xmlns" else key[6:]] = str(attr_value)
        else:
            plain[key] = attr_value
    if declared:
        scope = {prefix: uri for prefix, uri in {**scope, **declared}.items() if uri}

    element = etree.SubElement(
        parent,
        _clark(name, scope),
        nsmap={prefix: uri for prefix, uri in declared.items() if uri} or None,
    )
    for key, attr_value in plain.items():
        element.set(_clark(key, scope, attribute=True), str(attr_value))

    if not isinstance(value, Mapping):
        if value is not None:
            # "" stays None so empty elements serialize as <tag/>
            element.text = str(value) or None
        return

    for key, item in value.items():
        if key == ATTR_KEY:
            continue
        if key == TEXT_KEY:
            element.text = str(item) or None
        else:
            items = item if isinstance(item, list) else [item]
            for child_value in items:
                _build(element, key, child_value, scope)


def _clark(
    name: str, scope: Mapping[str | None, str], *, attribute: bool = False
) -> str:
    """Resolve ``prefix:local`` against ``scope`` into lxml's ``{uri}local``."""
    prefix, _, local = name.rpartition(":")
    if not prefix:
        # Unprefixed attributes are never in the default namespace
        uri = None if attribute else scope.get(None)
    elif prefix == "xml":
        uri = XML_NAMESPACE
    else:
        uri = scope.get(prefix)
        if uri is None:
            raise ValueError(f"Namespace prefix {prefix!r} of {name!r} is not declared")
    return f"{{{uri}}}{local}" if uri else local
