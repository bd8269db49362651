# src/xml_transform/codecs/element.py

import logging

from lxml import etree

from .base import Namespaces, RecordCodec
from .config import CodecConfig

logger = logging.getLogger(__name__)

_CDATA_TRIGGERS = ("&", "<", ">")

# Stands in for a record's ancestors while it is parsed and serialized
SCOPE_TAG = "xml-transform-scope"


class ElementCodec(RecordCodec):
    """
    Records are lxml elements.

    - CDATA sections survive decoding
    - Entities are not resolved, no network access
    - Encoding mutates the element it is given (CDATA wrapping, indentation)

    A record with inherited namespaces is parsed as the only child of a scope
    element that declares them, so ``getparent()`` returns that scope. Those
    declarations are left out again when the record is encoded.
    """

    def __init__(self, config: CodecConfig = CodecConfig(kind="element")) -> None:
        self._config = config

    @property
    def config(self) -> CodecConfig:
        return self._config

    def decode(
        self, data: bytes, namespaces: Namespaces | None = None
    ) -> etree._Element:
        # Parsers are cheap and not safe to share across threads
        parser = etree.XMLParser(
            encoding=self._config.encoding,
            strip_cdata=False,
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )
        if not namespaces:
            return etree.fromstring(data, parser)

        # "<scope .../>" becomes "<scope ...>"
        head = etree.tostring(scope_element(namespaces))[:-2] + b">"
        tail = b"</" + SCOPE_TAG.encode() + b">"
        return etree.fromstring(head + data + tail, parser)[0]

    def encode(
        self, record: etree._Element, namespaces: Namespaces | None = None
    ) -> bytes:
        if not etree.iselement(record):
            raise TypeError(
                f"Expected an lxml element, got {type(record).__name__}"
            )

        if self._config.cdata:
            for node in record.iter(tag=etree.Element):
                if node.text and needs_cdata(node.text):
                    node.text = etree.CDATA(node.text)

        if self._config.pretty:
            etree.indent(record, space=self._config.indent)

        if not namespaces:
            return etree.tostring(
                record,
                encoding=self._config.encoding,
                xml_declaration=False,
                with_tail=False,
            )

        scope = record.getparent()
        if scope is None or not is_scope(scope) or len(scope) != 1:
            scope = scope_element(namespaces)
            scope.append(record)
        record.tail = None

        data = etree.tostring(
            scope, encoding=self._config.encoding, xml_declaration=False
        )
        # Only the record, without the scope's start and end tags
        return data[data.index(b">") + 1 : data.rindex(b"</")]


def scope_element(namespaces: Namespaces) -> etree._Element:
    """Empty element declaring ``namespaces``, to hold one record."""
    return etree.Element(SCOPE_TAG, nsmap=dict(namespaces))


def is_scope(element: etree._Element) -> bool:
    return etree.QName(element).localname == SCOPE_TAG


def needs_cdata(text: str) -> bool:
    """True when text has markup characters and can legally sit in CDATA."""
    if "]]>" in text:
        return False
    return any(c in text for c in _CDATA_TRIGGERS)
