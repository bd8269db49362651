# src/xml_transform/codecs/base.py

from collections.abc import Mapping
from typing import Any, Protocol

# Prefix (None for the default namespace) to namespace URI, like lxml's nsmap
Namespaces = Mapping[str | None, str]


class RecordCodec(Protocol):
    """Converts one raw element span to a record and back.

    The record type is codec specific and opaque to the pipeline. Both
    directions receive the namespace declarations the element inherits from
    its ancestors in the document, so prefixes declared outside the span
    still resolve and are not repeated in the output.
    """

    def decode(self, data: bytes, namespaces: Namespaces | None = None) -> Any:
        """Parse the exact bytes of one element into a record.

        Raises:
            Codec-specific errors if the bytes are not a well-formed element.
        """
        ...

    def encode(self, record: Any, namespaces: Namespaces | None = None) -> bytes:
        """Serialize a record back to element bytes, without XML declaration."""
        ...
