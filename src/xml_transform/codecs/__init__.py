# src/xml_transform/codecs/__init__.py

"""Record codecs for xml-transform.

A codec turns the raw bytes of one target element into a record the
transform can work with, and the transformed record back into bytes.

Encoding policy (shared by all codecs):
- No XML declaration on re-encoded records
- Text containing &, < or > is wrapped in CDATA
- Child elements are indented; leaf records come back unchanged
- Prefixes declared on a record's ancestors resolve and are not repeated

Example:
    >>> from xml_transform.codecs import CodecConfig, create_record_codec
    >>>
    >>> codec = create_record_codec(CodecConfig(kind="mapping"))
    >>> codec.decode(b'<bar attr="x">hi</bar>')
    {'bar': {'$': {'attr': 'x'}, '_': 'hi'}}
"""

from .base import Namespaces, RecordCodec
from .config import CodecConfig, CodecKind
from .element import ElementCodec
from .factory import create_record_codec
from .mapping import MappingCodec

__all__ = [
    # Factory
    "create_record_codec",
    # Protocol
    "Namespaces",
    "RecordCodec",
    # Config
    "CodecConfig",
    "CodecKind",
    # Codecs
    "ElementCodec",
    "MappingCodec",
]
