# src/xml_transform/codecs/factory.py

from .base import RecordCodec
from .config import CodecConfig
from .element import ElementCodec
from .mapping import MappingCodec


def create_record_codec(config: CodecConfig = CodecConfig()) -> RecordCodec:
    """Create a record codec from config.

    Raises:
        ValueError: If the codec kind is unknown.

    Example:
        >>> codec = create_record_codec(CodecConfig(kind="element", pretty=False))
        >>> codec.encode(codec.decode(b"<bar>1</bar>"))
        b'<bar>1</bar>'
    """
    if config.kind == "mapping":
        return MappingCodec(config)

    if config.kind == "element":
        return ElementCodec(config)

    raise ValueError(f"Unknown record codec: {config.kind}")
