# src/xml_transform/codecs/config.py

from dataclasses import dataclass
from typing import Literal

CodecKind = Literal["mapping", "element"]


@dataclass(frozen=True)
class CodecConfig:
    """Record encoding policy.

    Fixed for the lifetime of a codec. Re-encoded records never carry an
    XML declaration.
    """

    kind: CodecKind = "mapping"
    encoding: str = "utf-8"
    pretty: bool = True  # Indent child elements; leaf records are untouched
    indent: str = "  "
    cdata: bool = True  # Wrap text containing &, < or > in CDATA
