# src/xml_transform/config.py

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from xml_transform.codecs.config import CodecConfig, CodecKind
from xml_transform.scanning.scanner import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


class TransformConfig(BaseModel):
    """Settings for one transform run.

    Explicit. No values are read from the environment.
    """

    tag: str = Field(min_length=1)
    codec: CodecKind = "mapping"
    encoding: str = "utf-8"
    pretty: bool = True
    indent: str = "  "
    cdata: bool = True
    concurrency: int = Field(default=8, ge=1)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    forbid_entities: bool = True

    class Config:
        extra = "forbid"

    def codec_config(self) -> CodecConfig:
        return CodecConfig(
            kind=self.codec,
            encoding=self.encoding,
            pretty=self.pretty,
            indent=self.indent,
            cdata=self.cdata,
        )


def load_config(path: str | Path) -> TransformConfig:
    """Load a TransformConfig from a YAML file."""
    logger.debug("Loading transform config from %s", path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return TransformConfig(**data)
