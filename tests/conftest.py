from collections.abc import Callable
from pathlib import Path

import pytest

SAMPLE_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<foo>
    <bar>๑</bar>
    sดme junk
    <bar attr="sma">foolalalfar</bar>
    <bar><![CDATA[2&>1]]></bar>
    more junk
</foo><!-- this is ok -->"""


@pytest.fixture
def sample_doc() -> str:
    """Three <bar> records, multi-byte text inside and outside them."""
    return SAMPLE_DOC


@pytest.fixture
def write_input(tmp_path: Path) -> Callable[..., Path]:
    """Write a document to a temp file and return its path."""

    def _write(content: str | bytes, name: str = "input.xml") -> Path:
        path = tmp_path / name
        path.write_bytes(content.encode() if isinstance(content, str) else content)
        return path

    return _write


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    return tmp_path / "output.xml"
