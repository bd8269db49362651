# src/xml_transform/errors.py

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from xml_transform.scanning.models import Offset

SCAN_ERROR_PREFIX = "Failed to scan input XML: "


class XMLTransformError(Exception):
    """Base class for every error raised by xml-transform."""


class ScanError(XMLTransformError):
    """The input document could not be scanned.

    Fatal to the whole run. No partial scan result is ever returned.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        position: int | None = None,
    ) -> None:
        self.reason = message
        self.line = line
        self.column = column
        self.position = position
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [SCAN_ERROR_PREFIX + self.reason]
        if self.line is not None:
            parts.append(f"Line: {self.line}")
        if self.column is not None:
            parts.append(f"Column: {self.column}")
        if self.position is not None:
            parts.append(f"Byte: {self.position}")
        return "\n".join(parts)


class RecordError(XMLTransformError):
    """A single record failed somewhere between read and write.

    Carries the record's document-order index and its byte span.
    """

    stage = "process"

    def __init__(self, index: int, offset: Offset, detail: str) -> None:
        self.index = index
        self.offset = offset
        super().__init__(
            f"Failed to {self.stage} record {index} "
            f"at bytes {offset.start}-{offset.end}: {detail}"
        )


class DecodeError(RecordError):
    stage = "decode"


class TransformError(RecordError):
    stage = "transform"


class EncodeError(RecordError):
    stage = "encode"


class ShortReadError(XMLTransformError, OSError):
    """The input returned fewer bytes than its scanned length.

    Usually the file changed after the scan. An OSError, like every other
    filesystem failure.
    """
