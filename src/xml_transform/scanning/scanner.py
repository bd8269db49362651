# src/xml_transform/scanning/scanner.py

import asyncio
import logging
from collections.abc import Mapping
from time import monotonic
from typing import BinaryIO
from xml.parsers import expat

from defusedxml.common import (
    DefusedXmlException,
    EntitiesForbidden,
    ExternalReferenceForbidden,
)

from xml_transform.errors import ScanError
from xml_transform.observability import names
from xml_transform.observability.base import MetricsHook, NoOpMetricsHook

from .models import Offset, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_GT = ord(">")
_SLASH = ord("/")
_QUOTES = (ord('"'), ord("'"))


class OffsetScanner:
    """
    Incremental byte-offset scanner for one target tag.

    - Feed raw bytes in document order, then call close()
    - Tag names match case-insensitively
    - Offsets are document-global byte positions
    - Nested occurrences of the target tag are rejected, not paired

    Expat reports the byte index of the ``<`` that starts each tag. The end
    of a tag is found by looking ahead for its ``>`` in a small window of
    recent input, which is trimmed to the most recent parser event after
    every chunk.
    """

    def __init__(self, tag: str, *, forbid_entities: bool = True) -> None:
        if not tag:
            raise ValueError("tag must be a non-empty element name")

        self._tag = tag.casefold()
        self._offsets: list[Offset] = []
        self._pending_start: int | None = None
        self._pending_namespaces: Mapping[str | None, str] = {}
        self._skip_close = False
        # In-scope namespace declarations, one entry per open element
        self._scopes: list[Mapping[str | None, str]] = [{}]

        self._window = bytearray()
        self._window_start = 0
        self._mark = 0
        self._consumed = 0
        self._closed = False

        parser = expat.ParserCreate()
        parser.StartElementHandler = self._on_open
        parser.EndElementHandler = self._on_close
        # Every other token lands here, which keeps the trim mark moving
        parser.DefaultHandlerExpand = self._on_other
        if forbid_entities:
            parser.EntityDeclHandler = self._forbid_entity_decl
            parser.UnparsedEntityDeclHandler = self._forbid_unparsed_entity_decl
            parser.ExternalEntityRefHandler = self._forbid_external_ref
        self._parser = parser

    @property
    def consumed(self) -> int:
        return self._consumed

    def feed(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Scanner already closed")
        if not data:
            return

        self._window += data
        self._consumed += len(data)
        self._parse(data, final=False)

        # Nothing before the latest event can be referenced again
        drop = self._mark - self._window_start
        if drop > 0:
            del self._window[:drop]
            self._window_start = self._mark

    def close(self) -> ScanResult:
        if self._closed:
            raise RuntimeError("Scanner already closed")
        self._parse(b"", final=True)
        self._closed = True
        return ScanResult(offsets=tuple(self._offsets), end_position=self._consumed)

    def _parse(self, data: bytes, *, final: bool) -> None:
        try:
            self._parser.Parse(data, final)
        except expat.ExpatError as exc:
            raise ScanError(
                expat.ErrorString(exc.code),
                line=exc.lineno,
                column=exc.offset,
                position=self._parser.ErrorByteIndex,
            ) from exc
        except DefusedXmlException as exc:
            raise ScanError(
                str(exc),
                line=self._parser.CurrentLineNumber,
                column=self._parser.CurrentColumnNumber,
                position=self._parser.CurrentByteIndex,
            ) from exc

    # Parser events

    def _on_open(self, name: str, attrs: dict) -> None:
        index = self._parser.CurrentByteIndex
        self._mark = index
        inherited = self._scopes[-1]
        self._scopes.append(_declare(inherited, attrs))
        if name.casefold() != self._tag:
            return

        if self._pending_start is not None:
            raise ScanError(
                f"nested <{name}> inside another <{name}> is not supported",
                line=self._parser.CurrentLineNumber,
                column=self._parser.CurrentColumnNumber,
                position=index,
            )

        end = self._tag_end(index)
        if self._window[end - 2 - self._window_start] == _SLASH:
            # <tag .../> gets an end event straight away, already accounted for
            self._offsets.append(Offset(index, end, inherited))
            self._skip_close = True
        else:
            self._pending_start = index
            self._pending_namespaces = inherited

    def _on_close(self, name: str) -> None:
        index = self._parser.CurrentByteIndex
        self._mark = index
        self._scopes.pop()
        if name.casefold() != self._tag:
            return

        if self._skip_close:
            self._skip_close = False
            return

        start = self._pending_start
        if start is None:
            return
        self._offsets.append(
            Offset(start, self._tag_end(index), self._pending_namespaces)
        )
        self._pending_start = None

    def _on_other(self, data: str) -> None:
        self._mark = self._parser.CurrentByteIndex

    def _tag_end(self, index: int) -> int:
        """Absolute position just after the ``>`` closing the tag at ``index``."""
        quote = None
        window = self._window
        for pos in range(index - self._window_start, len(window)):
            byte = window[pos]
            if quote is not None:
                if byte == quote:
                    quote = None
            elif byte in _QUOTES:
                quote = byte
            elif byte == _GT:
                return self._window_start + pos + 1
        raise ScanError("unterminated tag", position=index)

    # defusedxml policy

    def _forbid_entity_decl(
        self, name, is_parameter_entity, value, base, sysid, pubid, notation_name
    ):
        raise EntitiesForbidden(name, value, base, sysid, pubid, notation_name)

    def _forbid_unparsed_entity_decl(self, name, base, sysid, pubid, notation_name):
        raise EntitiesForbidden(name, None, base, sysid, pubid, notation_name)

    def _forbid_external_ref(self, context, base, sysid, pubid):
        raise ExternalReferenceForbidden(context, base, sysid, pubid)


def _declare(
    inherited: Mapping[str | None, str], attrs: dict
) -> Mapping[str | None, str]:
    """Scope of an element: ``inherited`` plus its own ``xmlns`` attributes."""
    declared = {
        (None if key == "xmlns" else key[6:]): value
        for key, value in attrs.items()
        if key == "xmlns" or key.startswith("xmlns:")
    }
    if not declared:
        return inherited

    scope = {**inherited, **declared}
    # xmlns="" undeclares the default namespace
    return {prefix: uri for prefix, uri in scope.items() if uri}


def scan(
    stream: BinaryIO,
    tag: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    forbid_entities: bool = True,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> ScanResult:
    """Scan ``stream`` once and return the byte span of every ``tag`` element.

    Args:
        stream: Binary stream positioned at the start of the document.
            Consumed to the end.
        tag: Element name to locate. Matched case-insensitively.
        chunk_size: Bytes read per call to ``stream.read``.
        forbid_entities: Reject entity declarations and external references.
        metrics_hook: Optional metrics hook for observability.

    Returns:
        ScanResult with offsets in document order and the total byte length.

    Raises:
        ScanError: If the document is malformed or truncated.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    start = monotonic()
    scanner = OffsetScanner(tag, forbid_entities=forbid_entities)
    logger.debug("Scanning for <%s> in chunks of %d bytes", tag, chunk_size)

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        scanner.feed(chunk)

    result = scanner.close()

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.SCAN_DURATION, elapsed_ms)
    metrics_hook.record_gauge(names.SCAN_RECORDS_FOUND, len(result.offsets))
    metrics_hook.increment(names.SCAN_BYTES, result.end_position)
    logger.info(
        "Scan complete: tag=%s, records=%d, bytes=%d, latency=%.0fms",
        tag,
        len(result.offsets),
        result.end_position,
        elapsed_ms,
    )
    return result


async def scan_async(
    stream: BinaryIO,
    tag: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    forbid_entities: bool = True,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> ScanResult:
    # The scan is sequential blocking IO, keep it off the event loop
    return await asyncio.to_thread(
        scan,
        stream,
        tag,
        chunk_size=chunk_size,
        forbid_entities=forbid_entities,
        metrics_hook=metrics_hook,
    )
