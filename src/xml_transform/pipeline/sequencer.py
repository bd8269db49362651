# src/xml_transform/pipeline/sequencer.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterator
from functools import partial
from time import monotonic
from typing import Any

from xml_transform.codecs.base import RecordCodec
from xml_transform.codecs.mapping import MappingCodec
from xml_transform.errors import DecodeError, EncodeError, TransformError
from xml_transform.files.bundle import IOBundle
from xml_transform.observability import names
from xml_transform.observability.base import MetricsHook, NoOpMetricsHook
from xml_transform.scanning.models import Offset, ScanResult

from .write_head import WriteHead

logger = logging.getLogger(__name__)

# Sync or async, record in and record out
Transform = Callable[[Any], Any]


class PipelineRun:
    """
    One ordered rewrite of a scanned document.

    Iterating yields one task per record (its read, decode and transform),
    then one task for the trailing filler write: ``len(scan.offsets) + 1``
    items. Work for an item is only scheduled when the item is pulled, so a
    bounded consumer throttles how many transforms run at once.

    Output order never depends on completion order. Every filler copy and
    record write goes through a single WriteHead in document order; a record
    that is slow to transform holds back everything after it. A record that
    fails stops all output from its position onwards.

    The caller must await every yielded task before close(). close()
    releases the bundle.
    """

    def __init__(
        self,
        transform: Transform,
        bundle: IOBundle,
        scan: ScanResult,
        *,
        codec: RecordCodec | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._transform = transform
        self._bundle = bundle
        self._scan = scan
        self._codec = codec if codec is not None else MappingCodec()
        self.metrics_hook = metrics_hook

        self._write_head = WriteHead()
        self._records: list[asyncio.Task[None]] = []
        self._transformed: dict[int, Any] = {}
        self._started = False
        self._closed = False

    @property
    def bundle(self) -> IOBundle:
        return self._bundle

    @property
    def scan(self) -> ScanResult:
        return self._scan

    def __len__(self) -> int:
        return len(self._scan.offsets) + 1

    def __iter__(self) -> Iterator[asyncio.Task[None]]:
        if self._started:
            raise RuntimeError("A PipelineRun can only be iterated once")
        self._started = True
        return self._completions()

    def _completions(self) -> Iterator[asyncio.Task[None]]:
        position = 0

        for index, offset in enumerate(self._scan.offsets):
            # Filler between the previous record and this one
            self._write_head.append(
                partial(self._copy_span, position, offset.start),
                name=f"filler-{index}",
            )
            position = offset.end

            # Not chained: runs alongside the write head and other records
            record = asyncio.create_task(
                self._transform_record(index, offset), name=f"record-{index}"
            )
            self._records.append(record)

            self._write_head.append(
                partial(self._write_record, index, offset, record),
                name=f"write-{index}",
            )
            yield record

        yield self._write_head.append(
            partial(self._copy_span, position, self._scan.end_position),
            name="filler-trailing",
        )

    async def _copy_span(self, start: int, end: int) -> None:
        data = await self._bundle.read_span(start, end)
        written = await self._bundle.write(data)
        self.metrics_hook.increment(names.BYTES_WRITTEN_TOTAL, written)
        logger.debug("Copied filler bytes %d-%d", start, end)

    async def _transform_record(self, index: int, offset: Offset) -> None:
        start = monotonic()
        data = await self._bundle.read_span(offset.start, offset.end)

        try:
            record = self._codec.decode(data, offset.namespaces)
        except Exception as exc:
            self._record_failed("decode", index, exc)
            raise DecodeError(index, offset, str(exc)) from exc

        try:
            result = self._transform(record)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self._record_failed("transform", index, exc)
            raise TransformError(index, offset, str(exc)) from exc

        self._transformed[index] = result

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.RECORD_TRANSFORM_DURATION, elapsed_ms)
        self.metrics_hook.increment(names.RECORDS_TRANSFORMED_TOTAL)
        logger.debug("Transformed record %d in %.0fms", index, elapsed_ms)

    async def _write_record(
        self, index: int, offset: Offset, record: asyncio.Task[None]
    ) -> None:
        await record
        result = self._transformed.pop(index)

        try:
            data = self._codec.encode(result, offset.namespaces)
        except Exception as exc:
            self._record_failed("encode", index, exc)
            raise EncodeError(index, offset, str(exc)) from exc

        written = await self._bundle.write(data)
        self.metrics_hook.increment(names.BYTES_WRITTEN_TOTAL, written)
        logger.debug("Wrote record %d (%d bytes)", index, written)

    def _record_failed(self, stage: str, index: int, exc: Exception) -> None:
        self.metrics_hook.increment(names.RECORD_ERRORS_TOTAL, labels={"stage": stage})
        logger.error("Record %d failed to %s: %s", index, stage, exc)

    async def close(self) -> None:
        """Wait for outstanding reads and writes, then release the bundle."""
        if self._closed:
            return
        self._closed = True

        failure = await self._write_head.settle()
        # Records behind a failure are never written but may still be reading
        await asyncio.gather(*self._records, return_exceptions=True)
        # Results behind the failure were never written
        self._transformed.clear()
        await self._bundle.release()

        if failure is not None:
            logger.warning("Pipeline closed after failure: %s", failure)

    async def __aenter__(self) -> PipelineRun:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
