# src/xml_transform/transform.py

"""Entry points.

Example:
    >>> async def shout(record):
    ...     record["bar"] = record["bar"].upper()
    ...     return record
    >>>
    >>> run = await transform_xml(shout, "bar", "in.xml", "out.xml")
    >>> async with run:
    ...     await drain(run, concurrency=4)
"""

import logging
import os
from dataclasses import dataclass
from time import monotonic

from xml_transform.codecs.base import RecordCodec
from xml_transform.codecs.factory import create_record_codec
from xml_transform.config import TransformConfig
from xml_transform.files.bundle import IOBundle
from xml_transform.observability import names
from xml_transform.observability.base import MetricsHook, NoOpMetricsHook
from xml_transform.pipeline.pool import drain
from xml_transform.pipeline.sequencer import PipelineRun, Transform
from xml_transform.scanning.scanner import DEFAULT_CHUNK_SIZE, scan_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformReport:
    """Outcome of a completed run_transform."""

    records: int
    end_position: int
    elapsed_ms: float


async def transform_xml(
    transform: Transform,
    tag: str,
    input_path: str | os.PathLike,
    output_path: str | os.PathLike,
    *,
    codec: RecordCodec | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    forbid_entities: bool = True,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> PipelineRun:
    """Open the files, scan for ``tag`` and return the pending run.

    Nothing is transformed until the returned run is iterated. The caller
    owns the run: it must await every item it yields (with whatever
    throttling it likes) and then close it.

    Args:
        transform: Sync or async function, record in, record out.
        tag: Element name of the records to transform.
        input_path: Document to read.
        output_path: Created or truncated.
        codec: Record codec. Defaults to MappingCodec.
        chunk_size: Scanner read size in bytes.
        forbid_entities: Reject entity declarations while scanning.
        metrics_hook: Optional metrics hook for observability.

    Raises:
        OSError: If either path cannot be opened.
        ScanError: If the input is not well-formed. The files are closed
            before this is raised.
    """
    bundle = await IOBundle.acquire(input_path, output_path)
    try:
        scan = await scan_async(
            bundle.input_stream,
            tag,
            chunk_size=chunk_size,
            forbid_entities=forbid_entities,
            metrics_hook=metrics_hook,
        )
    except BaseException:
        await bundle.release()
        raise

    return PipelineRun(
        transform, bundle, scan, codec=codec, metrics_hook=metrics_hook
    )


async def run_transform(
    transform: Transform,
    config: TransformConfig,
    input_path: str | os.PathLike,
    output_path: str | os.PathLike,
    *,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> TransformReport:
    """Transform a whole document and close everything.

    Raises:
        OSError, ScanError: Before any output is written.
        RecordError: The first record failure. The output is truncated at
            that record and should be discarded.
    """
    start = monotonic()
    run = await transform_xml(
        transform,
        config.tag,
        input_path,
        output_path,
        codec=create_record_codec(config.codec_config()),
        chunk_size=config.chunk_size,
        forbid_entities=config.forbid_entities,
        metrics_hook=metrics_hook,
    )

    async with run:
        await drain(run, concurrency=config.concurrency)

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.PIPELINE_DURATION, elapsed_ms)
    logger.info(
        "Transformed %d <%s> records: %s -> %s in %.0fms",
        len(run.scan.offsets),
        config.tag,
        input_path,
        output_path,
        elapsed_ms,
    )
    return TransformReport(
        records=len(run.scan.offsets),
        end_position=run.scan.end_position,
        elapsed_ms=elapsed_ms,
    )
