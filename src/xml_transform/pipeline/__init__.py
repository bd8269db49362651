# src/xml_transform/pipeline/__init__.py

"""Ordered rewrite pipeline.

Records are transformed concurrently and out of order; output is always
written in document order through a single write head.

Example:
    >>> run = PipelineRun(transform, bundle, scan)
    >>> async with run:
    ...     await drain(run, concurrency=4)
"""

from .pool import drain
from .sequencer import PipelineRun, Transform
from .write_head import WriteHead

__all__ = [
    "PipelineRun",
    "Transform",
    "WriteHead",
    "drain",
]
