# Codecs
from .codecs import (
    CodecConfig,
    ElementCodec,
    MappingCodec,
    RecordCodec,
    create_record_codec,
)

# Config
from .config import TransformConfig, load_config

# Errors
from .errors import (
    DecodeError,
    EncodeError,
    RecordError,
    ScanError,
    ShortReadError,
    TransformError,
    XMLTransformError,
)

# Files
from .files import IOBundle, open_bundle

# Observability
from .observability import MetricsHook, NoOpMetricsHook, RecordingMetricsHook

# Pipeline
from .pipeline import PipelineRun, Transform, WriteHead, drain

# Retries
from .retrying import with_retries

# Scanning
from .scanning import Offset, OffsetScanner, ScanResult, scan, scan_async

# Entry points
from .transform import TransformReport, run_transform, transform_xml

__all__ = [
    # Codecs
    "CodecConfig",
    "ElementCodec",
    "MappingCodec",
    "RecordCodec",
    "create_record_codec",
    # Config
    "TransformConfig",
    "load_config",
    # Errors
    "DecodeError",
    "EncodeError",
    "RecordError",
    "ScanError",
    "ShortReadError",
    "TransformError",
    "XMLTransformError",
    # Files
    "IOBundle",
    "open_bundle",
    # Observability
    "MetricsHook",
    "NoOpMetricsHook",
    "RecordingMetricsHook",
    # Pipeline
    "PipelineRun",
    "Transform",
    "WriteHead",
    "drain",
    # Retries
    "with_retries",
    # Scanning
    "Offset",
    "OffsetScanner",
    "ScanResult",
    "scan",
    "scan_async",
    # Entry points
    "TransformReport",
    "run_transform",
    "transform_xml",
]
