from .models import Offset, ScanResult
from .scanner import DEFAULT_CHUNK_SIZE, OffsetScanner, scan, scan_async

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "Offset",
    "OffsetScanner",
    "ScanResult",
    "scan",
    "scan_async",
]
