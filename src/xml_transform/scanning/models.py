# scanning/models.py

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Offset:
    """Byte span of one target element, ``start`` at its ``<``, ``end`` exclusive.

    ``namespaces`` holds the prefix declarations the element inherits from its
    ancestors, keyed like lxml's ``nsmap`` (``None`` for the default
    namespace). Records in the same scope share one mapping.
    """

    start: int
    end: int
    namespaces: Mapping[str | None, str] = field(
        default_factory=dict, compare=False
    )

    def __iter__(self):
        # Allows ``start, end = offset``
        yield self.start
        yield self.end


@dataclass(frozen=True)
class ScanResult:
    offsets: tuple[Offset, ...]
    end_position: int
