from .bundle import IOBundle, open_bundle

__all__ = [
    "IOBundle",
    "open_bundle",
]
