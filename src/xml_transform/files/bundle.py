# src/xml_transform/files/bundle.py

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import AsyncIterator
from contextlib import ExitStack, asynccontextmanager
from pathlib import Path
from typing import BinaryIO

from xml_transform.errors import ShortReadError

logger = logging.getLogger(__name__)


class IOBundle:
    """
    The three file handles one transform run works with.

    - input_stream: sequential, read once by the scanner
    - input_handle: random access, for filler and record spans
    - output_handle: append-only, written in document order

    All three are opened together by acquire() and closed together by
    release(). Writes are not synchronised here; the write head serialises
    them.
    """

    def __init__(
        self,
        *,
        input_path: Path,
        output_path: Path,
        input_stream: BinaryIO,
        input_handle: BinaryIO,
        output_handle: BinaryIO,
    ) -> None:
        self.input_path = input_path
        self.output_path = output_path
        self.input_stream = input_stream
        self.input_handle = input_handle
        self.output_handle = output_handle
        self._read_lock = threading.Lock()
        self._released = False

    @classmethod
    async def acquire(
        cls, input_path: str | os.PathLike, output_path: str | os.PathLike
    ) -> IOBundle:
        """Open the input twice and create (or truncate) the output.

        Raises:
            OSError: If any path cannot be opened. Handles opened before the
                failure are closed first.
        """
        return await asyncio.to_thread(cls._open, Path(input_path), Path(output_path))

    @classmethod
    def _open(cls, input_path: Path, output_path: Path) -> IOBundle:
        with ExitStack() as stack:
            input_stream = open(input_path, "rb")
            stack.callback(input_stream.close)
            input_handle = open(input_path, "rb")
            stack.callback(input_handle.close)
            output_handle = open(output_path, "wb")
            stack.callback(output_handle.close)
            # Everything opened, hand ownership to the bundle
            stack.pop_all()

        logger.info("Opened IO bundle: input=%s, output=%s", input_path, output_path)
        return cls(
            input_path=input_path,
            output_path=output_path,
            input_stream=input_stream,
            input_handle=input_handle,
            output_handle=output_handle,
        )

    @property
    def released(self) -> bool:
        return self._released

    async def read_span(self, start: int, end: int) -> bytes:
        """Read bytes ``[start, end)`` from the random-access handle."""
        if start > end:
            raise ValueError(f"Invalid span: start={start} > end={end}")
        if start == end:
            return b""
        return await asyncio.to_thread(self._read_span, start, end)

    def _read_span(self, start: int, end: int) -> bytes:
        with self._read_lock:
            self.input_handle.seek(start)
            data = self.input_handle.read(end - start)
        if len(data) != end - start:
            raise ShortReadError(
                f"Short read from {self.input_path}: "
                f"wanted {end - start} bytes at {start}, got {len(data)}"
            )
        return data

    async def write(self, data: bytes) -> int:
        if not data:
            return 0
        return await asyncio.to_thread(self.output_handle.write, data)

    async def release(self) -> None:
        if self._released:
            logger.debug("IO bundle already released: %s", self.input_path)
            return
        self._released = True
        await asyncio.to_thread(self._close_all)
        logger.info("Released IO bundle: output=%s", self.output_path)

    def _close_all(self) -> None:
        # ExitStack closes in reverse order and still raises the first error
        with ExitStack() as stack:
            stack.callback(self.input_stream.close)
            stack.callback(self.input_handle.close)
            stack.callback(self.output_handle.close)


@asynccontextmanager
async def open_bundle(
    input_path: str | os.PathLike, output_path: str | os.PathLike
) -> AsyncIterator[IOBundle]:
    bundle = await IOBundle.acquire(input_path, output_path)
    try:
        yield bundle
    finally:
        await bundle.release()
