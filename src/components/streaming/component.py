"""
Range streamer - full or single-range file responses.

Behaviour:
- No Range header: 200 with the whole file
- One satisfiable range: 206 with Content-Range and exactly those bytes
- Malformed, multi-range or unsatisfiable: 416 with `Content-Range: bytes */<total>`
  and no body
- I/O failure after headers: stop writing; the short body makes the server
  drop the connection

Multi-range requests are rejected rather than collapsed to their first range.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from pathlib import Path
from typing import BinaryIO

from fastapi.background import BackgroundTasks
from fastapi.responses import Response, StreamingResponse

from src.core.errors import NotFoundError, RangeNotSatisfiableError

from .models import STREAM_TRANSITIONS, ByteRange, StreamState

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


MAX_OFFSET_DIGITS = 18


def _is_digits(text: str) -> bool:
    return text.isascii() and text.isdigit() and len(text) <= MAX_OFFSET_DIGITS


def parse_range_header(header: str, total: int) -> ByteRange:
    """
    Parse a single `bytes=` range against a file of `total` bytes.

    Supports `start-end`, `start-` and `-suffix`. An end past the file is
    clamped. Raises RangeNotSatisfiableError for anything else.
    """
    unit, sep, byte_ranges = header.strip().partition("=")
    if not sep or unit.strip().lower() != "bytes":
        raise RangeNotSatisfiableError(header, total)

    byte_ranges = byte_ranges.strip()
    if not byte_ranges or "," in byte_ranges:
        raise RangeNotSatisfiableError(header, total)

    first, dash, last = byte_ranges.partition("-")
    first, last = first.strip(), last.strip()
    if not dash or (first and not _is_digits(first)) or (last and not _is_digits(last)):
        raise RangeNotSatisfiableError(header, total)

    if not first:
        # Suffix form: the final N bytes.
        if not last:
            raise RangeNotSatisfiableError(header, total)
        suffix = int(last)
        if suffix == 0 or total == 0:
            raise RangeNotSatisfiableError(header, total)
        start, end = max(0, total - suffix), total - 1
    else:
        start = int(first)
        end = int(last) if last else total - 1
        if end >= total:
            end = total - 1
        if start >= total or start > end:
            raise RangeNotSatisfiableError(header, total)

    return ByteRange(start=start, end=end, total=total)


class RangeStream:
    """
    Async body for one response, reading `length` bytes from `start`.

    Owns the file handle and closes it however the body ends.
    """

    def __init__(
        self,
        handle: BinaryIO,
        *,
        start: int,
        length: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        label: str = "",
    ) -> None:
        self._handle = handle
        self.start = start
        self.length = length
        self.chunk_size = chunk_size
        self.label = label
        self.state = StreamState.IDLE
        self.bytes_sent = 0

    def _advance(self, new_state: StreamState) -> None:
        if new_state not in STREAM_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal stream transition {self.state.value} -> {new_state.value}")
        self.state = new_state

    def close(self) -> None:
        """Release the file; a stream that never started is marked aborted. Safe to repeat."""
        if self.state is StreamState.IDLE:
            self._advance(StreamState.ABORTED)
        self._handle.close()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._body()

    async def _body(self) -> AsyncIterator[bytes]:
        # The server has written the status line and headers before it pulls the body.
        self._advance(StreamState.HEADERS_SENT)
        remaining = self.length
        try:
            if self.start:
                await asyncio.to_thread(self._handle.seek, self.start)
            while remaining > 0:
                chunk = await asyncio.to_thread(
                    self._handle.read, min(self.chunk_size, remaining)
                )
                if not chunk:
                    logger.warning(
                        "%s ended %d bytes early; aborting response", self.label, remaining
                    )
                    self._advance(StreamState.ABORTED)
                    return
                remaining -= len(chunk)
                self.bytes_sent += len(chunk)
                yield chunk
        except OSError:
            logger.exception("I/O error while streaming %s; aborting response", self.label)
            self._advance(StreamState.ABORTED)
            return
        except (asyncio.CancelledError, GeneratorExit):
            # Client disconnected.
            self._advance(StreamState.ABORTED)
            raise
        finally:
            self._handle.close()

        self._advance(StreamState.BODY_COMPLETE)


class RangeStreamer:
    """Builds streaming responses for files on disk, honouring Range."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    async def serve(
        self,
        file_path: Path,
        media_type: str,
        range_header: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """
        Respond with the file at `file_path`.

        Raises NotFoundError if the file is gone before headers are decided.
        """
        try:
            total = (await asyncio.to_thread(file_path.stat)).st_size
        except FileNotFoundError as exc:
            raise NotFoundError(str(file_path)) from exc

        response_headers = {"Accept-Ranges": "bytes", **(headers or {})}

        if range_header:
            try:
                byte_range = parse_range_header(range_header, total)
            except RangeNotSatisfiableError:
                logger.debug("Unsatisfiable range %r for %s", range_header, file_path)
                return Response(
                    status_code=416,
                    headers={**response_headers, "Content-Range": f"bytes */{total}"},
                )
            status_code = 206
            start, length = byte_range.start, byte_range.length
            response_headers["Content-Range"] = byte_range.content_range
        else:
            status_code = 200
            start, length = 0, total

        response_headers["Content-Length"] = str(length)

        try:
            handle = await asyncio.to_thread(file_path.open, "rb")
        except FileNotFoundError as exc:
            raise NotFoundError(str(file_path)) from exc

        stream = RangeStream(
            handle,
            start=start,
            length=length,
            chunk_size=self.chunk_size,
            label=str(file_path),
        )
        # Runs once the response is over, including when the body was never pulled.
        cleanup = BackgroundTasks()
        cleanup.add_task(stream.close)
        return StreamingResponse(
            stream,
            status_code=status_code,
            media_type=media_type,
            headers=response_headers,
            background=cleanup,
        )
