"""
Deferred, streaming access to an uploaded multipart file field.

The pipeline authorizes the request before it touches the body, so handlers
hand over an ``UploadSource`` instead of an already-parsed ``UploadFile``;
``open()`` is only awaited once ownership has been checked.

``MultipartUpload`` drives python-multipart's push parser over
``request.stream()`` itself instead of calling ``request.form()``: the body is
counted against ``max_bytes`` as it arrives and nothing is spooled to disk, so
an oversized (or chunked, length-less) body is refused after at most one
chunk past the limit, and the part's ``Content-Type`` is known before any of
its bytes are handed to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from tubely.core.errors import PayloadTooLarge, ValidationError

log = logging.getLogger("media.intake")

@dataclass
class IncomingUpload:
    content_type: str | None
    filename: str | None
    read: Callable[[int], Awaitable[bytes]]
    close: Callable[[], Awaitable[None]]

class UploadSource(Protocol):
    max_bytes: int

    async def open(self) -> IncomingUpload: ...

def _header(headers: dict, name: bytes) -> str | None:
    value = headers.get(name)
    return value.decode("latin-1") if value is not None else None

class MultipartUpload:
    def __init__(self, request: Request, field: str, max_bytes: int):
        self.request = request
        self.field = field
        self.max_bytes = max_bytes

        self.received = 0
        self._body = None
        self._parser: MultipartParser | None = None
        self._ended = False

        self._headers: dict[bytes, bytes] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()

        self._part: IncomingUpload | None = None
        self._in_part = False
        self._part_done = False
        self._buffer = bytearray()

    def _check_declared_length(self) -> None:
        declared = self.request.headers.get("content-length")
        if declared is None:
            return
        try:
            length = int(declared)
        except ValueError as e:
            raise ValidationError("Invalid Content-Length header") from e
        if length > self.max_bytes:
            raise PayloadTooLarge(f"Upload exceeds the {self.max_bytes:,} byte limit")

    # parser callbacks

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[bytes(self._header_field).lower()] = bytes(self._header_value)
        self._header_field.clear()
        self._header_value.clear()

    def _on_headers_finished(self) -> None:
        if self._part is not None:
            return
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        name = options.get(b"name")
        filename = options.get(b"filename")
        if name is None or filename is None or name.decode("utf-8", "replace") != self.field:
            return
        self._part = IncomingUpload(
            content_type=_header(self._headers, b"content-type"),
            filename=filename.decode("utf-8", "replace"),
            read=self._read,
            close=self._close,
        )
        self._in_part = True

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        # bytes of every other part are dropped as they are parsed
        if self._in_part:
            self._buffer += data[start:end]

    def _on_part_end(self) -> None:
        if self._in_part:
            self._in_part = False
            self._part_done = True

    async def _pump(self) -> None:
        """Feed the next body chunk to the parser, enforcing the byte limit."""
        try:
            chunk = await self._body.__anext__()
        except StopAsyncIteration:
            self._ended = True
            self._parser.finalize()
            return
        except ClientDisconnect as e:
            raise ValidationError(f"Client disconnected while sending {self.field}") from e

        self.received += len(chunk)
        if self.received > self.max_bytes:
            raise PayloadTooLarge(f"Upload exceeds the {self.max_bytes:,} byte limit")
        try:
            self._parser.write(chunk)
        except MultipartParseError as e:
            raise ValidationError(f"Couldn't parse multipart form for {self.field}") from e

    async def open(self) -> IncomingUpload:
        # refuse oversized bodies before any of it is read
        self._check_declared_length()

        ctype, params = parse_options_header(self.request.headers.get("content-type", ""))
        boundary = params.get(b"boundary")
        if ctype != b"multipart/form-data" or not boundary:
            raise ValidationError(f"Couldn't get {self.field} file: expected a multipart/form-data body")

        self._parser = MultipartParser(boundary, callbacks={
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
        })
        self._body = self.request.stream()

        while self._part is None and not self._ended:
            await self._pump()
        if self._part is None:
            await self._close()
            raise ValidationError(f"Couldn't get {self.field} file")

        log.debug(f"Receiving {self.field} part filename={self._part.filename!r} content_type={self._part.content_type!r}")
        return self._part

    async def _read(self, size: int = -1) -> bytes:
        while not self._part_done and (size < 0 or len(self._buffer) < size):
            if self._ended:
                raise ValidationError(f"Upload ended before the {self.field} file was complete")
            await self._pump()

        if size < 0 or size >= len(self._buffer):
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        return data

    async def _close(self) -> None:
        self._buffer.clear()
        if self._body is not None:
            await self._body.aclose()
