"""Incremental multipart/form-data reader.

Starlette's ``request.form()`` spools every part before the handler runs,
which would let an invalid ``siteName`` sent first still cost a full archive
upload. This reader drives python-multipart's push parser directly from
``request.stream()`` and hands out one :class:`UploadField` per part as soon
as its headers are parsed, so the consumer decides what to do with the body
while it is still arriving.
"""

from collections import deque
from collections.abc import AsyncIterator
from enum import Enum
from typing import cast

import python_multipart
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import parse_options_header
from starlette.requests import Request

from src.sitehost.core.exceptions import InvalidFieldError, PayloadTooLargeError
from src.sitehost.core.logging import get_logger
from src.sitehost.pipeline.upload import UploadField

logger = get_logger(__name__)


class _Event(Enum):
    HEADERS = 1
    DATA = 2
    PART_END = 3


class _MultipartReader:
    def __init__(
        self,
        stream: AsyncIterator[bytes],
        boundary: bytes,
        charset: str,
        max_size: int | None,
    ):
        self._stream = stream
        self._charset = charset
        self._max_size = max_size
        self._received = 0
        self._finished = False
        self._in_part = False
        self._events: deque[tuple[_Event, object]] = deque()
        self._headers: list[tuple[bytes, bytes]] = []
        self._header_name = b""
        self._header_value = b""
        self._parser = python_multipart.MultipartParser(
            boundary,
            {
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
            },
        )

    # Parser callbacks run synchronously inside parser.write()

    def _on_part_begin(self) -> None:
        self._headers = []

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._events.append((_Event.DATA, data[start:end]))

    def _on_part_end(self) -> None:
        self._events.append((_Event.PART_END, None))

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers.append((self._header_name.lower(), self._header_value))
        self._header_name = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append((_Event.HEADERS, list(self._headers)))

    async def _next_event(self) -> tuple[_Event, object] | None:
        while not self._events:
            if self._finished:
                return None
            try:
                chunk = await anext(self._stream)
            except StopAsyncIteration:
                self._finished = True
                self._parser.finalize()
                continue
            self._received += len(chunk)
            if self._max_size is not None and self._received > self._max_size:
                raise PayloadTooLargeError(self._max_size)
            try:
                self._parser.write(chunk)
            except MultipartParseError as e:
                raise InvalidFieldError("multipart", f"malformed body: {e}") from e
        return self._events.popleft()

    async def _part_chunks(self) -> AsyncIterator[bytes]:
        while True:
            event = await self._next_event()
            if event is None:
                raise InvalidFieldError("multipart", "body ended inside a part")
            kind, payload = event
            if kind is _Event.PART_END:
                self._in_part = False
                return
            if kind is _Event.DATA:
                data = cast(bytes, payload)
                if data:
                    yield data

    def _field_from_headers(self, headers: list[tuple[bytes, bytes]]) -> UploadField:
        disposition = next((v for k, v in headers if k == b"content-disposition"), None)
        if disposition is None:
            raise InvalidFieldError("multipart", "part without Content-Disposition")
        _, options = parse_options_header(disposition)
        if b"name" not in options:
            raise InvalidFieldError("multipart", "part without a name")
        name = options[b"name"].decode(self._charset, errors="replace")
        filename = None
        if b"filename" in options:
            filename = options[b"filename"].decode(self._charset, errors="replace")
        self._in_part = True
        return UploadField(name, self._part_chunks(), filename=filename)

    async def fields(self) -> AsyncIterator[UploadField]:
        while True:
            event = await self._next_event()
            if event is None:
                return
            kind, payload = event
            if kind is not _Event.HEADERS:
                continue
            field = self._field_from_headers(cast(list[tuple[bytes, bytes]], payload))
            yield field
            if self._in_part:
                # Consumer stopped early; skip the rest of this part
                await field.drain()


def iter_multipart_fields(
    request: Request,
    max_size: int | None = None,
) -> AsyncIterator[UploadField]:
    """Yield the parts of a ``multipart/form-data`` request as they arrive.

    Raises:
        InvalidFieldError: wrong content type, missing boundary, malformed body.
        PayloadTooLargeError: more than ``max_size`` body bytes were sent.
    """
    content_type, params = parse_options_header(request.headers.get("content-type", ""))
    if content_type != b"multipart/form-data":
        raise InvalidFieldError("content-type", "expected multipart/form-data")
    boundary = params.get(b"boundary")
    if not boundary:
        raise InvalidFieldError("content-type", "missing multipart boundary")
    charset = params.get(b"charset", b"utf-8").decode("latin-1")
    reader = _MultipartReader(request.stream(), boundary, charset, max_size)
    return reader.fields()
