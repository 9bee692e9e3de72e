"""In-memory multipart reader for uploads.

Starlette's form parser spools large files to a temporary file on disk; this
reader keeps every part in memory and enforces the upload size limit while
the body streams in, so upload bytes never touch the filesystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fastapi import Request
from python_multipart.multipart import MultipartParser, parse_options_header

from geminiguard.errors import PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

# Allowance for multipart framing and small text fields on top of the file limit.
FORM_OVERHEAD_BYTES = 64 * 1024


@dataclass
class UploadedFile:
    field_name: str
    filename: str
    content_type: str
    data: bytes

    def __repr__(self) -> str:
        return (
            f"UploadedFile(field_name={self.field_name!r}, content_type={self.content_type!r}, "
            f"size={len(self.data)})"
        )


@dataclass
class MultipartForm:
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, UploadedFile] = field(default_factory=dict)


class _PartCollector:
    """Collects multipart parser callbacks into in-memory parts."""

    def __init__(self, max_file_bytes: int) -> None:
        self._max_file_bytes = max_file_bytes
        self._form = MultipartForm()
        self._headers: dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._buffer = bytearray()

    @property
    def form(self) -> MultipartForm:
        return self._form

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
        }

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._buffer = bytearray()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._buffer.extend(data[start:end])
        if b"filename" in self._headers.get(b"content-disposition", b"") and len(
            self._buffer
        ) > self._max_file_bytes:
            raise PayloadTooLargeError(
                f"File exceeds the {self._max_file_bytes} byte limit",
                details={"limit": self._max_file_bytes},
            )

    def _on_part_end(self) -> None:
        disposition, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        name = options.get(b"name", b"").decode("utf-8", errors="replace")
        if disposition != b"form-data" or not name:
            return

        filename = options.get(b"filename")
        if filename is None:
            self._form.fields[name] = self._buffer.decode("utf-8", errors="replace")
        else:
            content_type = self._headers.get(b"content-type", b"application/octet-stream")
            self._form.files[name] = UploadedFile(
                field_name=name,
                filename=filename.decode("utf-8", errors="replace"),
                content_type=content_type.decode("latin-1").strip() or "application/octet-stream",
                data=bytes(self._buffer),
            )
        self._buffer = bytearray()


async def read_multipart(request: Request, max_file_bytes: int) -> MultipartForm:
    """Parse a ``multipart/form-data`` request body entirely in memory.

    Raises:
        ValidationError: If the request is not multipart or has no boundary.
        PayloadTooLargeError: If a file part, or the body as a whole, exceeds
            the limit.
    """
    content_type, params = parse_options_header(request.headers.get("content-type", ""))
    if content_type != b"multipart/form-data":
        raise ValidationError("Expected a multipart/form-data upload")
    boundary = params.get(b"boundary")
    if not boundary:
        raise ValidationError("Multipart boundary is missing")

    max_body = max_file_bytes + FORM_OVERHEAD_BYTES
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_body:
        raise PayloadTooLargeError(
            f"File exceeds the {max_file_bytes} byte limit",
            details={"limit": max_file_bytes},
        )

    collector = _PartCollector(max_file_bytes)
    parser = MultipartParser(boundary, collector.callbacks())
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_body:
            raise PayloadTooLargeError(
                f"File exceeds the {max_file_bytes} byte limit",
                details={"limit": max_file_bytes},
            )
        parser.write(chunk)
    parser.finalize()

    logger.debug(
        "Multipart upload parsed in memory: %d bytes, fields=%s, files=%s",
        received,
        sorted(collector.form.fields),
        sorted(collector.form.files),
    )
    return collector.form
