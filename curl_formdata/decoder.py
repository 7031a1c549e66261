from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from typing import IO, Optional, Union

from curl_cffi.requests.headers import Headers
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser

from .const import CONTENT_DISPOSITION, CONTENT_TYPE, DEFAULT_MEDIA_TYPE
from .errors import FormDataError
from .headers import parse_header_value

__all__ = ["UploadedFile", "FormData", "MultipartDecoder", "decode_multipart"]


@dataclass
class UploadedFile:
    """A file reconstructed from a multipart body.

    Attributes:
        name: the filename sent by the peer.
        path: where the content was saved locally.
        type: media type from the part's ``Content-Type``.
        field: the form field name, if the part had one.
        size: number of bytes saved.
    """

    name: str
    path: str
    type: str = DEFAULT_MEDIA_TYPE
    field: Optional[str] = None
    size: int = 0

    def read(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()


@dataclass
class FormData:
    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, UploadedFile] = field(default_factory=dict)


class MultipartDecoder:
    """Incremental multipart/form-data decoder.

    Non-file parts are collected as text, parts with a ``filename`` are written
    to ``upload_dir`` as they arrive. Files are keyed by field name, or by their
    filename when the part carries no name.
    """

    def __init__(self, boundary: Union[str, bytes], upload_dir: Optional[str] = None):
        self.upload_dir = upload_dir or tempfile.mkdtemp(prefix="curl-formdata-")
        self.result = FormData()
        self._headers = Headers(encoding="utf-8")
        self._header_field = b""
        self._header_value = b""
        self._buffer: list[bytes] = []
        self._file: Optional[IO[bytes]] = None
        self._file_path = ""
        self._size = 0
        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
        }
        self._parser = MultipartParser(boundary, callbacks)  # type: ignore[arg-type]

    def _on_part_begin(self) -> None:
        self._headers = Headers(encoding="utf-8")
        self._buffer = []
        self._file = None
        self._size = 0

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        key = self._header_field.decode("latin-1")
        self._headers[key] = self._header_value.decode("utf-8", errors="replace")
        self._header_field = b""
        self._header_value = b""

    def _open_file(self, filename: str) -> IO[bytes]:
        _, ext = os.path.splitext(filename)
        fd, self._file_path = tempfile.mkstemp(suffix=ext, dir=self.upload_dir)
        return os.fdopen(fd, "wb")

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._file is None and not self._buffer:
            _, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
            if "filename" in params:
                self._file = self._open_file(params["filename"])
        chunk = data[start:end]
        self._size += len(chunk)
        if self._file is not None:
            self._file.write(chunk)
        else:
            self._buffer.append(chunk)

    def _on_part_end(self) -> None:
        _, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
        name = params.get("name")
        filename = params.get("filename")
        if filename is None:
            if name is not None:
                self.result.fields[name] = b"".join(self._buffer).decode(
                    "utf-8", errors="replace"
                )
            return

        if self._file is None:
            # empty file, nothing was written yet
            self._file = self._open_file(filename)
        self._file.close()
        media_type, _ = parse_header_value(self._headers.get(CONTENT_TYPE))
        self.result.files[name or filename] = UploadedFile(
            name=filename,
            path=self._file_path,
            type=media_type or DEFAULT_MEDIA_TYPE,
            field=name,
            size=self._size,
        )
        self._file = None

    def write(self, data: bytes) -> int:
        try:
            return self._parser.write(data)
        except MultipartParseError as e:
            self.close()
            raise FormDataError(f"Malformed multipart body: {e}") from e

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def finalize(self) -> FormData:
        self._parser.finalize()
        self.close()
        return self.result


def decode_multipart(
    content_type: str, data: bytes, upload_dir: Optional[str] = None
) -> FormData:
    """Decode a whole multipart body.

    Parameters:
        content_type: the ``Content-Type`` header, it must carry the boundary.
        data: the body.
        upload_dir: directory for the file parts, a new temporary one by default.

    Raises:
        FormDataError: if the content type is not multipart or the body is
            malformed.
    """
    main, params = parse_header_value(content_type)
    if not main.startswith("multipart/"):
        raise FormDataError(f"Not a multipart content type: {content_type!r}")
    boundary = params.get("boundary")
    if not boundary:
        raise FormDataError(f"No boundary in content type: {content_type!r}")
    if not data:
        return FormData()
    decoder = MultipartDecoder(boundary, upload_dir=upload_dir)
    decoder.write(data)
    return decoder.finalize()
