from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from curl_cffi.requests.headers import Headers

from .const import CONTENT_DISPOSITION, CONTENT_TYPE, CRLF, DEFAULT_MEDIA_TYPE
from .errors import InvalidStateError
from .headers import content_disposition, format_header_value, parse_header_value
from .utils import guess_media_type

__all__ = ["Part", "FinalizedPart", "Literal", "PendingFile", "ResolvedFile"]


@dataclass(frozen=True)
class Literal:
    """Content written by the caller."""

    data: bytes = b""


@dataclass(frozen=True)
class PendingFile:
    """A file that has been declared but not read yet."""

    path: Union[str, Path]
    display_name: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.display_name or os.path.basename(os.fspath(self.path))


@dataclass(frozen=True)
class ResolvedFile:
    """File content loaded by the attachment resolver."""

    data: bytes
    filename: str
    media_type: str = DEFAULT_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


ContentSource = Union[Literal, PendingFile, ResolvedFile]


@dataclass(frozen=True)
class FinalizedPart:
    """Immutable, ready to serialize form of a :class:`Part`."""

    headers: tuple[tuple[str, str], ...]
    content: bytes
    name: Optional[str] = None
    filename: Optional[str] = None
    media_type: str = DEFAULT_MEDIA_TYPE
    _block: bytes = field(default=b"", repr=False, compare=False)

    def header_block(self) -> bytes:
        """``Name: value`` lines followed by the blank separator line."""
        if not self._block:
            lines = [f"{key}: {value}".encode() + CRLF for key, value in self.headers]
            object.__setattr__(self, "_block", b"".join(lines) + CRLF)
        return self._block

    def encode(self) -> bytes:
        return self.header_block() + self.content


class Part:
    """One segment of a multipart body.

    A part starts with mutable headers and either an in-memory buffer or a
    pending file. Headers freeze as soon as content is written or the part is
    finalized.

    Example:

        >>> part = Part().set_name("avatar").set_filename("me.png")
        >>> _ = part.write(b"...")
        >>> part.finalize().headers
        (('Content-Disposition', 'form-data; name="avatar"; filename="me.png"'),
         ('Content-Type', 'image/png'))
    """

    def __init__(self, headers=None, content: Optional[ContentSource] = None):
        """
        Parameters:
            headers: initial headers.
            content: initial content source, an empty ``Literal`` by default.
        """
        self._headers = Headers(headers, encoding="utf-8")
        self._type_explicit = CONTENT_TYPE in self._headers
        self._chunks: list[bytes] = []
        self._source: ContentSource = Literal()
        if isinstance(content, Literal):
            if content.data:
                self._chunks.append(content.data)
        elif content is not None:
            self._source = content
        self._frozen = False
        self._finalized: Optional[FinalizedPart] = None

    def __repr__(self) -> str:
        return (
            f"<Part name={self.field_name!r} filename={self.file_name!r} "
            f"content={type(self._source).__name__}>"
        )

    @classmethod
    def for_file(cls, path: Union[str, Path], display_name: Optional[str] = None) -> Part:
        """Create a file-backed part whose content is read later.

        ``display_name`` is used both as the field name and the remote filename,
        the base name of ``path`` is used if it is not given. The media type
        always comes from the extension of ``path``.
        """
        source = PendingFile(path, display_name)
        name = source.filename
        headers = {
            CONTENT_DISPOSITION: content_disposition("form-data", name=name, filename=name),
            CONTENT_TYPE: guess_media_type(os.fspath(path)),
        }
        return cls(headers=headers, content=source)

    # properties

    @property
    def headers(self) -> Headers:
        """A copy of the current headers."""
        return self._headers.copy()

    @property
    def content(self) -> ContentSource:
        if isinstance(self._source, Literal):
            return Literal(b"".join(self._chunks))
        return self._source

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def finalized(self) -> bool:
        return self._finalized is not None

    @property
    def pending(self) -> bool:
        return isinstance(self._source, PendingFile)

    @property
    def field_name(self) -> Optional[str]:
        _, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
        return params.get("name") or self.file_name

    @property
    def file_name(self) -> Optional[str]:
        _, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
        if "filename" in params:
            return params["filename"]
        if isinstance(self._source, (PendingFile, ResolvedFile)):
            return self._source.filename
        return None

    @property
    def media_type(self) -> str:
        if CONTENT_TYPE in self._headers:
            main, _ = parse_header_value(self._headers[CONTENT_TYPE])
            if main:
                return main
        if isinstance(self._source, ResolvedFile):
            return self._source.media_type
        return guess_media_type(self.file_name)

    # header mutation

    def _check_mutable(self, action: str) -> None:
        if self._finalized is not None:
            raise InvalidStateError(f"Cannot {action}, the part is already finalized.")
        if self._frozen:
            raise InvalidStateError(f"Cannot {action} after content has been written.")

    def set_header(self, name: str, value: str) -> Part:
        """Set or overwrite a header.

        Raises:
            InvalidStateError: if content was written or the part was finalized.
        """
        self._check_mutable(f"set header {name}")
        self._headers[name] = value
        if name.lower() == CONTENT_TYPE.lower():
            self._type_explicit = True
        return self

    def set_name(self, name: str) -> Part:
        """Set ``Content-Disposition`` to ``form-data; name="<name>"``, keeping
        the ``filename`` parameter if there is one."""
        self._check_mutable("set name")
        _, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
        self._headers[CONTENT_DISPOSITION] = content_disposition(
            "form-data", name=name, filename=params.get("filename")
        )
        return self

    def set_filename(self, path_or_name: Union[str, Path]) -> Part:
        """Set the ``filename`` parameter, only the base name is sent.

        The disposition type defaults to ``attachment``, and ``Content-Type`` is
        inferred from the extension unless it was set explicitly.
        """
        self._check_mutable("set filename")
        filename = os.path.basename(os.fspath(path_or_name))
        disposition, params = parse_header_value(self._headers.get(CONTENT_DISPOSITION))
        params["filename"] = filename
        self._headers[CONTENT_DISPOSITION] = format_header_value(
            disposition or "attachment", params
        )
        if not self._type_explicit:
            self._headers[CONTENT_TYPE] = guess_media_type(filename)
        return self

    # content

    def write(self, chunk: Union[bytes, bytearray, memoryview, str]) -> Part:
        """Append to the in-memory content, text is encoded as utf-8.

        Raises:
            InvalidStateError: for file-backed parts, or after finalization.
        """
        if self._finalized is not None:
            raise InvalidStateError("Cannot write to a finalized part.")
        if not isinstance(self._source, Literal):
            raise InvalidStateError(
                "Cannot write to a file-backed part, the file content is used as is."
            )
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._chunks.append(bytes(chunk))
        self._frozen = True
        return self

    def bind(self, data: bytes, media_type: Optional[str] = None) -> Part:
        """Attach the loaded file content to a pending part."""
        if not isinstance(self._source, PendingFile):
            raise InvalidStateError("Only a pending file part can be bound to file content.")
        filename = self._source.filename
        self._source = ResolvedFile(
            data=data,
            filename=filename,
            media_type=media_type or self.media_type,
        )
        self._frozen = True
        return self

    def finalize(self) -> FinalizedPart:
        """Freeze the part and return its serializable form.

        Missing ``Content-Disposition``/``Content-Type`` headers are filled in from
        the name, filename and media type. Calling it again returns the same
        object.

        Raises:
            InvalidStateError: if the part still waits for its file.
        """
        if self._finalized is not None:
            return self._finalized
        if isinstance(self._source, PendingFile):
            raise InvalidStateError(
                f"Cannot finalize, file {self._source.path!s} has not been read yet."
            )

        headers = self._headers.copy()
        has_disposition = CONTENT_DISPOSITION in headers
        has_type = CONTENT_TYPE in headers
        filename = self.file_name
        name = self.field_name

        if not has_disposition:
            headers[CONTENT_DISPOSITION] = content_disposition(
                "form-data", name=name, filename=filename
            )
        if not has_type and (filename is not None or not has_disposition):
            headers[CONTENT_TYPE] = self.media_type

        # disposition first, then type, then the rest in insertion order
        ordered = []
        for key in (CONTENT_DISPOSITION, CONTENT_TYPE):
            if key in headers:
                ordered.append((key, headers.pop(key)))
        ordered.extend(headers.multi_items())

        if isinstance(self._source, ResolvedFile):
            data = self._source.data
        else:
            data = b"".join(self._chunks)

        self._frozen = True
        self._finalized = FinalizedPart(
            headers=tuple(ordered),
            content=data,
            name=name,
            filename=filename,
            media_type=self.media_type,
        )
        return self._finalized
