from __future__ import annotations

import inspect
from collections.abc import Mapping
from json import loads
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from curl_cffi.requests.headers import Headers, HeaderTypes

from ..const import CONTENT_TYPE, MULTIPART_FORM_DATA, TYPE_ALIASES
from ..decoder import FormData, UploadedFile, decode_multipart
from ..headers import parse_header_value
from ..multipart import Multipart
from ..part import Part
from .errors import HTTPError, InvalidStateError

if TYPE_CHECKING:
    from .session import AsyncSession

__all__ = ["Request", "Response"]


class Request:
    """An outgoing request, built up part by part before it is sent.

    Example:

        req = session.build("POST", url)
        req.field("name", "tobi").attach("avatar.png", "avatar")
        req.part().set_name("bio").write("ferret")
        r = await req.end()

    Parts are sent in the order they were declared. Errors while sending are
    reported once to every observer registered with :meth:`on_error`, then
    raised from :meth:`end`.
    """

    def __init__(
        self,
        method: str,
        url: str,
        session: Optional[AsyncSession] = None,
        headers: Optional[HeaderTypes] = None,
    ):
        self.method = method.upper()
        self.url = url
        self.session = session
        self.headers = Headers(headers, encoding="utf-8")
        self.data: Optional[bytes] = None
        self._multipart: Optional[Multipart] = None
        self._error_observers: list[Callable[[BaseException], Any]] = []
        self._error: Optional[BaseException] = None
        self._sent = False
        self._aborted = False

    def __repr__(self) -> str:
        return f"<Request [{self.method}] {self.url}>"

    @property
    def multipart(self) -> Multipart:
        """The multipart body, created on first use."""
        if self._multipart is None:
            if self.data is not None:
                raise InvalidStateError("Cannot mix a raw body with multipart parts.")
            if self.session is not None:
                self._multipart = self.session.new_multipart()
            else:
                self._multipart = Multipart()
        return self._multipart

    @property
    def is_multipart(self) -> bool:
        if self._multipart is not None:
            return True
        main, _ = parse_header_value(self.headers.get(CONTENT_TYPE))
        return main == MULTIPART_FORM_DATA

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    # headers

    def set(self, name: Union[str, Mapping[str, str]], value: Optional[str] = None) -> Request:
        """Set one header, or several from a mapping."""
        if isinstance(name, Mapping):
            for key, val in name.items():
                self.headers[key] = val
        else:
            if value is None:
                raise TypeError("A header value is required.")
            self.headers[name] = value
        return self

    def type(self, content_type: str) -> Request:
        """Set ``Content-Type``, short aliases like ``json`` or ``multipart`` are
        expanded."""
        self.headers[CONTENT_TYPE] = TYPE_ALIASES.get(content_type, content_type)
        return self

    # body

    def field(self, name: str, value: Union[str, bytes]) -> Request:
        """Add a ``form-data`` field."""
        self.multipart.add_field(name, value)
        return self

    def attach(self, path: Union[str, Path], name: Optional[str] = None) -> Request:
        """Add a file, ``name`` is used as the field name and the remote
        filename, the base name of ``path`` by default."""
        self.multipart.add_file(path, name)
        return self

    def part(self) -> Part:
        """Add an empty part for full control over its headers and content."""
        return self.multipart.add()

    def send(self, data: Union[str, bytes]) -> Request:
        """Use a raw, non multipart body."""
        if self._multipart is not None:
            raise InvalidStateError("Cannot mix a raw body with multipart parts.")
        self.data = data.encode() if isinstance(data, str) else data
        return self

    # lifecycle

    def on_error(self, callback: Callable[[BaseException], Any]) -> Request:
        """Register an observer, called once with the error if the request fails."""
        self._error_observers.append(callback)
        return self

    def _report(self, error: BaseException) -> None:
        if self._error is not None:
            return
        self._error = error
        for observer in self._error_observers:
            observer(error)

    async def end(self, callback: Optional[Callable[[Response], Any]] = None) -> Response:
        """Finish the request and send it.

        Parameters:
            callback: called with the response, never called if the request
                fails. May be a coroutine function.

        Returns:
            A :class:`Response` object.

        Raises:
            AttachmentError: a file could not be read, nothing was sent.
            InvalidStateError: the request was already sent or aborted.
            TransportError: raised by curl, unchanged.
        """
        if self._sent:
            raise InvalidStateError("The request has already been sent.")
        if self._aborted:
            raise InvalidStateError("The request was aborted.")
        self._sent = True

        try:
            if self.session is not None:
                response = await self.session.send(self)
            else:
                from .session import AsyncSession

                async with AsyncSession() as s:
                    response = await s.send(self)
        except Exception as e:
            self._report(e)
            raise

        if callback is not None:
            result = callback(response)
            if inspect.isawaitable(result):
                await result
        return response

    async def abort(self) -> None:
        """Abort the request, pending file reads are dropped and no more parts
        are sent."""
        self._aborted = True
        if self._multipart is not None:
            await self._multipart.aclose()


class Response:
    """Contains information the server sends.

    Attributes:
        url: url used in the request.
        content: response body in bytes.
        status_code: http status code.
        reason: http response reason, such as OK, Not Found.
        ok: is status_code in [200, 400)?
        headers: response headers.
        elapsed: how many seconds the request cost.
        encoding: http body encoding.
        http_version: http version used.
        request: the request that was sent.
    """

    def __init__(self, request: Optional[Request] = None, upload_dir: Optional[str] = None):
        self.request = request
        self.url = ""
        self.content = b""
        self.status_code = 200
        self.reason = "OK"
        self.ok = True
        self.headers = Headers(encoding="utf-8")
        self.elapsed = 0.0
        self.encoding = "utf-8"
        self.http_version = 0
        self.upload_dir = upload_dir
        self._form: Optional[FormData] = None

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"

    @classmethod
    def from_curl(cls, rsp, request: Optional[Request] = None, upload_dir: Optional[str] = None):
        """Convert a ``curl_cffi.requests.Response``."""
        r = cls(request, upload_dir=upload_dir)
        r.url = str(rsp.url)
        r.content = rsp.content
        r.status_code = rsp.status_code
        r.reason = rsp.reason
        r.ok = 200 <= r.status_code < 400
        r.headers = rsp.headers
        r.elapsed = rsp.elapsed
        r.encoding = rsp.encoding or "utf-8"
        r.http_version = rsp.http_version
        return r

    def _decode(self, content: bytes) -> str:
        try:
            return content.decode(self.encoding, errors="replace")
        except (UnicodeDecodeError, LookupError):
            return content.decode("utf-8-sig")

    @property
    def text(self) -> str:
        return self._decode(self.content)

    def json(self, **kw):
        return loads(self.content, **kw)

    def raise_for_status(self):
        if not self.ok:
            raise HTTPError(f"HTTP Error {self.status_code}: {self.reason}", response=self)

    @property
    def content_type(self) -> str:
        main, _ = parse_header_value(self.headers.get(CONTENT_TYPE))
        return main

    @property
    def form(self) -> FormData:
        """Fields and files of a multipart response, empty for other types."""
        if self._form is None:
            if self.content_type.startswith("multipart/"):
                self._form = decode_multipart(
                    self.headers[CONTENT_TYPE], self.content, upload_dir=self.upload_dir
                )
            else:
                self._form = FormData()
        return self._form

    @property
    def body(self) -> Any:
        """Decoded body: form fields for multipart, the parsed value for json,
        an empty dict otherwise."""
        if self.content_type == "application/json" and self.content:
            return self.json()
        return self.form.fields

    @property
    def files(self) -> dict[str, UploadedFile]:
        return self.form.files
