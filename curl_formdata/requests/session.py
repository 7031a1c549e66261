from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping
from functools import partialmethod
from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Protocol, Union, runtime_checkable

import certifi
from curl_cffi.requests import AsyncSession as CurlAsyncSession
from curl_cffi.requests.headers import Headers, HeaderTypes

from ..attachment import AttachmentResolver
from ..const import CONTENT_TYPE
from ..multipart import Multipart
from .errors import SessionClosed
from .models import Request, Response

__all__ = ["AsyncSession", "CurlTransport", "Transport"]

FieldTypes = Union[Mapping[str, str], Iterable[tuple[str, str]]]
FileTypes = Union[
    Mapping[str, Union[str, Path]],
    Iterable[Union[str, Path, tuple[str, Union[str, Path]]]],
]


@runtime_checkable
class Transport(Protocol):
    """Sends a request and returns its :class:`Response`.

    ``body`` yields the encoded request body in order, ``None`` for requests
    without a body. Transport errors should propagate unchanged.
    """

    async def send(
        self,
        request: Request,
        headers: Headers,
        body: Optional[AsyncIterator[bytes]],
    ) -> Response: ...

    async def close(self) -> None: ...


class CurlTransport:
    """Transport backed by ``curl_cffi``.

    curl takes the body in one piece, so the stream is drained first. A file
    that fails to load therefore aborts the request before anything is sent.
    """

    def __init__(
        self,
        *,
        timeout: Union[float, tuple[float, float]] = 30,
        verify: Union[bool, str] = True,
        impersonate: Optional[str] = None,
        proxy: Optional[str] = None,
        upload_dir: Optional[str] = None,
        debug: bool = False,
        curl_options: Optional[dict] = None,
    ):
        """
        Parameters:
            timeout: how many seconds to wait before giving up.
            verify: whether to verify https certs, or a CA bundle path. The
                ``certifi`` bundle is used for ``True``.
            impersonate: which browser version to impersonate.
            proxy: proxy to use, format: "http://proxy_url".
            upload_dir: where files from multipart responses are saved.
            debug: print curl debug info.
            curl_options: extra curl options to use.
        """
        self.timeout = timeout
        self.verify = certifi.where() if verify is True else verify
        self.impersonate = impersonate
        self.proxy = proxy
        self.upload_dir = upload_dir
        self.debug = debug
        self.curl_options = curl_options
        self._session: Optional[CurlAsyncSession] = None

    @property
    def session(self) -> CurlAsyncSession:
        if self._session is None:
            self._session = CurlAsyncSession(
                curl_options=self.curl_options, debug=self.debug
            )
        return self._session

    async def send(
        self,
        request: Request,
        headers: Headers,
        body: Optional[AsyncIterator[bytes]],
    ) -> Response:
        data = None
        if body is not None:
            buffer = BytesIO()
            async for chunk in body:
                buffer.write(chunk)
            data = buffer.getvalue()

        rsp = await self.session.request(
            request.method,
            request.url,
            headers=dict(headers.multi_items()),
            data=data,
            timeout=self.timeout,
            verify=self.verify,
            impersonate=self.impersonate,  # type: ignore[arg-type]
            proxy=self.proxy,
        )
        return Response.from_curl(rsp, request, upload_dir=self.upload_dir)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


async def _iter_bytes(data: bytes) -> AsyncIterator[bytes]:
    yield data


class AsyncSession:
    """An async session for multipart requests.

    Session headers are merged under request headers, the rest of the options
    configure the default curl transport. This class can be used as an async
    context manager.

    Example:

        async with AsyncSession(headers={"X-Client": "me"}) as s:
            r = await s.post(url, fields={"name": "tobi"}, files={"doc": "a.pdf"})
            print(r.status_code)
    """

    def __init__(
        self,
        *,
        headers: Optional[HeaderTypes] = None,
        timeout: Union[float, tuple[float, float]] = 30,
        verify: Union[bool, str] = True,
        impersonate: Optional[str] = None,
        proxy: Optional[str] = None,
        upload_dir: Optional[str] = None,
        debug: bool = False,
        resolver: Optional[AttachmentResolver] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Parameters:
            headers: headers sent with every request.
            timeout: how many seconds to wait before giving up.
            verify: whether to verify https certs, or a CA bundle path.
            impersonate: which browser version to impersonate.
            proxy: proxy to use, format: "http://proxy_url".
            upload_dir: where files from multipart responses are saved.
            debug: print the encoded multipart bodies and curl debug info.
            resolver: attachment resolver for file parts.
            transport: transport to send requests with, curl by default.
        """
        self.headers = Headers(headers, encoding="utf-8")
        self.debug = debug
        self.resolver = resolver or AttachmentResolver()
        self.transport: Transport = transport or CurlTransport(
            timeout=timeout,
            verify=verify,
            impersonate=impersonate,
            proxy=proxy,
            upload_dir=upload_dir,
            debug=debug,
        )
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self) -> None:
        """Close the session and its transport."""
        self._closed = True
        await self.transport.close()

    def new_multipart(self) -> Multipart:
        return Multipart(resolver=self.resolver, debug=self.debug)

    def build(
        self, method: str, url: str, headers: Optional[HeaderTypes] = None
    ) -> Request:
        """Create a :class:`Request` bound to this session, send it with
        ``await request.end()``."""
        if self._closed:
            raise SessionClosed("Session is closed, cannot build new requests.")
        return Request(method, url, session=self, headers=headers)

    async def send(self, request: Request) -> Response:
        """Encode and send a prepared request."""
        if self._closed:
            raise SessionClosed("Session is closed, cannot send request.")

        headers = self.headers.copy()
        headers.update(request.headers)

        body: Optional[AsyncIterator[bytes]] = None
        multipart = request.multipart if request.is_multipart else None
        if multipart is not None:
            headers[CONTENT_TYPE] = multipart.content_type(headers.get(CONTENT_TYPE))
            multipart.close()
            body = multipart.stream()
        elif request.data is not None:
            body = _iter_bytes(request.data)

        try:
            return await self.transport.send(request, headers, body)
        finally:
            if body is not None:
                await body.aclose()  # type: ignore[attr-defined]
            if multipart is not None:
                await multipart.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[HeaderTypes] = None,
        fields: Optional[FieldTypes] = None,
        files: Optional[FileTypes] = None,
        parts: Optional[Iterable[Any]] = None,
        data: Optional[Union[str, bytes]] = None,
        content_type: Optional[str] = None,
    ) -> Response:
        """Send a request.

        Parameters:
            method: http method for the request: GET/POST/PUT/DELETE etc.
            url: url for the requests.
            headers: headers to send.
            fields: form fields, a dict or a list of (name, value) pairs.
            files: files to upload, ``{name: path}``, or a list of paths and
                (name, path) pairs.
            parts: prepared ``Part`` objects, added after fields and files.
            data: a raw, non multipart body.
            content_type: ``Content-Type`` of the request.

        Returns:
            A [Response](/api/curl_formdata.requests#curl_formdata.requests.Response) object.
        """
        req = self.build(method, url, headers=headers)
        if content_type is not None:
            req.type(content_type)
        if data is not None:
            req.send(data)
        if fields:
            items = fields.items() if isinstance(fields, Mapping) else fields
            for name, value in items:
                req.field(name, value)
        if files:
            if isinstance(files, Mapping):
                for name, path in files.items():
                    req.attach(path, name)
            else:
                for file in files:
                    if isinstance(file, tuple):
                        name, path = file
                        req.attach(path, name)
                    else:
                        req.attach(file)
        for part in parts or ():
            req.multipart.add(part)
        return await req.end()

    head = partialmethod(request, "HEAD")
    get = partialmethod(request, "GET")
    post = partialmethod(request, "POST")
    put = partialmethod(request, "PUT")
    patch = partialmethod(request, "PATCH")
    delete = partialmethod(request, "DELETE")
    options = partialmethod(request, "OPTIONS")
