__all__ = [
    "AsyncSession",
    "CurlTransport",
    "Transport",
    "Request",
    "Response",
    "Headers",
    "RequestsError",
    "HTTPError",
    "SessionClosed",
    "request",
    "head",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "options",
]

import asyncio
from functools import partial
from typing import Any, Iterable, Optional, Union

from curl_cffi.requests.headers import Headers, HeaderTypes

from .errors import HTTPError, RequestsError, SessionClosed
from .models import Request, Response
from .session import AsyncSession, CurlTransport, FieldTypes, FileTypes, Transport


def request(
    method: str,
    url: str,
    headers: Optional[HeaderTypes] = None,
    fields: Optional[FieldTypes] = None,
    files: Optional[FileTypes] = None,
    parts: Optional[Iterable[Any]] = None,
    data: Optional[Union[str, bytes]] = None,
    content_type: Optional[str] = None,
    timeout: Union[float, tuple[float, float]] = 30,
    verify: Union[bool, str] = True,
    impersonate: Optional[str] = None,
    proxy: Optional[str] = None,
    upload_dir: Optional[str] = None,
    debug: bool = False,
) -> Response:
    """Send an http request, blocking until the response is complete.

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
        timeout: how many seconds to wait before giving up.
        verify: whether to verify https certs, or a CA bundle path.
        impersonate: which browser version to impersonate.
        proxy: proxy to use, format: "http://proxy_url".
        upload_dir: where files from multipart responses are saved.
        debug: print the encoded multipart body and curl debug info.

    Returns:
        A [Response](/api/curl_formdata.requests#curl_formdata.requests.Response) object.
    """

    async def perform() -> Response:
        async with AsyncSession(
            timeout=timeout,
            verify=verify,
            impersonate=impersonate,
            proxy=proxy,
            upload_dir=upload_dir,
            debug=debug,
        ) as s:
            return await s.request(
                method,
                url,
                headers=headers,
                fields=fields,
                files=files,
                parts=parts,
                data=data,
                content_type=content_type,
            )

    return asyncio.run(perform())


head = partial(request, "HEAD")
get = partial(request, "GET")
post = partial(request, "POST")
put = partial(request, "PUT")
patch = partial(request, "PATCH")
delete = partial(request, "DELETE")
options = partial(request, "OPTIONS")
