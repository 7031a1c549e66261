__all__ = [
    "FormDataError",
    "AttachmentError",
    "InvalidStateError",
    "TransportError",
    "RequestsError",
    "HTTPError",
    "SessionClosed",
]

from ..errors import AttachmentError, FormDataError, InvalidStateError, TransportError


class RequestsError(FormDataError):
    """Base exception for curl_formdata.requests package"""

    def __init__(self, msg, response=None, *args, **kwargs):
        super().__init__(msg, *args, **kwargs)
        self.response = response


class HTTPError(RequestsError):
    """The server answered with an error status."""


class SessionClosed(RequestsError):
    """The session has already been closed."""
