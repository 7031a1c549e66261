__all__ = ["FormDataError", "AttachmentError", "InvalidStateError", "TransportError"]

from typing import Optional, Union
from pathlib import Path

from curl_cffi import CurlError

# curl errors are surfaced unchanged, this name only makes them easy to catch.
TransportError = CurlError


class FormDataError(Exception):
    """Base exception for curl_formdata package"""

    def __init__(self, msg, *args, **kwargs):
        super().__init__(msg, *args, **kwargs)
        self.msg = msg


class AttachmentError(FormDataError, OSError):
    """A file given to ``attach`` could not be read.

    Attributes:
        path: the path exactly as it was passed to ``attach``.
        reason: the underlying ``OSError``.
    """

    def __init__(self, path: Union[str, Path], reason: Optional[BaseException] = None):
        self.path = path
        self.reason = reason
        if isinstance(reason, OSError) and reason.strerror:
            detail = reason.strerror
        else:
            detail = str(reason) if reason is not None else "unreadable file"
        super().__init__(f"Failed to attach '{path}': {detail}")

    def __str__(self) -> str:
        return self.msg

    def __reduce__(self):
        return (self.__class__, (self.path, self.reason))


class InvalidStateError(FormDataError):
    """A part or request was used after it was frozen or closed."""
