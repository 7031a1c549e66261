__all__ = [
    "Part",
    "FinalizedPart",
    "Multipart",
    "AttachmentResolver",
    "generate_boundary",
    "decode_multipart",
    "FormData",
    "UploadedFile",
    "FormDataError",
    "AttachmentError",
    "InvalidStateError",
    "TransportError",
    "FormDataWarning",
    "config_warnings",
]

from .errors import AttachmentError, FormDataError, InvalidStateError, TransportError
from .utils import FormDataWarning, config_warnings
from .boundary import generate_boundary
from .part import FinalizedPart, Part
from .attachment import AttachmentResolver
from .multipart import Multipart
from .decoder import FormData, UploadedFile, decode_multipart
from . import requests

from .__version__ import __title__, __version__, __description__
