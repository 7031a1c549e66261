import mimetypes
import sys
import warnings
from typing import Optional

from .const import DEFAULT_MEDIA_TYPE

DEBUG_DATA_OUT = 4
DEBUG_HEADER_OUT = 2
DEBUG_TEXT = 0


class FormDataWarning(UserWarning, RuntimeWarning):
    pass


def config_warnings(on: bool = False):
    if on:
        warnings.simplefilter("default", category=FormDataWarning)
    else:
        warnings.simplefilter("ignore", category=FormDataWarning)


def bytes_to_hex(b: bytes, uppercase: bool = False) -> str:
    """
    Convert a bytes object to a space-separated hex string, e.g. "0a ff 3c".
    If uppercase=True, letters will be A-F instead of a-f.
    """
    fmt = "{:02X}" if uppercase else "{:02x}"
    return " ".join(fmt.format(byte) for byte in b)


def debug_function_default(type_: int, data: bytes) -> None:
    """Print outgoing multipart traffic to stderr, curl ``--verbose`` style."""
    PREFIXES = {
        DEBUG_TEXT: "*",
        DEBUG_HEADER_OUT: ">",
        DEBUG_DATA_OUT: "> DATA",
    }
    MAX_SHOW_BYTES = 40
    prefix = PREFIXES.get(type_, "*")

    try:
        text = data.decode("utf-8")
        sys.stderr.write(f"{prefix} {text}")
        if type_ != DEBUG_HEADER_OUT and not text.endswith("\n"):
            sys.stderr.write("\n")
    except UnicodeDecodeError:
        # binary attachments, show the first MAX_SHOW_BYTES bytes as hex
        hex_str = bytes_to_hex(data[:MAX_SHOW_BYTES])
        postfix = "" if len(data) <= MAX_SHOW_BYTES else "..."
        sys.stderr.write(f"{prefix} [{len(data)} bytes]: {hex_str}{postfix}\n")


def guess_media_type(filename: Optional[str]) -> str:
    """Media type for a file name, by extension, ``application/octet-stream`` if
    the extension is unknown."""
    if not filename:
        return DEFAULT_MEDIA_TYPE
    media_type, _ = mimetypes.guess_type(filename, strict=False)
    return media_type or DEFAULT_MEDIA_TYPE
