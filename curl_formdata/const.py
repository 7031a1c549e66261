CRLF = b"\r\n"
DASHES = b"--"

DEFAULT_MEDIA_TYPE = "application/octet-stream"
MULTIPART_FORM_DATA = "multipart/form-data"
BOUNDARY_PREFIX = "curl-formdata-"
# bytes of randomness, rendered as 32 url-safe characters
BOUNDARY_ENTROPY = 24

CONTENT_DISPOSITION = "Content-Disposition"
CONTENT_TYPE = "Content-Type"

TYPE_ALIASES = {
    "json": "application/json",
    "form": "application/x-www-form-urlencoded",
    "multipart": MULTIPART_FORM_DATA,
    "html": "text/html",
    "text": "text/plain",
    "xml": "application/xml",
}
