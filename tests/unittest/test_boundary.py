import re

from curl_formdata import generate_boundary
from curl_formdata.const import BOUNDARY_PREFIX


def test_boundary_prefix_and_charset():
    boundary = generate_boundary()
    assert boundary.startswith(BOUNDARY_PREFIX)
    suffix = boundary[len(BOUNDARY_PREFIX) :]
    assert len(suffix) == 32
    assert re.fullmatch(r"[A-Za-z0-9_-]+", suffix)


def test_custom_prefix():
    assert generate_boundary("----WebKitFormBoundary").startswith("----WebKitFormBoundary")


def test_boundaries_are_unique():
    boundaries = {generate_boundary() for _ in range(1000)}
    assert len(boundaries) == 1000
