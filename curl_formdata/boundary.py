import secrets

from .const import BOUNDARY_ENTROPY, BOUNDARY_PREFIX


def generate_boundary(prefix: str = BOUNDARY_PREFIX) -> str:
    """Generate a multipart boundary token.

    The token is ``prefix`` followed by 32 url-safe random characters, which is
    about 192 bits of randomness, enough that the token never shows up inside
    the content it delimits.

    Parameters:
        prefix: fixed leading text, purely cosmetic.

    Returns:
        the boundary, without the leading ``--`` used in delimiter lines.
    """
    return prefix + secrets.token_urlsafe(BOUNDARY_ENTROPY)
