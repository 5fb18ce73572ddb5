"""Reversible, URL-safe compression of calendar URLs.

Tokens use the lz-string "encoded URI component" scheme, which is what the
preview page produces in the browser, so permalinks built on either side
decode here.
"""
import logging

from lzstring import LZString

from processor.errors import DecodeError

logger = logging.getLogger(__name__)


def _to_utf16_units(text: str) -> str:
    """Split characters outside the BMP into surrogate pairs, as JS strings hold them."""
    units = []
    for char in text:
        code_point = ord(char)
        if code_point > 0xFFFF:
            code_point -= 0x10000
            units.append(chr(0xD800 + (code_point >> 10)))
            units.append(chr(0xDC00 + (code_point & 0x3FF)))
        else:
            units.append(char)
    return ''.join(units)


def _from_utf16_units(units: str) -> str:
    """Join surrogate pairs back into characters; lone surrogates raise."""
    return units.encode('utf-16-le', 'surrogatepass').decode('utf-16-le')


def encode(url: str) -> str:
    """
    Compress a URL into a token safe for a query string.

    Args:
        url: Calendar URL

    Returns:
        Compressed token
    """
    return LZString.compressToEncodedURIComponent(_to_utf16_units(url))


def decode(token: str) -> str:
    """
    Decompress a token produced by :func:`encode`.

    Args:
        token: Compressed token, possibly with '+' turned into ' ' by
            query string parsing

    Returns:
        The original URL

    Raises:
        DecodeError: If the token is not valid output of :func:`encode`
    """
    if not token:
        raise DecodeError('Empty compressed token')

    token = token.replace(' ', '+')
    try:
        units = LZString.decompressFromEncodedURIComponent(token)
    except Exception as e:
        raise DecodeError(f"Failed to decompress token: {e}") from e

    if not units:
        raise DecodeError('Token decompressed to nothing')

    try:
        url = _from_utf16_units(units)
    except UnicodeError as e:
        raise DecodeError(f"Token contains unpaired surrogates: {e}") from e

    # Arbitrary input can decompress to garbage; only canonical tokens count.
    if encode(url) != token:
        raise DecodeError('Token is not a canonical compressed URL')

    logger.debug(f"Decoded compressed token to {url}")
    return url
