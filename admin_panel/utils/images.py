"""
Image URL helpers.
"""

from typing import Optional
from urllib.parse import quote, urlencode

IMAGE_PROXY_URL = 'https://images.weserv.nl/'
IMAGE_QUALITY = 80
IMAGE_FORMAT = 'webp'


def optimize_image_url(src: Optional[str], width: Optional[int] = None, height: Optional[int] = None) -> str:
    """
    Route external images through the resizing proxy as compressed WebP.

    Local and data URLs are returned unchanged; an empty source yields ``""``.

    Example:
        >>> optimize_image_url('https://cdn.example.com/a.png', width=200)
        'https://images.weserv.nl/?url=https%3A%2F%2Fcdn.example.com%2Fa.png&w=200&q=80&f=webp'
    """
    if not src:
        return ''

    if not src.startswith(('http://', 'https://')):
        return src

    params = {}
    if width:
        params['w'] = str(width)
    if height:
        params['h'] = str(height)
    params['q'] = str(IMAGE_QUALITY)
    params['f'] = IMAGE_FORMAT

    return f"{IMAGE_PROXY_URL}?url={quote(src, safe='')}&{urlencode(params)}"


__all__ = [
    'IMAGE_PROXY_URL',
    'optimize_image_url'
]
