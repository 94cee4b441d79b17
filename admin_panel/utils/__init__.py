"""
Utility helpers shared across the admin panel.
"""

from .decorators import debounce, throttle
from .images import optimize_image_url

__all__ = [
    'debounce',
    'throttle',
    'optimize_image_url'
]
