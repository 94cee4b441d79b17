"""
Rate-shaping decorators for callbacks fired in bursts.

- ``debounce``: run only after calls have stopped arriving for ``wait`` seconds
- ``throttle``: run at most once per ``limit`` seconds, dropping calls in between
"""

import functools
import threading
import time
from typing import Any, Callable, Optional, TypeVar

from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def debounce(wait: float) -> Callable[[F], Callable[..., None]]:
    """
    Delay execution until ``wait`` seconds have passed without another call.

    Only the arguments of the last call are used. The wrapped function runs on
    a ``threading.Timer`` thread; its return value is discarded. The wrapper
    exposes ``cancel()`` to drop a pending call.

    Example:
        @debounce(0.3)
        def refresh_search(query):
            ...
    """
    if wait < 0:
        raise ValueError("wait must not be negative")

    def decorator(func: F) -> Callable[..., None]:
        lock = threading.Lock()
        pending: Optional[threading.Timer] = None

        def run(*args, **kwargs):
            try:
                func(*args, **kwargs)
            except Exception:
                logger.error("Debounced call failed", function=func.__qualname__, exc_info=True)

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> None:
            nonlocal pending
            with lock:
                if pending is not None:
                    pending.cancel()
                pending = threading.Timer(wait, run, args=args, kwargs=kwargs)
                pending.daemon = True
                pending.start()

        def cancel() -> None:
            nonlocal pending
            with lock:
                if pending is not None:
                    pending.cancel()
                    pending = None

        wrapper.cancel = cancel
        return wrapper
    return decorator


def throttle(limit: float, clock: Callable[[], float] = time.monotonic) -> Callable[[F], F]:
    """
    Run immediately, then ignore further calls for ``limit`` seconds.

    Dropped calls return None.
    """
    if limit < 0:
        raise ValueError("limit must not be negative")

    def decorator(func: F) -> F:
        lock = threading.Lock()
        blocked_until = float('-inf')

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            nonlocal blocked_until
            with lock:
                now = clock()
                if now < blocked_until:
                    return None
                blocked_until = now + limit
            return func(*args, **kwargs)

        return wrapper
    return decorator


__all__ = [
    'debounce',
    'throttle'
]
