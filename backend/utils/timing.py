import time
import asyncio
import functools
import logging

logger = logging.getLogger("storefront.timing")

# bcrypt alone costs a few hundred ms; anything well past that is worth a warning
SLOW_CALL_MS = 1500.0


def timeit(label: str = None, slow_ms: float = SLOW_CALL_MS):
    """
    Log how long a service call took. Works on both sync and async callables.

        @timeit("login")
        async def login_user(...):
            ...

    Calls slower than ``slow_ms`` are logged at WARNING instead of INFO.
    """

    def _decorate(func):
        name = label or getattr(func, "__qualname__", func.__name__)

        def _report(started: float) -> None:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            level = logging.WARNING if elapsed_ms >= slow_ms else logging.INFO
            logger.log(level, f"[timing] {name} took {elapsed_ms:.2f} ms")

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def _async_timed(*args, **kwargs):
                started = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    _report(started)
            return _async_timed

        @functools.wraps(func)
        def _timed(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _report(started)
        return _timed

    return _decorate
