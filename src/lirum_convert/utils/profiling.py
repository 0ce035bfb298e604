"""Timing helpers for codec entry points."""

import inspect
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar, cast

from loguru import logger

P = ParamSpec("P")
R = TypeVar("R")


def timed(func: Callable[P, R]) -> Callable[P, R]:
    """Log how long ``func`` took, for plain and coroutine functions alike.

    Usage:
        @timed
        def encode_bmp(buffer):
            ...
    """

    def log_elapsed(start_time: float) -> None:
        elapsed_time = time.perf_counter() - start_time
        logger.debug(f"[PROFILE] {func.__qualname__} took {elapsed_time:.3f}s")

    if inspect.iscoroutinefunction(func):
        async_func = cast(Callable[P, Awaitable[object]], func)

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> object:
            start_time = time.perf_counter()
            try:
                return await async_func(*args, **kwargs)
            finally:
                log_elapsed(start_time)

        return cast(Callable[P, R], async_wrapper)

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        start_time = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            log_elapsed(start_time)

    return wrapper
