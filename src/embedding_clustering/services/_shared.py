"""Shared utilities for service-layer classes.

Remote calls made by the visualization and theme pipelines run through
``call_remote`` so each one is an explicit task with its own timeout and a
typed outcome the caller can branch on before falling back.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from ..exceptions import InvalidArgumentError, RemoteServiceError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RemoteCallResult(Generic[T]):
    """Outcome of one remote call: either ``value`` or ``error`` is set."""

    operation: str
    value: Optional[T] = None
    error: Optional[RemoteServiceError] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


async def call_remote(
    factory: Callable[[], Awaitable[T]],
    timeout: Optional[float],
    operation: str,
) -> RemoteCallResult[T]:
    """Run ``factory()`` as a task bounded by *timeout* seconds.

    Every failure except ``InvalidArgumentError`` and cancellation is
    captured as a ``RemoteServiceError`` on the result instead of raised.
    """
    start = time.perf_counter()
    task = asyncio.ensure_future(factory())
    try:
        value = await asyncio.wait_for(task, timeout=timeout)
    except InvalidArgumentError:
        raise
    except asyncio.TimeoutError as e:
        error = RemoteServiceError(
            f"{operation} timed out after {timeout:.1f}s", details=e
        )
    except RemoteServiceError as e:
        error = e
    except Exception as e:
        error = RemoteServiceError(f"{operation} failed: {e}", details=e)
    else:
        return RemoteCallResult(
            operation=operation,
            value=value,
            latency_ms=(time.perf_counter() - start) * 1000,
        )

    logger.warning("Remote call %s failed: %s", operation, error.message)
    return RemoteCallResult(
        operation=operation,
        error=error,
        latency_ms=(time.perf_counter() - start) * 1000,
    )
