"""Bounded calls to blocking collaborators.

Every identity, provider and store call goes through ``call_external`` so a
hung upstream only ever blocks the request that issued it.

Reads and idempotent provider calls are bounded here with ``asyncio.wait_for``.
Cancelling the wait does not stop the worker thread, so writes pass
``timeout=None`` and rely on the limit their driver enforces (the engine's
statement timeout, the HTTP client's transport timeout). A write then either
finishes or fails inside the thread; it is never reported as failed while it
is still running.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional, Type

from starlette.concurrency import run_in_threadpool

from quickai.core.errors import AppError, PersistenceError, ProviderError
from quickai.core.logging import latency_bucket_ms

logger = logging.getLogger("quickai")


async def call_external(
    operation: str,
    func: Callable[..., Any],
    *args: Any,
    timeout: Optional[float],
    error_cls: Type[AppError] = ProviderError,
    public_message: str = "Upstream service failed",
    **kwargs: Any,
) -> Any:
    """Run ``func`` in the threadpool, bounded by ``timeout`` seconds.

    ``timeout=None`` waits for ``func`` to return on its own.

    AppErrors raised by ``func`` propagate unchanged. Timeouts and any other
    exception are converted into ``error_cls`` carrying ``public_message``;
    the upstream text is kept on the exception for logging only.
    """
    start = time.perf_counter()
    try:
        if timeout is None:
            result = await run_in_threadpool(func, *args, **kwargs)
        else:
            result = await asyncio.wait_for(run_in_threadpool(func, *args, **kwargs), timeout=timeout)
    except AppError:
        raise
    except asyncio.TimeoutError as exc:
        logger.error(
            "external.timeout",
            extra={"operation": operation, "timeout_s": timeout},
        )
        raise _wrap(error_cls, f"{public_message} (timed out)", operation, f"timeout after {timeout}s") from exc
    except Exception as exc:
        logger.error(
            "external.failed",
            extra={"operation": operation, "exc_type": type(exc).__name__},
        )
        raise _wrap(error_cls, public_message, operation, str(exc)) from exc

    logger.debug(
        "external.ok",
        extra={"operation": operation, "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000)},
    )
    return result


def _wrap(error_cls: Type[AppError], message: str, operation: str, detail: str) -> AppError:
    if issubclass(error_cls, ProviderError):
        return error_cls(message, provider=operation, detail=detail[:500])
    if issubclass(error_cls, PersistenceError):
        logger.error("persistence.detail", extra={"operation": operation, "detail": detail[:500]})
    return error_cls(message)
