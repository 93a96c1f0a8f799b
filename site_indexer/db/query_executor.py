"""Execution of vector store calls.

Every Chroma call made by ``vector_store.py`` goes through ``execute_store_call``
so that timeouts, error wrapping and timing logs are handled in one place.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

import logfire

T = TypeVar("T")


class VectorStoreError(RuntimeError):
    """Raised when the vector store is unreachable, times out or rejects a call."""


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


async def execute_store_call(
    operation: str,
    call: Awaitable[T],
    timeout: float,
    describe: Callable[[T], dict[str, Any]] | None = None,
    **log_context: Any,
) -> T:
    """
    Await one vector store call with a timeout, logging its outcome.

    Args:
        operation: Operation name used in log messages (e.g. "chroma_add")
        call: Awaitable returned by the client or collection method
        timeout: Timeout in seconds
        describe: Optional function mapping the result to extra success-log context
        **log_context: Context included in every log message for this call

    Returns:
        The call's result

    Raises:
        VectorStoreError: If the call raises or exceeds ``timeout``. The
            original exception is chained.

    Example:
        await execute_store_call(
            "chroma_add",
            collection.upsert(ids=ids, embeddings=embeddings, metadatas=metadatas),
            timeout=30.0,
            collection=name,
        )
    """
    started = time.perf_counter()
    logfire.debug(f"Starting {operation}", operation=operation, **log_context)

    try:
        result = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        error = VectorStoreError(f"{operation} timed out after {timeout}s")
        _log_failure(operation, started, error, e, log_context)
        raise error from e
    except Exception as e:
        error = VectorStoreError(f"{operation} failed: {e}")
        _log_failure(operation, started, error, e, log_context)
        raise error from e

    extra = describe(result) if describe else {}
    logfire.info(
        f"{operation} completed",
        operation=operation,
        response_time_ms=_elapsed_ms(started),
        **log_context,
        **extra,
    )
    return result


def _log_failure(
    operation: str,
    started: float,
    error: VectorStoreError,
    cause: BaseException,
    log_context: dict[str, Any],
) -> None:
    logfire.error(
        f"{operation} failed",
        operation=operation,
        error=str(error),
        error_type=type(cause).__name__,
        response_time_ms=_elapsed_ms(started),
        **log_context,
    )
