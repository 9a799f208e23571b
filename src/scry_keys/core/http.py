"""Outbound HTTP helpers shared by the REST clients."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from structlog import get_logger


logger = get_logger(__name__)


def truncate_error_text(response_text: str) -> str:
    """Truncate response text for compact error logging.

    Args:
        response_text: Full response text

    Returns:
        Truncated text suitable for logging

    """
    if len(response_text) > 200:
        return f"{response_text[:100]}...{response_text[-50:]}"
    if len(response_text) > 100:
        return f"{response_text[:100]}..."
    return response_text


def log_http_error(operation: str, response: httpx.Response) -> None:
    """Log a failed HTTP response in compact form."""
    logger.error(
        "http_operation_failed",
        operation=operation,
        status_code=response.status_code,
        response_preview=truncate_error_text(response.text),
    )


@asynccontextmanager
async def http_client_scope(
    shared_client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client, or a short-lived one closed on exit.

    Without a shared client no connection outlives the call.
    """
    if shared_client is not None:
        yield shared_client
        return
    async with httpx.AsyncClient(timeout=timeout) as client:
        yield client
