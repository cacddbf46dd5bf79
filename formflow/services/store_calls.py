"""
Boundary wrapper for store and provider calls.

Errors from the engine's own taxonomy pass through unchanged; anything else
a collaborator raises is logged with its traceback and converted.
"""

import logging
from typing import Awaitable, TypeVar

from formflow.core.exceptions import FormflowError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_store(operation: str, awaitable: Awaitable[T]) -> T:
    """
    Await a store call, converting unexpected failures to StoreError.

    Raises:
        FormflowError: Re-raised as-is (NotFoundError, InvalidStateTransition...)
        StoreError: For any other exception
    """
    try:
        return await awaitable
    except FormflowError:
        raise
    except Exception as e:
        logger.exception(f"Store call failed: {operation}")
        raise StoreError(f"{operation} failed: {e}") from e
