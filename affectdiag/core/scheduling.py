"""Cooperative yield points for long-running diagnostic loops."""

import asyncio
from typing import Optional

from affectdiag.validation.errors import SearchCancelledError


async def cooperative_yield(
    delay: float = 0.0,
    cancel_event: Optional[asyncio.Event] = None,
    operation: str = "diagnostic",
    completed: int = 0,
) -> None:
    """
    Hand control back to the event loop between chunks of work.

    Args:
        delay: Seconds to wait (0 just reschedules)
        cancel_event: When set before or during the wait, the pending
                      operation fails instead of continuing
        operation: Name used in the cancellation error
        completed: Progress reported in the cancellation error

    Raises:
        SearchCancelledError: If cancel_event is set
    """
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(operation, completed)

    await asyncio.sleep(delay)

    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(operation, completed)
