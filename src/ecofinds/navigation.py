"""Deferred view transitions requested by the core."""

import asyncio
import logging
from collections.abc import Callable

log = logging.getLogger(__name__)

# A navigator receives the name of the view to show next
Navigator = Callable[[str], None]

VIEW_LISTINGS = "listings"
VIEW_ORDERS = "orders"


def schedule(navigate: Navigator | None, view: str, delay: float) -> asyncio.TimerHandle | None:
    """Ask the navigator to show view after delay seconds. Returns the cancellable handle."""
    if navigate is None:
        return None
    log.debug("Navigation to %s scheduled in %.1fs", view, delay)
    loop = asyncio.get_running_loop()
    return loop.call_later(delay, navigate, view)
