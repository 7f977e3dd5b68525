"""Cached remaining-credit balance.

The balance is a best-effort display value, not a transactional one:
concurrent refreshes are last-writer-wins.  The lock only guarantees
that readers never observe a torn update.
"""

from __future__ import annotations

import threading

from retroforge.client import RetroDiffusionClient
from retroforge.errors import RetroForgeError
from retroforge.logging import get_logger

logger = get_logger("credits")


class CreditLedger:
    """Holds the last known credit balance for one session."""

    def __init__(self) -> None:
        self._remaining: int | None = None
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int | None:
        """Last known balance, or ``None`` before the first update."""
        with self._lock:
            return self._remaining

    @property
    def known(self) -> bool:
        return self.remaining is not None

    def set(self, credits: int) -> None:
        """Record a balance reported by the service."""
        with self._lock:
            self._remaining = credits
        logger.debug("Remaining credits set to %d", credits)

    async def refresh(
        self, client: RetroDiffusionClient, raise_errors: bool = False
    ) -> int | None:
        """Fetch the balance and cache it.

        Failures are logged and the previous value is kept, unless
        *raise_errors* is set.

        Returns:
            The refreshed balance, or the cached one if the refresh failed.

        Raises:
            RetroForgeError: If the fetch fails and *raise_errors* is set.
        """
        try:
            info = await client.check_credits()
        except RetroForgeError as exc:
            logger.error("Failed to refresh credits: %s", exc)
            if raise_errors:
                raise
            return self.remaining
        self.set(info.credits)
        return info.credits
