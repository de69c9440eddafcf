"""
Cooperative cancellation for asynchronous remote calls.

One CancellationToken belongs to one run (a glossary extraction or a whole
translation run). Every chunk call of the run receives the same token, so
cancelling it is a broadcast to all of them.

Usage:
    token = CancellationToken()
    text = await token.run(provider.translate_chunk(...))

    # elsewhere
    token.cancel()   # pending run() calls raise AbortError
"""

import asyncio
from typing import Any, Awaitable, Optional

from .errors import AbortError


class CancellationToken:
    """Idempotent, broadcast cancellation signal for one run."""

    def __init__(self, name: str = ""):
        self.name = name
        self.reason: Optional[str] = None
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "Request aborted by user.") -> bool:
        """
        Cancel the token.

        Returns:
            True if this call cancelled it, False if it was already cancelled.
        """
        if self._cancelled:
            return False
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()
        return True

    def raise_if_cancelled(self):
        if self._cancelled:
            raise AbortError(self.reason or "Request aborted by user.")

    async def wait(self):
        """Block until the token is cancelled."""
        if self._cancelled:
            return
        await self._get_event().wait()

    async def run(self, awaitable: Awaitable[Any]) -> Any:
        """
        Await a call unless the token is cancelled first.

        The call is raced against cancellation: if the token is cancelled
        before the call settles (or in the same loop iteration) the call is
        cancelled and AbortError is raised instead of its result.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        call = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._get_event().wait())

        try:
            done, _ = await asyncio.wait(
                {call, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            call.cancel()
            waiter.cancel()
            await asyncio.gather(call, waiter, return_exceptions=True)
            raise

        if not waiter.done():
            waiter.cancel()

        if self._cancelled:
            if not call.done():
                call.cancel()
            # Drain the call so its outcome is never left unretrieved
            await asyncio.gather(call, return_exceptions=True)
            self.raise_if_cancelled()

        return call.result()

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {self.name or id(self)} {state}>"
