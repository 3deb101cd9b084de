"""
auth/verification.py -- Polling for email verification.

The identity backend does not push verification changes, so the adapter asks
again on a fixed interval:

    Polling --(refresh says verified)--> Verified   (callback runs once)
    Polling --(attempt/time bound hit)--> TimedOut  (callback never runs)
    Polling --(watch.cancel())---------> Cancelled  (callback never runs)

With no bounds the loop runs until verified or until the event loop stops.
The loop is an asyncio task; asyncio.sleep yields between attempts and
task.cancel() unwinds it at the sleep or at the refresh call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Optional

logger = logging.getLogger("account.auth.verification")


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class VerificationWatch:
    """Handle on a running verification poll.

    Usage:
        watch = provider.listen_to_email_verification(on_verified, timeout=300)
        ...
        watch.cancel()                 # stop early
        outcome = await watch.wait()   # VERIFIED / TIMED_OUT / CANCELLED
    """

    def __init__(self, task: "asyncio.Task[VerificationOutcome]") -> None:
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> VerificationOutcome:
        # shield() keeps a cancelled *waiter* from cancelling the poll itself.
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                return VerificationOutcome.CANCELLED
            raise


async def poll_email_verification(
    refresh: Callable[[], Awaitable[bool]],
    on_verified: Callable[[], None],
    *,
    interval: float,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
) -> VerificationOutcome:
    """Call refresh() until it returns True, sleeping `interval` seconds between calls.

    Args:
        refresh:      Coroutine function returning the freshly reloaded
                      verification flag.
        on_verified:  Called exactly once, right after the refresh that
                      first returns True.
        interval:     Fixed delay between refreshes.
        max_attempts: Stop with TIMED_OUT after this many refreshes.
        timeout:      Stop with TIMED_OUT once another wait would pass this
                      many seconds since the first refresh.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    attempts = 0
    while True:
        attempts += 1
        if await refresh():
            logger.info("Email verified after %d check(s)", attempts)
            on_verified()
            return VerificationOutcome.VERIFIED
        if max_attempts is not None and attempts >= max_attempts:
            logger.info("Email still unverified after %d check(s), giving up", attempts)
            return VerificationOutcome.TIMED_OUT
        if timeout is not None and loop.time() - started + interval > timeout:
            logger.info("Email still unverified after %.1fs, giving up", loop.time() - started)
            return VerificationOutcome.TIMED_OUT
        await asyncio.sleep(interval)
