"""Unit tests for auth/verification.py -- the poll loop and its watch handle.

refresh() is a plain coroutine here, so the state machine is tested without
any backend: Polling -> Verified, Polling -> TimedOut, Polling -> Cancelled.
"""

from __future__ import annotations

import asyncio

from auth.verification import VerificationOutcome, VerificationWatch, poll_email_verification


def _flip_after(n: int, log: list):
    """Return a refresh coroutine that reports verified from the n-th call on."""
    state = {"count": 0}

    async def refresh() -> bool:
        state["count"] += 1
        log.append(("refresh", state["count"]))
        return state["count"] >= n

    return refresh


class TestPollEmailVerification:
    def test_verified_after_n_refreshes(self):
        log: list = []
        refresh = _flip_after(4, log)
        outcome = asyncio.run(
            poll_email_verification(refresh, lambda: log.append(("verified", len(log))), interval=0)
        )
        assert outcome is VerificationOutcome.VERIFIED
        # Exactly one callback, and it comes right after the 4th refresh.
        assert [entry for entry in log if entry[0] == "verified"] == [("verified", 4)]
        assert log[-2:] == [("refresh", 4), ("verified", 4)]

    def test_already_verified_fires_on_first_refresh(self):
        fired = []
        outcome = asyncio.run(poll_email_verification(_flip_after(1, []), lambda: fired.append(1), interval=0))
        assert outcome is VerificationOutcome.VERIFIED
        assert fired == [1]

    def test_max_attempts_times_out_without_callback(self):
        log: list = []
        fired = []
        outcome = asyncio.run(
            poll_email_verification(_flip_after(100, log), lambda: fired.append(1), interval=0, max_attempts=5)
        )
        assert outcome is VerificationOutcome.TIMED_OUT
        assert fired == []
        assert len(log) == 5

    def test_verified_on_last_allowed_attempt(self):
        outcome = asyncio.run(poll_email_verification(_flip_after(3, []), lambda: None, interval=0, max_attempts=3))
        assert outcome is VerificationOutcome.VERIFIED

    def test_timeout_bounds_total_duration(self):
        log: list = []
        outcome = asyncio.run(
            poll_email_verification(_flip_after(10_000, log), lambda: None, interval=0.01, timeout=0.05)
        )
        assert outcome is VerificationOutcome.TIMED_OUT
        assert 1 <= len(log) < 10_000

    def test_waits_interval_between_refreshes(self):
        async def scenario():
            loop = asyncio.get_running_loop()
            started = loop.time()
            await poll_email_verification(_flip_after(3, []), lambda: None, interval=0.02)
            return loop.time() - started

        # Two sleeps between three refreshes.
        assert asyncio.run(scenario()) >= 0.035


class TestVerificationWatch:
    def test_wait_returns_outcome(self):
        async def scenario():
            task = asyncio.get_running_loop().create_task(
                poll_email_verification(_flip_after(2, []), lambda: None, interval=0)
            )
            watch = VerificationWatch(task)
            return await watch.wait(), watch.done

        outcome, done = asyncio.run(scenario())
        assert outcome is VerificationOutcome.VERIFIED
        assert done is True

    def test_cancel_reports_cancelled(self):
        async def scenario():
            fired = []
            task = asyncio.get_running_loop().create_task(
                poll_email_verification(_flip_after(10_000, []), lambda: fired.append(1), interval=0.01)
            )
            watch = VerificationWatch(task)
            await asyncio.sleep(0.03)
            assert watch.done is False
            watch.cancel()
            return await watch.wait(), fired

        outcome, fired = asyncio.run(scenario())
        assert outcome is VerificationOutcome.CANCELLED
        assert fired == []

    def test_cancelled_waiter_does_not_stop_polling(self):
        async def scenario():
            task = asyncio.get_running_loop().create_task(
                poll_email_verification(_flip_after(5, []), lambda: None, interval=0.01)
            )
            watch = VerificationWatch(task)
            waiter = asyncio.ensure_future(watch.wait())
            await asyncio.sleep(0)
            waiter.cancel()
            return await watch.wait()

        assert asyncio.run(scenario()) is VerificationOutcome.VERIFIED
