"""
Payment status poller for MPESA checkouts.
Checks `check-status` on a fixed interval until the payment is active or failed.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from portal.core.exceptions import BackendError, SessionExpiredError
from portal.integrations.backend import BackendClient
from portal.schemas.subscription import PaymentStatus

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class PollResult:
    status: PaymentStatus
    attempt: int
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal or self.status is PaymentStatus.TIMEOUT


class PaymentStatusPoller:
    """Polls one checkout and yields each observed status."""

    def __init__(
        self,
        backend: BackendClient,
        token: str,
        checkout_id: str,
        poll_seconds: float = 5.0,
        max_attempts: int = 0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.backend = backend
        self.token = token
        self.checkout_id = checkout_id
        self.poll_seconds = poll_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def check_once(self, attempt: int = 1) -> PollResult:
        """One status request. Transient failures report `pending` with the error text."""
        try:
            check = await self.backend.check_payment(self.token, self.checkout_id)
        except SessionExpiredError:
            raise
        except BackendError as exc:
            logger.warning("Payment status check %s failed: %s", self.checkout_id, exc.message)
            return PollResult(PaymentStatus.PENDING, attempt, error=exc.message)
        return PollResult(check.status, attempt)

    async def watch(self) -> AsyncIterator[PollResult]:
        """
        Yield a result every `poll_seconds` until a terminal status.

        The first request is made after one interval, like a browser
        `setInterval`. No request is issued after a terminal status or once
        `stop()` has been called. With `max_attempts` set, a final `timeout`
        result is yielded when the budget runs out.
        """
        attempt = 0
        while not self.stopped:
            await self._sleep(self.poll_seconds)
            if self.stopped:
                break
            attempt += 1
            result = await self.check_once(attempt)
            logger.debug(
                "Checkout %s attempt %s status=%s", self.checkout_id, attempt, result.status.value
            )
            yield result
            if result.is_terminal:
                logger.info("Checkout %s finished with status %s", self.checkout_id, result.status.value)
                self.stop()
                break
            if self.max_attempts and attempt >= self.max_attempts:
                logger.info("Checkout %s still pending after %s checks", self.checkout_id, attempt)
                self.stop()
                yield PollResult(PaymentStatus.TIMEOUT, attempt)
                break

    async def wait(self) -> PollResult:
        """Run the poll loop to completion and return the last result."""
        last = PollResult(PaymentStatus.PENDING, 0)
        async for result in self.watch():
            last = result
        return last
