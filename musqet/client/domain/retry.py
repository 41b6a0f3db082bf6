"""Domain layer: Bounded retry policies for asynchronous remote provisioning.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, TypeVar

from musqet.common.exceptions import ProvisioningTimeout

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Poll with a fixed delay until an attempt yields a truthy result.

    The delay is waited before every attempt, including the first, so the
    remote side always gets one interval to finish what it was asked to do.
    """

    def __init__(
        self,
        max_attempts: int,
        delay: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.delay = delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:  # noqa: ARG002
        """Seconds to wait before the given 1-based attempt."""
        return self.delay

    def run(self, attempt_fn: Callable[[], T], description: str = "operation") -> T:
        """Call attempt_fn until it returns something truthy.

        Raises:
            ProvisioningTimeout: after max_attempts falsy results
        """
        for attempt in range(1, self.max_attempts + 1):
            self.sleep(self.delay_for(attempt))
            result = attempt_fn()
            if result:
                logger.debug("%s succeeded on attempt %s", description, attempt)
                return result
            logger.debug(
                "%s attempt %s/%s returned nothing", description, attempt, self.max_attempts
            )
        msg = f"{description} did not complete after {self.max_attempts} attempts"
        raise ProvisioningTimeout(msg, self.max_attempts)


class ExponentialBackoffPolicy(RetryPolicy):
    """Same contract as RetryPolicy, the delay doubles after every attempt."""

    def __init__(
        self,
        max_attempts: int,
        delay: float,
        sleep: Callable[[float], None] = time.sleep,
        max_delay: float = 30.0,
    ) -> None:
        super().__init__(max_attempts, delay, sleep)
        self.max_delay = max_delay

    def delay_for(self, attempt: int) -> float:
        return min(self.delay * 2 ** (attempt - 1), self.max_delay)
