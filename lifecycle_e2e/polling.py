# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Deadline-bound readiness polling.

Every wait computes its own deadline from "now" and checks it around each
attempt: an expired (or zero) timeout never calls the probe, and a success
observed after the deadline is reported as a timeout. A probe receives the
seconds left before the deadline, to bound its own request, and returns a
truthy value once the condition holds and a falsy value while it does not.
Exceptions listed in ``retry_on`` count as "not yet"; any other exception
ends the wait immediately.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import Retrying, before_sleep_log, retry_if_exception, retry_if_result

from lifecycle_e2e import logger
from lifecycle_e2e.errors import WaitTimeoutError

T = TypeVar("T")


class Deadline:
    """A point in time owned by a single wait call."""

    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.timeout = timeout
        self.expires_at = clock() + timeout

    def remaining(self) -> float:
        return self.expires_at - self._clock()

    def expired(self) -> bool:
        return self.remaining() <= 0


def wait_until(
    probe: Callable[[float], T],
    *,
    timeout: float,
    interval: float,
    description: str,
    retry_on: tuple[type[BaseException], ...] = (),
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``probe`` until it returns a truthy value or the deadline passes.

    Args:
        probe: Callable checking the condition once, given the seconds left.
        timeout: Seconds from now until the wait gives up.
        interval: Seconds between attempts.
        description: Human-readable condition, used in logs and errors.
        retry_on: Exception types treated as "condition not met yet".
        clock: Monotonic clock used for the deadline.
        sleep: Sleep function used between attempts.

    Returns:
        The first truthy value returned by ``probe`` before the deadline.

    Raises:
        WaitTimeoutError: If the deadline passes before the condition holds.
        Exception: Whatever ``probe`` raised, if it is not in ``retry_on``.
    """
    deadline = Deadline(timeout, clock)

    def _attempt() -> T:
        if deadline.expired():
            raise WaitTimeoutError(description, timeout)
        value = probe(deadline.remaining())
        if value and deadline.expired():
            logger.debug("%s held only after the %gs deadline", description, timeout)
            raise WaitTimeoutError(description, timeout)
        return value

    def _wait(retry_state) -> float:
        return max(0.0, min(interval, deadline.remaining()))

    def _swallowed(exc: BaseException) -> bool:
        return isinstance(exc, retry_on) and not isinstance(exc, WaitTimeoutError)

    retrying = Retrying(
        retry=retry_if_result(lambda value: not value) | retry_if_exception(_swallowed),
        wait=_wait,
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
    logger.debug("Waiting up to %gs for %s", timeout, description)
    return retrying(_attempt)
