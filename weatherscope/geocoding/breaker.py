"""Minimal circuit breaker guarding the geocoder."""

import time
from typing import Callable

from weatherscope.logging_config import logger

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stop calling an upstream after repeated failures.

    After ``failure_threshold`` consecutive failures the circuit opens and
    ``allow_request`` returns False until ``reset_timeout_s`` has elapsed.
    A single caller is then let through as a trial while everyone else is
    refused; success closes the circuit, failure opens it again.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout_s: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout_s = reset_timeout_s
        self.clock = clock
        self.failures = 0
        self.opened_at = None

    @property
    def state(self) -> str:
        if self.opened_at is None:
            return CLOSED
        if self.clock() - self.opened_at >= self.reset_timeout_s:
            return HALF_OPEN
        return OPEN

    def allow_request(self) -> bool:
        state = self.state
        if state == HALF_OPEN:
            # Other callers see OPEN until the trial reports back.
            self.opened_at = self.clock()
            logger.info("CIRCUIT_HALF_OPEN_TRIAL", breaker=self.name)
        return state != OPEN

    def record_success(self) -> None:
        if self.opened_at is not None:
            logger.info("CIRCUIT_CLOSED", breaker=self.name)
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failures += 1
        if self.state == HALF_OPEN or self.failures >= self.failure_threshold:
            self.opened_at = self.clock()
            logger.warning("CIRCUIT_OPENED", breaker=self.name, failures=self.failures)
