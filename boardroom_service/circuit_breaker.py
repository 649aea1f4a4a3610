# boardroom_service/circuit_breaker.py
import logging
from datetime import datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """
    In-memory circuit breaker for outbound calls to the users service.

    States:
    - closed: all requests pass, count failures
    - open: requests are rejected without calling out
    - half_open: one trial request is let through after the reset timeout
    """

    def __init__(self, name: str, max_failures: int = 3, reset_timeout_seconds: int = 30):
        self.name = name
        self.max_failures = max_failures
        self.reset_timeout = timedelta(seconds=reset_timeout_seconds)
        self.failure_count = 0
        self.state = "closed"  # "closed" | "open" | "half_open"
        self.opened_at: Optional[datetime] = None

    def allow_request(self, now: Optional[datetime] = None) -> bool:
        """
        Return True if a request may go out, False while the circuit is open.
        """
        if self.state != "open":
            return True

        now = now or datetime.now()
        if self.opened_at is not None and now - self.opened_at >= self.reset_timeout:
            self.state = "half_open"
            return True
        return False

    def record_success(self) -> None:
        if self.state != "closed":
            logger.info("Circuit %s closed again", self.name)
        self.failure_count = 0
        self.state = "closed"
        self.opened_at = None

    def record_failure(self, now: Optional[datetime] = None) -> None:
        """
        Count a failure; a failed half-open trial re-opens immediately.
        """
        self.failure_count += 1
        if self.state == "half_open" or self.failure_count >= self.max_failures:
            if self.state != "open":
                logger.warning(
                    "Circuit %s opened after %d failure(s)", self.name, self.failure_count
                )
            self.state = "open"
            self.opened_at = now or datetime.now()


# Circuit breaker instance for calling the Users service
users_circuit_breaker = CircuitBreaker(
    name="users_service",
    max_failures=3,
    reset_timeout_seconds=30,
)
