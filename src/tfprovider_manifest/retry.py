from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

T = TypeVar("T")

_BACKOFF_MODES = ("fixed", "exponential")


class RetryExhausted(RuntimeError):
    """Raised once an operation has failed on every allowed attempt."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{description} failed after {attempts} attempt(s): {last_error}"
        )


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 30
    delay: float = 5.0
    backoff: str = "fixed"
    max_delay: float = 300.0

    def __post_init__(self) -> None:
        attempts = self.max_attempts
        if not isinstance(attempts, int) or isinstance(attempts, bool):
            raise ValueError(f"max_attempts must be an integer: {attempts!r}")
        for name in ("delay", "max_delay"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"{name} must be a number: {value!r}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        if self.backoff not in _BACKOFF_MODES:
            raise ValueError(
                f"backoff must be one of {', '.join(_BACKOFF_MODES)}: {self.backoff!r}"
            )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        if self.backoff == "exponential":
            return min(self.max_delay, self.delay * (2 ** max(0, attempt - 1)))
        return self.delay

    def call(
        self,
        operation: Callable[[], T],
        *,
        description: str = "operation",
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
        report: bool = True,
    ) -> T:
        attempt = 1
        while True:
            try:
                return operation()
            except retry_on as exc:
                if report:
                    print(
                        f"attempt {attempt}/{self.max_attempts} failed for "
                        f"{description}: {exc}",
                        file=sys.stderr,
                        flush=True,
                    )
                if attempt >= self.max_attempts:
                    raise RetryExhausted(description, attempt, exc) from exc
                sleep(self.delay_for(attempt))
            attempt += 1


SINGLE_ATTEMPT = RetryPolicy(max_attempts=1, delay=0.0)
