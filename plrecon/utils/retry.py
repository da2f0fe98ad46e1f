"""
Declarative retry policy shared by the oracle client.
"""

import time
from typing import Callable, Optional, Tuple, Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field

from plrecon.config import get_config


config = get_config()

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """
    How often, and how far apart, a failing call is attempted.

    max_attempts counts the first call, so the default of 2 means exactly one
    retry. The delay before attempt n+1 is delay_seconds * backoff ** (n - 1);
    backoff 1.0 gives a fixed delay.
    """
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=2, ge=1)
    delay_seconds: float = Field(default=2.0, ge=0.0)
    backoff: float = Field(default=1.0, ge=1.0)

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_attempts=config.ORACLE_MAX_ATTEMPTS,
            delay_seconds=config.ORACLE_RETRY_DELAY,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.delay_seconds * (self.backoff ** (attempt - 1))

    def call(
        self,
        fn: Callable[[], T],
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> T:
        """
        Run fn until it succeeds or attempts run out.

        Only exceptions listed in retry_on are retried; the last one is
        re-raised once the policy is exhausted.
        """
        attempt = 1
        while True:
            try:
                return fn()
            except retry_on as e:
                if attempt >= self.max_attempts:
                    raise
                if on_retry is not None:
                    on_retry(attempt, e)
                sleep(self.delay_for(attempt))
                attempt += 1
