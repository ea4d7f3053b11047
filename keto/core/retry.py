from dataclasses import dataclass

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential, wait_fixed

from keto.core.exceptions import ProviderError


def is_retryable(exception: BaseException) -> bool:
    return isinstance(exception, ProviderError) and exception.retryable


@dataclass(frozen=True)
class RetryPolicy:
    """How often a transient provider failure is retried.

    The default makes a single attempt; retrying is left to the caller unless a
    policy with more attempts is injected into the controller.
    """

    attempts: int = 1
    wait_seconds: float = 0.0
    exponential: bool = False
    max_wait_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f'Retry policy needs at least one attempt, got {self.attempts}')

    def retrying(self) -> AsyncRetrying:
        if self.exponential:
            wait = wait_exponential(multiplier=self.wait_seconds, max=self.max_wait_seconds)
        else:
            wait = wait_fixed(self.wait_seconds)

        return AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.attempts),
            wait=wait,
            reraise=True,
        )


NO_RETRY = RetryPolicy()
