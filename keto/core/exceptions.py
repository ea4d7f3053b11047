class KetoError(Exception):
    """Base class for every error reported by the lifecycle controller."""


class InvalidSpecError(KetoError):
    def __init__(self, problems: list[str] | str) -> None:
        self.problems = [problems] if isinstance(problems, str) else list(problems)
        super().__init__('Invalid spec: ' + '; '.join(self.problems))


class NotFoundError(KetoError):
    pass


class AlreadyExistsError(KetoError):
    pass


class MissingAssetError(KetoError):
    def __init__(self, role: str, missing: list[str]) -> None:
        self.role = role
        self.missing = sorted(missing)
        super().__init__(f'Missing assets for {role} nodes: {", ".join(self.missing)}')


class ProviderError(KetoError):
    """A failure surfaced by a cloud provider.

    ``retryable`` marks transient failures (network, throttling) that the caller
    may retry; semantic failures are terminal.
    """

    def __init__(self, message: str, cause: BaseException | None = None, retryable: bool = True) -> None:
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)


class QuotaExceededError(ProviderError):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, cause=cause, retryable=False)


class OperationTimeoutError(KetoError):
    """The deadline expired; the cloud side effect is unknown and must be re-queried."""

    def __init__(self, resource: str, timeout: float) -> None:
        self.resource = resource
        self.timeout = timeout
        super().__init__(
            f'Operation on {resource} did not finish within {timeout}s, describe the cluster to check its state'
        )
