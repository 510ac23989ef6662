"""Exception types raised by the agent runtime."""

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 529})


class ToolLoopError(Exception):
    """Base class for all runtime errors."""


class InputRejectedError(ToolLoopError, ValueError):
    """User input failed validation and must not be sent to the model."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ProviderError(ToolLoopError):
    """The model provider failed to produce a response.

    Providers set ``retryable`` for rate-limit and overload failures; the
    agent loop retries those with backoff and surfaces everything else.
    """

    def __init__(self, message: str, *, retryable: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class RateLimitExhaustedError(ProviderError):
    """Transient provider failures persisted past the retry ceiling."""

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Rate limit retries exhausted after {attempts} attempts{detail}",
            retryable=False,
            status_code=getattr(last_error, "status_code", None),
        )
        self.attempts = attempts


class IterationLimitError(ToolLoopError):
    """The model kept requesting tools until the iteration cap cut the turn off."""

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Maximum iterations reached ({max_iterations}). The operation may be incomplete. "
            "Consider breaking down complex requests into smaller parts."
        )
        self.max_iterations = max_iterations


class StuckLoopError(ToolLoopError):
    """The model kept requesting the same tool call with the same arguments."""

    def __init__(self, tool_name: str):
        super().__init__("Stuck loop detected: Repeating same tool calls")
        self.tool_name = tool_name


class QueueError(ToolLoopError):
    """An operation was rejected by a SerializedTaskQueue."""


class QueueDestroyedError(QueueError):
    """The queue was destroyed before the operation could run."""

    def __init__(self, message: str = "Queue processor has been destroyed"):
        super().__init__(message)


class QueueClearedError(QueueError):
    """The operation was pending when the queue was cleared."""

    def __init__(self, message: str = "Queue cleared"):
        super().__init__(message)


def is_retryable(error: BaseException) -> bool:
    """Classify a provider failure as transient (rate-limited or overloaded)."""
    if isinstance(error, ProviderError):
        return error.retryable

    status_code = getattr(error, "status_code", None)
    return isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES
