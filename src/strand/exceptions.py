"""Strand exception hierarchy.

All Strand-specific exceptions inherit from StrandError.
"""

from __future__ import annotations


class StrandError(Exception):
    """Base exception for all Strand errors."""


class NoResponseProduced(StrandError):
    """Raised when a stream ends without producing a completed round."""

    def __init__(self, message: str = "No response received from the backend") -> None:
        super().__init__(message)


class ToolNotFound(StrandError):
    """Raised when the model calls a tool that is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found")


class DuplicateToolError(StrandError):
    """Raised when two tools registered on one session share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool name registered more than once: {name}")


class ToolExecutionFailed(StrandError):
    """Raised when a tool raises while executing a call.

    Attributes:
        tool_name: Name of the tool that failed.
        cause: The exception raised by the tool.
    """

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Tool '{tool_name}' failed: {cause}")


class ToolLoopExceeded(StrandError):
    """Raised when the model keeps requesting tools past the round limit."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(f"Too many tool call iterations (max {max_rounds})")


class TransportError(StrandError):
    """Raised when the transport fails or reports an error event.

    Attributes:
        cause: The underlying exception, or None when the backend reported
            the error as a stream event.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class UnsupportedConfiguration(StrandError):
    """Raised when a provider cannot reliably handle a feature combination.

    Attributes:
        feature: Description of the unsupported feature combination.
        provider: Provider name (e.g. "Gemini").
        suggestion: Actionable workaround for the caller.
    """

    def __init__(self, feature: str, provider: str, suggestion: str) -> None:
        self.feature = feature
        self.provider = provider
        self.suggestion = suggestion
        super().__init__(f"{provider} does not support {feature}. {suggestion}")


class MinimumTokensRequired(StrandError):
    """Raised when the requested token limit is below the provider minimum."""

    def __init__(self, provider: str, minimum: int, requested: int) -> None:
        self.provider = provider
        self.minimum = minimum
        self.requested = requested
        super().__init__(
            f"{provider} requires at least {minimum} tokens (requested: {requested})"
        )

    @property
    def suggestion(self) -> str:
        return f"Use maximum_tokens of {self.minimum} or higher"


class HistoryMutationError(StrandError):
    """Raised when conversation history is mutated outside its rules.

    Only the in-progress assistant draft of the current round may be
    replaced. Finalized messages are never rewritten or reordered.
    """


class SessionBusyError(StrandError):
    """Raised when a generation is started while another is in flight."""

    def __init__(self) -> None:
        super().__init__(
            "A generation is already running on this session. "
            "Wait for it to finish or cancel it first."
        )


class OutputParseError(StrandError):
    """Raised when the final model output cannot be parsed into the target type."""
