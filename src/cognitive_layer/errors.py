"""
Custom exception classes for the cognitive_layer package.

Run-level errors abort an enrichment run and are announced to the user.
Item-level errors are logged and the offending item is skipped.
"""


class CognitiveLayerError(Exception):
    """Base exception for all cognitive_layer errors."""

    pass


class DocumentLoadError(CognitiveLayerError):
    """Raised when an HTML document cannot be read or parsed."""

    pass


class ConfigurationError(CognitiveLayerError):
    """Raised when a settings file or value is invalid.

    Attributes:
        errors: List of specific problems found (optional)
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class RunAbortedError(CognitiveLayerError):
    """Base class for failures that abort a whole enrichment run."""

    pass


class CapabilityUnavailableError(RunAbortedError):
    """Raised when no usable generation backend exists.

    This occurs when:
    - The backend reports itself unavailable
    - Querying availability raises
    - A session cannot be created

    Attributes:
        capability: Name of the capability that was checked
        reason: Explanation of why it is unusable
    """

    def __init__(self, capability: str, reason: str | None = None) -> None:
        self.capability = capability
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format an error message with the reason, if known."""
        msg = f"{self.capability} is unavailable"
        if self.reason:
            msg += f": {self.reason}"
        return msg


class ContentTooShortError(RunAbortedError):
    """Raised when the document has too little text to enrich.

    Attributes:
        length: Number of characters found
        minimum: Number of characters required
    """

    def __init__(self, length: int, minimum: int) -> None:
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Page content is too short to summarize ({length} characters, need {minimum})"
        )


class NoTargetsFoundError(RunAbortedError):
    """Raised when a run has nothing to process."""

    pass


class PipelineBusyError(CognitiveLayerError):
    """Raised when a run is started while another run is still active."""

    pass


class ItemGenerationError(CognitiveLayerError):
    """Raised when generation for a single item fails.

    Attributes:
        index: Sequence index of the failed item
        cause: Underlying exception, if any
    """

    def __init__(self, index: int, message: str, cause: Exception | None = None) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"Item {index}: {message}")


class RejectedResultError(CognitiveLayerError):
    """Raised when generated text fails the acceptance policy.

    Rejections are not failures: the pipeline records the item as skipped.

    Attributes:
        output: The generated text that was rejected
        reason: Why it was rejected
    """

    def __init__(self, output: str, reason: str) -> None:
        self.output = output
        self.reason = reason
        super().__init__(f"Rejected generated text ({reason}): {output[:60]!r}")
