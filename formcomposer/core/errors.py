"""Exception hierarchy for the session engine."""


class ComposerError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(ComposerError):
    """Settings are missing or invalid (e.g. no API key)."""


class SessionError(ComposerError):
    """Browser launch or navigation failed."""


class LLMError(ComposerError):
    """An LLM call failed. Always recoverable through a fallback."""


class LLMTimeoutError(LLMError):
    """The LLM did not answer within its time budget."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"LLM call timed out after {timeout:.1f}s")
        self.timeout = timeout


class LLMResponseError(LLMError):
    """The LLM answered with something that is not the expected JSON."""
