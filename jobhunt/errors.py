"""Exception taxonomy for the job hunt pipeline."""

from __future__ import annotations


class JobHuntError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(JobHuntError):
    """A credential, identifier or profile needed by an operation is missing or invalid.

    Fatal to the operation that needs it and never retried.
    """


class JobSourceError(JobHuntError):
    """The job source could not be reached for any query."""


class LLMError(JobHuntError):
    """A hosted-model call failed (network, HTTP status, empty response)."""


class LLMResponseError(LLMError):
    """The model answered, but the answer could not be parsed or validated.

    Attributes:
        raw: The unparseable response text (truncated).
    """

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw[:500]
        super().__init__(message)


class RenderError(JobHuntError):
    """The resume document could not be rendered or written."""
