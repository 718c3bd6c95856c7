"""Error taxonomy for the coach pipeline.

Only ``CompletionServiceError`` (and auth failures, handled by the API layer)
cross the boundary to callers.  ``ContextUnavailable`` and
``MalformedResponseShape`` are recovered in place by degrading.
"""

from __future__ import annotations


class CoachError(Exception):
    """Base class for every error raised by the coach."""


class ContextUnavailable(CoachError):
    """The knowledge store could not be read."""


class CompletionServiceError(CoachError):
    """The language-model call failed or its stream broke mid-way."""

    def __init__(self, message: str, error_type: str | None = None):
        self.error_type = error_type
        super().__init__(message)


class MalformedResponseShape(CoachError):
    """Model output did not match the structured response contract."""


class KnowledgeEntryNotFound(CoachError):
    """No knowledge entry exists with the requested id."""

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Knowledge entry {entry_id} not found")
