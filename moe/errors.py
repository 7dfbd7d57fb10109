from typing import Optional


class MoeError(Exception):
    """Base class for errors raised by the word learning services."""


class WordNotFoundError(MoeError):
    """No learned-word record exists for the (student, word) pair."""


class StoreError(MoeError):
    """A read or write against the word store failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class TutorUnavailableError(MoeError):
    """The tutor model could not produce a reply."""


class SolutionParseError(MoeError):
    """The model answered, but not with a JSON object we can use."""
