"""Exceptions raised by csvmap."""

from typing import Optional


class MappingError(ValueError):
    """An event that does not fit the current mapping state."""


class SubmissionError(Exception):
    """The remote API rejected or never received an import."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
