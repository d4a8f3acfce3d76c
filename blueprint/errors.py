"""Exceptions raised by the vendor intake library."""

from __future__ import annotations


class BlueprintError(Exception):
    """Base class for errors raised by :mod:`blueprint`."""


class QuestionnaireSchemaError(BlueprintError, ValueError):
    """Raised when a questionnaire schema cannot be turned into a definition."""


class UnknownFieldError(BlueprintError, KeyError):
    """Raised when a section or question id is not part of the assessment."""

    def __str__(self) -> str:
        # ``KeyError`` quotes its argument; keep the plain message instead.
        return str(self.args[0]) if self.args else ""


class FieldValueError(BlueprintError, ValueError):
    """Raised when a value cannot be stored in the assessment record."""


class SubmissionError(BlueprintError, RuntimeError):
    """Raised when handing an assessment to a submission handler fails."""


__all__ = [
    "BlueprintError",
    "FieldValueError",
    "QuestionnaireSchemaError",
    "SubmissionError",
    "UnknownFieldError",
]
