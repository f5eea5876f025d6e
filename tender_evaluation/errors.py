# errors.py
"""Exceptions raised by the evaluation engine.

All of them are recoverable: they report invalid caller input or an illegal
state transition and leave the evaluation state untouched.
"""


class EvaluationError(Exception):
    """Base class for all tender evaluation errors."""


class ValidationError(EvaluationError, ValueError):
    """Invalid input: score out of range, bad weights, missing justification."""


class StateError(EvaluationError, RuntimeError):
    """Illegal state transition, e.g. editing a record that is already Final."""


class NotFoundError(EvaluationError, LookupError):
    """A vendor, criterion, document or record reference does not exist."""
