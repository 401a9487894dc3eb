"""
Error taxonomy for the exam session engine.

Validation and lookup errors are shown to the examinee directly. Transient
store failures stay in the checkpoint layer. Fatal store failures are the
one class that must always reach the examinee.
"""


class ProctorError(Exception):
    """Base class for all engine errors."""


class ExamNotFound(ProctorError):
    """The access code matches no exam, or the exam does not accept entries."""


class ValidationError(ProctorError):
    """Registration fields are missing or malformed."""


class TerminalConflict(ProctorError):
    """The examinee already has a submitted or disqualified session."""

    def __init__(self, message: str, status: str):
        super().__init__(message)
        self.status = status


class InvalidTransition(ProctorError):
    """An operation was called in a phase that does not allow it."""


class StoreError(ProctorError):
    """Raised by store implementations when a request cannot be served."""


class TransientStoreFailure(ProctorError):
    """A recoverable store failure; the caller may retry or continue locally."""


class FatalStoreFailure(ProctorError):
    """A terminal write (submit or disqualify) could not be persisted."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts
