"""
Error types raised by the pipeline executor and the capture session.
"""


class JobError(Exception):
    """Base class for all scrapejobs errors."""


class NotInitialized(JobError):
    """Pipeline was run without an initializer."""


class TypeMismatch(JobError):
    """A step received data of the wrong shape."""


class DuplicateEntry(JobError):
    """Save attempted for an identifier that was already recorded."""


class EmptyCapture(JobError):
    """Save attempted with nothing captured."""


class VerificationMismatch(JobError):
    """Undo found an artifact that does not belong to the last recorded entry."""


class ArtifactCollision(JobError):
    """A numbered slot is already occupied on disk."""


class IOFailure(JobError):
    """An underlying read, write or delete failed."""
