"""
Browser automation jobs: a staged pipeline executor and an interactive capture session.
"""

from .errors import (
    JobError,
    NotInitialized,
    TypeMismatch,
    DuplicateEntry,
    EmptyCapture,
    VerificationMismatch,
    ArtifactCollision,
    IOFailure,
)
from .job import Job, Step, StepKind, start
from .config import Settings
from .allocator import NumberedArtifactAllocator
from .tabs import TabTracker
from .session import CaptureSession, Mode, initialize_session
from .commands import CommandLoop

__version__ = "0.1.0"

__all__ = [
    "JobError",
    "NotInitialized",
    "TypeMismatch",
    "DuplicateEntry",
    "EmptyCapture",
    "VerificationMismatch",
    "ArtifactCollision",
    "IOFailure",
    "Job",
    "Step",
    "StepKind",
    "start",
    "Settings",
    "NumberedArtifactAllocator",
    "TabTracker",
    "CaptureSession",
    "Mode",
    "initialize_session",
    "CommandLoop",
]
