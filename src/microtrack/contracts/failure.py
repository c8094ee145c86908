"""Centralized failure policy and error taxonomy.

Contracts fail fast, loud, and once. Science edge cases (too few samples,
a trajectory that starts off-screen) are not errors: they become null
values or dropped tracks. Everything else that goes wrong while processing
one video is isolated to that video according to the FailurePolicy.
"""

from dataclasses import dataclass
from enum import Enum


class FailurePolicy(str, Enum):
    """What the batch does when one video fails.

    SKIP_VIDEO (default): Record the failure, contribute no rows, continue
    FAIL_FAST: Re-raise immediately and abort the batch
    """
    SKIP_VIDEO = "skip_video"
    FAIL_FAST = "fail_fast"


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or recoverable
    science edge cases. It means a pipeline stage did not produce the invariants
    it promised.

    The one exception is the detection contract, which guards the boundary
    with the external segmentation step; the processor reports its
    violations as invalid input rather than as a pipeline bug.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - ContractViolation: Pipeline bug (programmer error)
    - DegenerateInput: Recoverable science issue (becomes a null value)
    """
    pass


class ConfigurationConflict(ValueError):
    """Frame rate is specified in both the video metadata and the linking
    settings, or in neither. Unrecoverable for the affected video."""
    pass


class DegenerateInput(ArithmeticError):
    """Input too small or too degenerate for a numeric primitive.

    Raised by line fits with fewer than two distinct abscissae and by
    spectral transforms with too few samples. Callers that derive a summary
    value catch this and store a null instead.
    """
    pass


NumericError = DegenerateInput


@dataclass(frozen=True)
class PerVideoFailure:
    """Record of one video's isolated failure during a batch run."""
    video_id: str
    stage: str
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, video_id: str, stage: str, exc: BaseException) -> "PerVideoFailure":
        return cls(
            video_id=str(video_id),
            stage=stage,
            error_type=type(exc).__name__,
            message=str(exc),
        )
