"""Pipeline contracts - fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages and holds
the error taxonomy shared by the tracking core and the orchestrator.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Algorithms handle science edge cases
"""

from microtrack.contracts.failure import (
    ContractViolation,
    ConfigurationConflict,
    DegenerateInput,
    NumericError,
    FailurePolicy,
    PerVideoFailure,
)
from microtrack.contracts.base import require
from microtrack.contracts.detections import assert_detections
from microtrack.contracts.linking import assert_linked
from microtrack.contracts.clipping import assert_clipped
from microtrack.contracts.summary import assert_summary

__all__ = [
    "ContractViolation",
    "ConfigurationConflict",
    "DegenerateInput",
    "NumericError",
    "FailurePolicy",
    "PerVideoFailure",
    "require",
    "assert_detections",
    "assert_linked",
    "assert_clipped",
    "assert_summary",
]
