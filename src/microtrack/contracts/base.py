"""Shared check used by every stage contract."""

from microtrack.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Raise ContractViolation with ``message`` unless ``condition`` holds.

    Stage contracts call this on the table a stage just produced, e.g.::

        require("particle_id" in linked.columns,
                "Linking contract violated: missing 'particle_id' column")

    A failure here means a stage broke its own guarantee. The processor
    logs it as critical and, under SKIP_VIDEO, isolates the video.
    """
    if not condition:
        raise ContractViolation(message)
