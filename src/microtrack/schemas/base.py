"""Common pydantic base for microtrack settings and config sections."""

from pydantic import BaseModel, ConfigDict


class MicrotrackBaseModel(BaseModel):
    """Base model for settings structs and config sections.

    Unknown keys are rejected (``UserConfig`` relaxes this for legacy
    notebook keys), assignments are re-validated, enum fields hold their
    string values and string inputs are stripped.
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
