"""Base pydantic model with strict defaults for biomosaic configs.

All configuration schemas inherit from this base to ensure consistent
validation behavior across param, user, CLI, and internal configs.
"""

from pydantic import BaseModel, ConfigDict


class MosaicBaseModel(BaseModel):
    """Base model for all biomosaic configuration schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Strips whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        use_enum_values=True,     # Convert enums to values
        str_strip_whitespace=True,# Strip whitespace from strings
    )
