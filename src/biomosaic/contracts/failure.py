"""Centralized failure policy for stage contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, so the pipeline can tell its own bugs apart from
bad inputs and failing raster operations.
"""

from enum import Enum


class FailurePolicy(str, Enum):
    """Failure policy for contract violations.

    FAIL_FAST (default, and the only policy): raise immediately. A stage
    directory that breaks its contract is never handed to the next stage.
    """
    FAIL_FAST = "fail_fast"


class ContractViolation(RuntimeError):
    """Raised when a stage did not produce the invariants it promised.

    Key distinction:
    - pydantic ValidationError: bad configuration
    - InputError: bad inputs, detected before any stage runs
    - RasterOpError: a raster operation failed on a specific file
    - ContractViolation: a stage reported success but its output is wrong
    """
    pass
