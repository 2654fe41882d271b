"""Pipeline contracts - fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when a stage does not produce
its promised output.

Key principle:
- pydantic validates config correctness
- Contracts validate pipeline correctness
- Raster operations report their own failures (RasterOpError)
"""

from biomosaic.contracts.failure import ContractViolation, FailurePolicy
from biomosaic.contracts.base import require
from biomosaic.contracts.stage import assert_stage_complete
from biomosaic.contracts.mosaic import assert_mosaic, assert_pyramid

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_stage_complete",
    "assert_mosaic",
    "assert_pyramid",
]
