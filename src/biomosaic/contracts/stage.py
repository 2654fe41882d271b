"""Per-scene stage contract.

Enforces that a per-scene stage produced exactly one raster for every
raster it consumed, each one non-empty, all inside the stage directory.
"""

from pathlib import Path
from typing import Sequence

from biomosaic.contracts.base import require


def assert_stage_complete(name: str, stage_path: Path, outputs: Sequence[Path],
                          expected_count: int) -> None:
    """Enforce the per-scene stage contract.

    Parameters
    ----------
    name : str
        Stage name (for the message).
    stage_path : Path
        Directory the stage wrote into.
    outputs : sequence of Path
        Rasters the stage reports as written.
    expected_count : int
        Number of rasters the stage consumed.

    Raises
    ------
    ContractViolation
        If the output set is incomplete, escapes the stage directory,
        or contains an empty file.
    """
    require(
        len(outputs) == expected_count,
        f"Stage contract violated: '{name}' wrote {len(outputs)} rasters, "
        f"expected {expected_count}"
    )
    for path in outputs:
        require(
            Path(path).parent == Path(stage_path),
            f"Stage contract violated: '{name}' output {path} is outside {stage_path}"
        )
        require(
            Path(path).is_file() and Path(path).stat().st_size > 0,
            f"Stage contract violated: '{name}' output {path} is missing or empty"
        )
