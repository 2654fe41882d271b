"""Error taxonomy for the mosaic pipeline.

Every failure surfaced by a run is a PipelineError. The three branches map to
the three ways a run can stop:

- InputError: the run cannot start (missing data dir, vectors, parameters)
- StageExecutionError: a stage failed on a specific file or directory
- CollaboratorError: the external grid-crop procedure failed

RasterOpError subclasses are raised by the raster operations themselves and
carry the path of the raster that triggered the fault. The StageRunner fills
in the stage name before re-raising.
"""

from pathlib import Path
from typing import Optional


class PipelineError(RuntimeError):
    """Base class for every error surfaced by a pipeline run."""
    pass


class InputError(PipelineError):
    """Raised before any stage runs when inputs are missing or unusable."""
    pass


class StageExecutionError(PipelineError):
    """Raised when a stage cannot complete.

    Parameters
    ----------
    message : str
        Human readable description.
    stage : str, optional
        Name of the failing stage (filled in by StageRunner if not given).
    path : Path or str, optional
        Raster or directory that triggered the failure.
    """

    def __init__(self, message: str, stage: Optional[str] = None,
                 path: Optional[Path | str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"[{self.stage}]")
        parts.append(self.message)
        if self.path is not None:
            parts.append(f"({self.path})")
        return " ".join(parts)


class StageConflictError(StageExecutionError):
    """Raised when a stage directory already contains files from another run."""
    pass


class RasterOpError(StageExecutionError):
    """Base class for failures of a single raster operation."""
    pass


class RasterCopyError(RasterOpError, OSError):
    """Source unreadable or destination unwritable during copy."""
    pass


class MetadataError(RasterOpError):
    """Raster header missing or not editable."""
    pass


class ReprojectionError(RasterOpError):
    """No usable source CRS, or the warp itself failed."""
    pass


class BandError(RasterOpError):
    """Raster does not have the bands an operation requires."""
    pass


class GeometryError(RasterOpError):
    """Boundary geometry empty, invalid, or not overlapping the raster."""
    pass


class TilingError(RasterOpError):
    """I/O failure while writing the tile pyramid. Partial output is invalid."""
    pass


class CollaboratorError(PipelineError):
    """Raised when the grid-crop collaborator fails or produces no tiles."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
