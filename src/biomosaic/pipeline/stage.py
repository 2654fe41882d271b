"""Stage execution over directories of rasters.

A stage reads every raster of its input directory, applies one RasterOp
per file, and writes the results into a fresh output directory. Stages
fail fast: the first failing file aborts the stage and nothing more is
written.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from biomosaic.errors import RasterOpError, StageConflictError, StageExecutionError
from biomosaic.raster.grid_crop import GridCropCollaborator
from biomosaic.raster.ops import RasterOp, apply_op, is_in_place
from biomosaic.raster.raster_utils import derive_output_name, find_rasters

__all__ = ['StageDirectory', 'StageRunner', 'ensure_empty_dir']

logger = logging.getLogger(__name__)

# Static keyword arguments, or a function of the input raster returning them
StageOptions = Union[Dict[str, Any], Callable[[Path], Dict[str, Any]], None]


@dataclass(frozen=True)
class StageDirectory:
    """Output of one stage: a directory and the rasters it holds, in order."""
    name: str
    path: Path
    paths: Tuple[Path, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.paths)


def ensure_empty_dir(path: Path, stage: Optional[str] = None, create: bool = True) -> Path:
    """Create ``path`` if missing; refuse to reuse it if it holds files.

    With ``create=False`` only the conflict check is made.

    Raises
    ------
    StageConflictError
        If the directory already contains anything.
    """
    path = Path(path)
    if path.is_dir() and any(path.iterdir()):
        raise StageConflictError(
            "stage directory already holds files from a previous run",
            stage=stage, path=path
        )
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


class StageRunner:
    """Applies one operation to every raster of a directory.

    Parameters
    ----------
    raster_extension : str
        Extension of the rasters to process, matched case-insensitively.
    """

    def __init__(self, raster_extension: str = "tif"):
        self.raster_extension = raster_extension

    def run(self, input_dir: Path, op: RasterOp, output_dir: Path, suffix: str,
            name: Optional[str] = None, options: StageOptions = None) -> StageDirectory:
        """Run a per-file stage.

        Parameters
        ----------
        input_dir : Path
            Directory of input rasters. Never modified.
        op : RasterOp
            Per-file operation to apply.
        output_dir : Path
            Fresh directory for the outputs.
        suffix : str
            Appended to each input base name to build the output name.
        name : str, optional
            Stage name used in logs and errors (defaults to the op value).
        options : dict or callable, optional
            Operation keyword arguments. A callable receives the input
            raster path and returns the arguments for that file.

        Returns
        -------
        StageDirectory

        Raises
        ------
        StageExecutionError
            If the input directory holds no raster, or an operation fails.
            RasterOpError subclasses are re-raised with the stage name set.
        StageConflictError
            If ``output_dir`` already holds files.
        """
        op = RasterOp(op)
        name = name or op.value
        inputs = self._inputs(input_dir, name)
        output_dir = ensure_empty_dir(output_dir, stage=name)

        logger.info("Stage '%s': %d rasters %s -> %s", name, len(inputs),
                    input_dir, output_dir)
        outputs = []
        for src in inputs:
            dst = Path(output_dir) / derive_output_name(src, suffix)
            outputs.append(self._apply(name, op, src, dst, options))

        return StageDirectory(name=name, path=Path(output_dir), paths=tuple(outputs))

    def run_in_place(self, stage_dir: StageDirectory, op: RasterOp,
                     name: Optional[str] = None, options: StageOptions = None) -> StageDirectory:
        """Run an in-place stage over the rasters of an existing stage directory."""
        op = RasterOp(op)
        if not is_in_place(op):
            raise ValueError(f"'{op.value}' writes new files; use run()")
        name = name or op.value
        inputs = self._inputs(stage_dir.path, name)

        logger.info("Stage '%s': %d rasters in place in %s", name, len(inputs), stage_dir.path)
        outputs = [self._apply(name, op, src, None, options) for src in inputs]
        return StageDirectory(name=name, path=stage_dir.path, paths=tuple(outputs))

    def run_collaborator(self, input_dir: Path, collaborator: GridCropCollaborator,
                         grid_path: Path, name: str = "grid_crop") -> StageDirectory:
        """Run the grid-crop collaborator on a directory.

        Raises
        ------
        StageExecutionError
            If the input directory holds no raster.
        StageConflictError
            If the collaborator output directory already holds files.
        CollaboratorError
            If the collaborator fails or writes no raster.
        """
        self._inputs(input_dir, name)
        ensure_empty_dir(Path(input_dir) / collaborator.output_subdir, stage=name, create=False)

        out_dir = collaborator.crop(grid_path, input_dir)
        paths = tuple(find_rasters(out_dir, self.raster_extension))
        logger.info("Stage '%s': %d tiles in %s", name, len(paths), out_dir)
        return StageDirectory(name=name, path=out_dir, paths=paths)

    def _inputs(self, input_dir: Path, name: str):
        inputs = find_rasters(input_dir, self.raster_extension)
        if not inputs:
            raise StageExecutionError(
                f"no .{self.raster_extension} rasters to process",
                stage=name, path=input_dir
            )
        return inputs

    def _apply(self, name: str, op: RasterOp, src: Path, dst: Optional[Path],
               options: StageOptions) -> Path:
        try:
            kwargs = options(src) if callable(options) else dict(options or {})
            return apply_op(op, src, dst, **kwargs)
        except RasterOpError as err:
            if err.stage is None:
                err.stage = name
            if err.path is None:
                err.path = Path(src)
            logger.error("Stage '%s' failed on %s: %s", name, Path(src).name, err.message)
            raise
        except StageExecutionError:
            raise
        except Exception as err:
            logger.error("Stage '%s' failed on %s: %s", name, Path(src).name, err)
            raise StageExecutionError(str(err), stage=name, path=src) from err
