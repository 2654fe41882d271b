"""External grid-crop collaborator.

Partitions reprojected scenes along the cells of a vector grid by running
an external procedure (historically ``Rscript --vanilla <script> <grid>
<dir>/``). The procedure is not reimplemented here: it is invoked, time
bounded, and its output directory verified.

The collaborator writes its tiles into a conventional subdirectory of the
raster directory it was given (``tempCutted_buffer`` by default). A zero
exit status with no tiles in that subdirectory is still a failure.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from biomosaic.errors import CollaboratorError
from biomosaic.raster.raster_utils import has_rasters

__all__ = ['GridCropCollaborator', 'DEFAULT_COMMAND']

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("Rscript", "--vanilla", "{script}", "{grid}", "{raster_dir}")


class GridCropCollaborator:
    """Runs the grid-crop procedure and verifies its output.

    Parameters
    ----------
    command : sequence of str
        Command template. Each element may contain the placeholders
        ``{grid}``, ``{raster_dir}`` and ``{script}``.
    output_subdir : str
        Subdirectory of the raster directory the procedure writes into.
    timeout_sec : int
        Seconds before the process is killed.
    raster_extension : str
        Extension of the tiles expected in the output subdirectory.
    script_path : str or Path, optional
        Value substituted for ``{script}``.

    Examples
    --------
    >>> crop = GridCropCollaborator(["Rscript", "--vanilla", "{script}",
    ...                              "{grid}", "{raster_dir}"],
    ...                             script_path="scripts/script_r_cut_images_by_grid.R")
    >>> out_dir = crop.crop(grid_path, Path("/data/tempCopy/tempEPSG4326"))
    """

    def __init__(self, command: Sequence[str] = DEFAULT_COMMAND,
                 output_subdir: str = "tempCutted_buffer",
                 timeout_sec: int = 7200,
                 raster_extension: str = "tif",
                 script_path: Optional[Path | str] = None):
        if not command:
            raise ValueError("Collaborator command cannot be empty")
        self.command = list(command)
        self.output_subdir = output_subdir
        self.timeout_sec = timeout_sec
        self.raster_extension = raster_extension
        self.script_path = Path(script_path) if script_path else None

    @classmethod
    def from_config(cls, config, script_path: Optional[Path | str] = None) -> "GridCropCollaborator":
        """Build from InternalConfig. ``script_path`` wins over the config value."""
        return cls(
            command=config.grid_crop.command,
            output_subdir=config.grid_crop.output_subdir,
            timeout_sec=config.grid_crop.timeout_sec,
            raster_extension=config.scene.raster_extension,
            script_path=script_path or config.grid_crop.script_path,
        )

    def build_command(self, grid_path: Path, raster_dir: Path) -> List[str]:
        """Expand the command template for one invocation.

        The raster directory is passed with a trailing separator, as the
        procedure concatenates file names onto it.
        """
        values = {
            "grid": str(grid_path),
            "raster_dir": str(raster_dir).rstrip(os.sep) + os.sep,
            "script": str(self.script_path) if self.script_path else "",
        }
        return [part.format(**values) for part in self.command]

    def crop(self, grid_path: Path, raster_dir: Path) -> Path:
        """Run the procedure on a raster directory.

        Parameters
        ----------
        grid_path : Path
            Grid vector whose cells define the crop.
        raster_dir : Path
            Directory of reprojected rasters.

        Returns
        -------
        Path
            The populated output subdirectory.

        Raises
        ------
        CollaboratorError
            On a missing or unlaunchable executable, timeout, non-zero exit,
            or a missing or empty output subdirectory.
        """
        raster_dir = Path(raster_dir)
        cmd = self.build_command(grid_path, raster_dir)
        logger.info("Running grid crop: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_sec,
            )
        except FileNotFoundError as err:
            raise CollaboratorError(f"Grid crop executable not found: {cmd[0]}") from err
        except OSError as err:
            raise CollaboratorError(f"Grid crop could not be started: {err}") from err
        except subprocess.TimeoutExpired as err:
            raise CollaboratorError(
                f"Grid crop timed out after {self.timeout_sec}s"
            ) from err

        for line in (result.stdout or "").splitlines():
            logger.info("[grid_crop] %s", line)
        for line in (result.stderr or "").splitlines():
            logger.warning("[grid_crop] %s", line)

        if result.returncode != 0:
            raise CollaboratorError(
                f"Grid crop failed with exit status {result.returncode}",
                returncode=result.returncode,
            )

        out_dir = raster_dir / self.output_subdir
        if not out_dir.is_dir():
            raise CollaboratorError(
                f"Grid crop produced no output directory: {out_dir}",
                returncode=result.returncode,
            )
        if not has_rasters(out_dir, self.raster_extension):
            raise CollaboratorError(
                f"Grid crop produced no rasters in {out_dir}",
                returncode=result.returncode,
            )

        logger.info("Grid crop complete: %s", out_dir)
        return out_dir
