"""Run-wide parameters for one (year, biome) mosaic run."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from biomosaic.errors import InputError
from biomosaic.raster.raster_utils import has_rasters
from biomosaic.schemas.internal import InternalConfig
from biomosaic.setup_directories import (
    default_crop_script,
    resolve_vector_paths,
    setup_output_paths,
)

__all__ = ['PipelineContext']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineContext:
    """Read-only parameters shared by every stage of a run.

    Attributes
    ----------
    year : int
        Mosaic year; names the outputs.
    biome : str
        Biome name; selects the boundary and grid vectors.
    data_dir : Path
        Directory of scene rasters; receives every output.
    boundary_path : Path
        Biome boundary vector used by the cutline crop.
    grid_path : Path
        Grid vector handed to the grid-crop collaborator.
    crop_command : tuple of str
        Grid-crop command template.
    script_path : Path or None
        Value of the ``{script}`` placeholder.
    config : InternalConfig
        Resolved configuration.
    """
    year: int
    biome: str
    data_dir: Path
    boundary_path: Path
    grid_path: Path
    crop_command: Tuple[str, ...]
    script_path: Optional[Path]
    config: InternalConfig

    @classmethod
    def from_config(cls, config: InternalConfig) -> "PipelineContext":
        """Validate the inputs of a run and build its context.

        Raises
        ------
        InputError
            If year, biome or data directory are missing, the data
            directory holds no scene raster, or a vector or the grid-crop
            script does not exist.
        """
        if config.year is None:
            raise InputError("No year given")
        if not config.biome:
            raise InputError("No biome given")
        if not config.data_dir:
            raise InputError("No data directory given")

        data_dir = Path(config.data_dir).expanduser().resolve()
        if not data_dir.is_dir():
            raise InputError(f"Data directory not found: {data_dir}")
        extension = config.scene.raster_extension
        if not has_rasters(data_dir, extension):
            raise InputError(f"No .{extension} rasters in {data_dir}")

        boundary_path, grid_path = resolve_vector_paths(config.vectors, config.biome)
        if not boundary_path.is_file():
            raise InputError(f"Boundary vector not found: {boundary_path}")
        if not grid_path.is_file():
            raise InputError(f"Grid vector not found: {grid_path}")

        script_path = None
        if any("{script}" in part for part in config.grid_crop.command):
            script_path = Path(config.grid_crop.script_path or default_crop_script()).expanduser()
            if not script_path.is_file():
                raise InputError(f"Grid crop script not found: {script_path}")

        return cls(
            year=config.year,
            biome=config.biome,
            data_dir=data_dir,
            boundary_path=boundary_path,
            grid_path=grid_path,
            crop_command=tuple(config.grid_crop.command),
            script_path=script_path,
            config=config,
        )

    @property
    def outputs(self) -> Dict[str, Path]:
        """Output paths of the run (see ``setup_output_paths``)."""
        return setup_output_paths(self.data_dir, self.year, self.config.stages.nodata_dir)
