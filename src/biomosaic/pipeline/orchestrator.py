"""Sequential mosaic pipeline orchestration.

Drives the fixed stage sequence for one (year, biome) run, from raw
scene rasters to the biome-clipped mosaic and its tile pyramid.
Manages logging, preflight checks and the GDAL environment.
"""

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import rasterio

from biomosaic.contracts import assert_mosaic, assert_pyramid, assert_stage_complete
from biomosaic.errors import RasterOpError, StageConflictError
from biomosaic.pipeline.context import PipelineContext
from biomosaic.pipeline.stage import StageDirectory, StageRunner
from biomosaic.raster.grid_crop import GridCropCollaborator
from biomosaic.raster.mosaic import cutline_crop, merge_rasters
from biomosaic.raster.ops import RasterOp, is_in_place
from biomosaic.raster.projection import ProjectionResolver
from biomosaic.raster.raster_utils import find_rasters
from biomosaic.raster.retile import TilePyramid, retile
from biomosaic.schemas.internal import InternalConfig
from biomosaic.setup_directories import get_log_path

__all__ = ['MosaicPipeline', 'StageSpec', 'STAGES']

logger = logging.getLogger(__name__)

# Marks root handlers installed by a pipeline run
_HANDLER_TAG = "_biomosaic_handler"


@dataclass(frozen=True)
class StageSpec:
    """One per-scene stage.

    Attributes
    ----------
    name : str
        Stage name used in logs and errors.
    op : RasterOp or None
        Per-file operation; None for the grid-crop collaborator.
    dir_field : str or None
        Field of ``config.stages`` naming the output directory. None for
        in-place and collaborator stages.
    suffix_field : str or None
        Field of ``config.stages`` holding the output file suffix.
    """
    name: str
    op: Optional[RasterOp]
    dir_field: Optional[str] = None
    suffix_field: Optional[str] = None


# Fixed per-scene sequence. Each output directory is created beneath the
# previous stage's directory.
STAGES = (
    StageSpec("copy", RasterOp.COPY, "copy_dir", "copy_suffix"),
    StageSpec("unset_nodata", RasterOp.UNSET_NODATA),
    StageSpec("reproject", RasterOp.REPROJECT, "reprojection_dir", "reprojection_suffix"),
    StageSpec("grid_crop", None),
    StageSpec("remove_alpha", RasterOp.REMOVE_ALPHA, "alpha_dir", "alpha_suffix"),
    StageSpec("set_nodata", RasterOp.SET_NODATA, "nodata_dir", "nodata_suffix"),
)


class MosaicPipeline:
    """Builds the biome mosaic and tile pyramid for one year.

    This is the main entry point for running ``biomosaic``. Stages run
    strictly in sequence; the first failure stops the run and is
    re-raised unchanged. Nothing is rolled back: a failed run leaves its
    stage directories on disk, and the next run refuses to start until
    they are removed.

    **Stage sequence:**

    1. **copy**: duplicate scenes into ``tempCopy/``
    2. **unset_nodata**: clear nodata markers in place
    3. **reproject**: warp to EPSG:4326 into ``tempEPSG4326/``. Scenes with
       an unknown geographic CRS are warped from the fallback CRS.
    4. **grid_crop**: external collaborator writes ``tempCutted_buffer/``
    5. **remove_alpha**: keep bands 1-3 into ``tempNoAlphaBand/``
    6. **set_nodata**: remap white to nodata into ``tempNoData/``
    7. promote ``tempNoData/`` to the data directory, delete ``tempCopy/``
    8. **merge**: ``mosaic_<year>_border.tif``
    9. **cutline_crop**: ``mosaic_<year>.tif``
    10. **retile**: ``<year>/`` tile pyramid

    **Logging:**

    All output goes to both console and the run log
    (``<data_dir>/output_mosaic_<year>_<YYYYMMDD>.log``). Log level
    controlled via ``config.logging.level``.

    Example usage::

        from biomosaic.pipeline import MosaicPipeline

        pipeline = MosaicPipeline(config)
        pyramid = pipeline.execute()
    """

    def __init__(self, config: InternalConfig, runner: Optional[StageRunner] = None,
                 collaborator: Optional[GridCropCollaborator] = None):
        """Initialize the pipeline.

        Parameters
        ----------
        config : InternalConfig
            Resolved configuration.
        runner : StageRunner, optional
            Per-file stage driver. Built from the config if not given.
        collaborator : GridCropCollaborator, optional
            Grid-crop collaborator. Built from the context if not given.
        """
        self.config = config
        self.runner = runner or StageRunner(config.scene.raster_extension)
        self.collaborator = collaborator
        self.resolver = ProjectionResolver.from_config(config)
        self._start_time = None

    def _setup_logging(self, context: PipelineContext) -> Path:
        """Attach the run log file handler and a console handler to the root logger."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(context.data_dir, context.year)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root = logging.getLogger()
        root.setLevel(log_level)
        self._teardown_logging()

        # File handler
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        setattr(fh, _HANDLER_TAG, True)
        root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        setattr(ch, _HANDLER_TAG, True)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)
        return log_path

    @staticmethod
    def _teardown_logging():
        """Detach and close handlers installed by _setup_logging."""
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if getattr(handler, _HANDLER_TAG, False):
                root.removeHandler(handler)
                handler.close()

    def execute(self, context: Optional[PipelineContext] = None) -> TilePyramid:
        """Run every stage and return the tile pyramid.

        Parameters
        ----------
        context : PipelineContext, optional
            Run parameters. Built (and validated) from the config if not given.

        Returns
        -------
        TilePyramid

        Raises
        ------
        InputError
            Inputs missing or unusable. Raised before any stage runs.
        StageConflictError
            A previous run left files behind. Raised before any stage runs.
        StageExecutionError
            A stage failed (RasterOpError subclasses name stage and file).
        CollaboratorError
            The grid-crop collaborator failed or wrote no tiles.
        ContractViolation
            A stage reported success without producing its outputs.
        """
        context = context or PipelineContext.from_config(self.config)
        self._setup_logging(context)

        try:
            logger.info("=" * 60)
            logger.info("Mosaic pipeline: year=%s biome=%s", context.year, context.biome)
            logger.info("Data:     %s", context.data_dir)
            logger.info("Boundary: %s", context.boundary_path)
            logger.info("Grid:     %s", context.grid_path)
            logger.info("=" * 60)

            self._preflight(context)
            self._start_time = time.time()

            with rasterio.Env(GDAL_NUM_THREADS=self.config.gdal.num_threads):
                scenes = self._run_scene_stages(context)
                promoted = self._promote(context, scenes)
                pyramid = self._run_mosaic_stages(context, promoted)

            elapsed = time.time() - self._start_time
            logger.info("=" * 60)
            logger.info("Pipeline complete in %.1f seconds", elapsed)
            logger.info("Mosaic:  %s", context.outputs["mosaic"])
            logger.info("Pyramid: %s (%d levels, %d tiles)", pyramid.root,
                        pyramid.levels, pyramid.tile_count)
            logger.info("=" * 60)
            return pyramid
        except Exception:
            logger.exception("Pipeline stopped")
            raise
        finally:
            self._teardown_logging()

    def _preflight(self, context: PipelineContext):
        """Refuse to start over the leftovers of a previous run."""
        stages = self.config.stages
        outputs = context.outputs
        candidates = [
            context.data_dir / stages.copy_dir,
            outputs["promoted"],
            outputs["border_mosaic"],
            outputs["mosaic"],
            outputs["pyramid"],
        ]
        for path in candidates:
            if path.is_file() or (path.is_dir() and any(path.iterdir())):
                raise StageConflictError(
                    "output of a previous run found; remove it before rerunning",
                    stage="preflight", path=path
                )
        logger.info("Preflight OK: no previous run output in %s", context.data_dir)

    def _run_scene_stages(self, context: PipelineContext) -> StageDirectory:
        """Drive the per-scene stages in order; return the last stage directory."""
        extension = self.config.scene.raster_extension
        current = StageDirectory(
            name="input",
            path=context.data_dir,
            paths=tuple(find_rasters(context.data_dir, extension)),
        )
        logger.info("Found %d scenes in %s", len(current), context.data_dir)

        for spec in STAGES:
            started = time.time()
            logger.info("Stage '%s' started", spec.name)

            if spec.op is None:
                current = self.runner.run_collaborator(
                    current.path, self._collaborator(context), context.grid_path, name=spec.name
                )
            elif is_in_place(spec.op):
                expected = len(current)
                current = self.runner.run_in_place(
                    current, spec.op, name=spec.name, options=self._stage_options(spec)
                )
                assert_stage_complete(spec.name, current.path, current.paths, expected)
            else:
                expected = len(current)
                current = self.runner.run(
                    current.path,
                    spec.op,
                    current.path / getattr(self.config.stages, spec.dir_field),
                    getattr(self.config.stages, spec.suffix_field),
                    name=spec.name,
                    options=self._stage_options(spec),
                )
                assert_stage_complete(spec.name, current.path, current.paths, expected)

            logger.info("Stage '%s' finished: %d rasters in %.1fs", spec.name,
                        len(current), time.time() - started)

        return current

    def _stage_options(self, spec: StageSpec) -> Dict[str, Any] | Callable[[Path], Dict[str, Any]]:
        """Keyword arguments for a stage's operation."""
        projection = self.config.projection
        if spec.op == RasterOp.REPROJECT:
            return lambda src: {
                "dst_crs": projection.target_crs,
                "src_crs": self.resolver.resolve(src),
                "resampling": projection.resampling,
            }
        if spec.op == RasterOp.SET_NODATA:
            return {
                "dst_crs": projection.target_crs,
                "src_nodata": self.config.nodata.src_nodata,
                "dst_nodata": self.config.nodata.dst_nodata,
                "resampling": projection.resampling,
            }
        return {}

    def _collaborator(self, context: PipelineContext) -> GridCropCollaborator:
        if self.collaborator is None:
            self.collaborator = GridCropCollaborator(
                command=context.crop_command,
                output_subdir=self.config.grid_crop.output_subdir,
                timeout_sec=self.config.grid_crop.timeout_sec,
                raster_extension=self.config.scene.raster_extension,
                script_path=context.script_path,
            )
        return self.collaborator

    def _promote(self, context: PipelineContext, scenes: StageDirectory) -> List[Path]:
        """Move the final per-scene directory to the data directory and drop the rest."""
        promoted_dir = context.outputs["promoted"]
        copy_dir = context.data_dir / self.config.stages.copy_dir

        logger.info("Promoting %s -> %s", scenes.path, promoted_dir)
        shutil.move(str(scenes.path), str(promoted_dir))
        logger.info("Removing intermediate directories: %s", copy_dir)
        shutil.rmtree(copy_dir)

        promoted = find_rasters(promoted_dir, self.config.scene.raster_extension)
        assert_stage_complete("promote", promoted_dir, promoted, len(scenes))
        return promoted

    def _run_mosaic_stages(self, context: PipelineContext, scenes: List[Path]) -> TilePyramid:
        """Merge, clip and retile."""
        outputs = context.outputs
        nodata = self.config.nodata.mosaic_nodata

        self._mosaic_stage(
            "merge", merge_rasters, scenes, outputs["border_mosaic"],
            nodata=nodata, method=self.config.merge.method,
        )
        assert_mosaic(outputs["border_mosaic"], nodata)

        cutline = self.config.cutline
        self._mosaic_stage(
            "cutline_crop", cutline_crop, outputs["border_mosaic"], context.boundary_path,
            outputs["mosaic"], src_nodata=nodata, dst_alpha=cutline.dst_alpha,
            compress=cutline.compress, bigtiff=cutline.bigtiff,
        )

        tiles = self.config.retile
        pyramid = self._mosaic_stage(
            "retile", retile, outputs["mosaic"], outputs["pyramid"],
            levels=tiles.levels, tile_size=tuple(tiles.tile_size),
            resampling=tiles.resampling, compress=tiles.compress,
        )
        assert_pyramid(pyramid.root, pyramid.levels)
        return pyramid

    @staticmethod
    def _mosaic_stage(name: str, func, *args, **kwargs):
        """Run one whole-mosaic stage with boundary logging."""
        started = time.time()
        logger.info("Stage '%s' started", name)
        try:
            result = func(*args, **kwargs)
        except RasterOpError as err:
            if err.stage is None:
                err.stage = name
            raise
        logger.info("Stage '%s' finished in %.1fs", name, time.time() - started)
        return result
