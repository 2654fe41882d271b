"""Raster primitives: per-file transforms, mosaic operations and the
external grid-crop collaborator."""

from biomosaic.raster.raster_utils import (
    SceneRaster,
    find_rasters,
    has_rasters,
    derive_output_name,
)
from biomosaic.raster.ops import RasterOp, apply_op, is_in_place
from biomosaic.raster.projection import ProjectionResolver
from biomosaic.raster.mosaic import merge_rasters, cutline_crop, load_boundary
from biomosaic.raster.retile import TilePyramid, retile
from biomosaic.raster.grid_crop import GridCropCollaborator

__all__ = [
    'SceneRaster',
    'find_rasters',
    'has_rasters',
    'derive_output_name',
    'RasterOp',
    'apply_op',
    'is_in_place',
    'ProjectionResolver',
    'merge_rasters',
    'cutline_crop',
    'load_boundary',
    'TilePyramid',
    'retile',
    'GridCropCollaborator',
]
