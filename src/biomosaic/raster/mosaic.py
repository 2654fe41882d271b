"""Whole-mosaic raster operations: merge and cutline crop.

merge_rasters composites the per-scene rasters into one mosaic that uses
a single nodata sentinel both to recognise absent source pixels and to
mark uncovered output pixels. cutline_crop clips that mosaic to the biome
boundary polygon(s) and crops it to their bounding extent.
"""

import logging
from pathlib import Path
from typing import Sequence

import geopandas as gpd
import numpy as np
import rasterio
from rasterio.enums import ColorInterp
from rasterio.errors import RasterioError, WindowError
from rasterio.features import geometry_mask, geometry_window
from rasterio.merge import merge
from rasterio.windows import Window
from shapely.geometry import mapping as shapely_mapping
from shapely.ops import unary_union

from biomosaic.errors import GeometryError, RasterOpError

__all__ = ['merge_rasters', 'cutline_crop', 'load_boundary']

logger = logging.getLogger(__name__)

RASTER_ERRORS = (RasterioError, OSError, ValueError)

BLOCK_SIZE = 512


def merge_rasters(paths: Sequence[Path], dst_path: Path, nodata: float = 0,
                  method: str = "first") -> Path:
    """Merge an ordered list of rasters into one mosaic.

    Parameters
    ----------
    paths : sequence of Path
        Rasters sharing band count, dtype and CRS. Order matters for the
        compositing method.
    dst_path : Path
        Output GeoTIFF.
    nodata : float
        Sentinel used both as source absence marker and output nodata.
    method : str
        ``first`` keeps the earliest valid pixel (first writer wins),
        ``last`` lets later rasters paint over earlier ones.

    Raises
    ------
    RasterOpError
        If there is nothing to merge or rasterio rejects the sources.
    """
    paths = [Path(p) for p in paths]
    if not paths:
        raise RasterOpError("no rasters to merge", path=dst_path)

    logger.info("Merging %d rasters into %s (method=%s, nodata=%s)",
                len(paths), Path(dst_path).name, method, nodata)
    try:
        merge(
            paths,
            nodata=nodata,
            method=method,
            dst_path=dst_path,
            dst_kwds={"driver": "GTiff"},
        )
    except RASTER_ERRORS as err:
        raise RasterOpError(f"merge failed: {err}", path=dst_path) from err

    return Path(dst_path)


def load_boundary(vector_path: Path, crs=None):
    """Read a boundary vector and dissolve it into one geometry.

    Parameters
    ----------
    vector_path : Path
        Shapefile, GeoPackage or GeoJSON readable by geopandas.
    crs : optional
        CRS to reproject the boundary to before dissolving.

    Raises
    ------
    GeometryError
        If the file cannot be read, or the dissolved geometry is empty
        or invalid.
    """
    try:
        boundary = gpd.read_file(vector_path)
    except Exception as err:
        raise GeometryError(f"cannot read boundary vector: {err}", path=vector_path) from err

    if boundary.empty:
        raise GeometryError("boundary vector has no features", path=vector_path)

    if crs is not None and boundary.crs is not None:
        boundary = boundary.to_crs(crs)

    geometry = unary_union(list(boundary.geometry.dropna()))
    if geometry.is_empty:
        raise GeometryError("boundary geometry is empty", path=vector_path)
    if not geometry.is_valid:
        raise GeometryError("boundary geometry is invalid", path=vector_path)
    return geometry


def cutline_crop(src_path: Path, boundary_path: Path, dst_path: Path,
                 src_nodata: float = 0, dst_alpha: bool = True,
                 compress: str = "LZW", bigtiff: str = "YES") -> Path:
    """Clip a raster to a boundary polygon and crop it to the polygon extent.

    Pixels outside the boundary, or whose bands all equal ``src_nodata``,
    become transparent. With ``dst_alpha`` an alpha band is appended
    (255 valid, 0 transparent); otherwise they are written as nodata.
    Output is Byte and tiled, and is written one block at a time.

    Raises
    ------
    GeometryError
        If the boundary is empty, invalid or does not overlap the raster.
    RasterOpError
        If reading or writing the raster fails.
    """
    try:
        with rasterio.open(src_path) as src:
            geometry = load_boundary(boundary_path, crs=src.crs)
            shapes = [shapely_mapping(geometry)]
            try:
                window = geometry_window(src, shapes)
            except WindowError as err:
                raise GeometryError(f"boundary does not overlap raster: {err}",
                                    path=boundary_path) from err

            bands = src.count
            profile = src.profile.copy()
            for key in ("blockxsize", "blockysize", "interleave", "photometric"):
                profile.pop(key, None)
            profile.update(
                driver="GTiff",
                dtype="uint8",
                height=int(window.height),
                width=int(window.width),
                transform=src.window_transform(window),
                tiled=True,
                blockxsize=BLOCK_SIZE,
                blockysize=BLOCK_SIZE,
                compress=compress,
                BIGTIFF=bigtiff,
            )
            rgba = dst_alpha and bands == 3
            if dst_alpha:
                profile.update(count=bands + 1, nodata=None)
                if rgba:
                    profile.update(photometric="RGB", alpha="YES")
            else:
                profile.update(nodata=src_nodata)

            with rasterio.open(dst_path, "w", **profile) as dst:
                for _, block in dst.block_windows(1):
                    src_block = Window(block.col_off + window.col_off,
                                       block.row_off + window.row_off,
                                       block.width, block.height)
                    data = src.read(window=src_block)
                    outside = geometry_mask(shapes, out_shape=(block.height, block.width),
                                            transform=dst.window_transform(block))
                    transparent = outside | np.all(data == src_nodata, axis=0)
                    data[:, outside] = src_nodata

                    dst.write(data.astype("uint8", copy=False),
                              indexes=list(range(1, bands + 1)), window=block)
                    if dst_alpha:
                        alpha = np.where(transparent, 0, 255).astype("uint8")
                        dst.write(alpha, bands + 1, window=block)
                if rgba:
                    dst.colorinterp = [ColorInterp.red, ColorInterp.green,
                                       ColorInterp.blue, ColorInterp.alpha]
                width, height = dst.width, dst.height
    except RASTER_ERRORS as err:
        raise RasterOpError(f"cutline crop failed: {err}", path=src_path) from err

    logger.info("Cutline applied: %s -> %s (%dx%d)", Path(src_path).name,
                Path(dst_path).name, width, height)
    return Path(dst_path)
