"""Tile pyramid generation.

Decomposes the clipped mosaic into fixed-size tiles at full resolution
plus a number of downsampled levels, each level halving the resolution
of the previous one. The directory layout follows gdal_retile.py:

    <target>/<base>_<row>_<col>.tif        full resolution
    <target>/1/<base>_<row>_<col>.tif      1/2 resolution
    <target>/2/<base>_<row>_<col>.tif      1/4 resolution
    ...

Rows and columns are 1-based and zero padded to a common width.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

import rasterio
from affine import Affine
from rasterio.enums import ColorInterp
from rasterio.errors import RasterioError
from rasterio.windows import Window

from biomosaic.errors import TilingError
from biomosaic.raster.raster_utils import resampling_from_name

__all__ = ['TilePyramid', 'retile', 'level_dir']

logger = logging.getLogger(__name__)

RASTER_ERRORS = (RasterioError, OSError, ValueError)


@dataclass(frozen=True)
class TilePyramid:
    """Multi-resolution tiled output for one (year, biome).

    Attributes
    ----------
    root : Path
        Pyramid directory (``<dataDir>/<year>``).
    levels : int
        Number of downsampled levels below the full-resolution one.
    tiles : tuple of tuple of Path
        Tiles per level; index 0 is full resolution.
    """
    root: Path
    levels: int
    tiles: Tuple[Tuple[Path, ...], ...]

    @property
    def tile_count(self) -> int:
        return sum(len(level) for level in self.tiles)


def level_dir(root: Path, level: int) -> Path:
    """Directory holding the tiles of one pyramid level."""
    return Path(root) if level == 0 else Path(root) / str(level)


def retile(src_path: Path, target_dir: Path, levels: int = 4,
           tile_size: Tuple[int, int] = (2048, 2048),
           resampling: str = "bilinear", compress: str = "LZW") -> TilePyramid:
    """Write the tile pyramid of a raster.

    Parameters
    ----------
    src_path : Path
        Raster to decompose.
    target_dir : Path
        Pyramid root; created if missing.
    levels : int
        Number of downsampled levels (0 writes full resolution only).
    tile_size : (int, int)
        Tile width and height in pixels, identical on every level.
    resampling : str
        Resampling used for downsampled levels.
    compress : str
        GTiff compression.

    Returns
    -------
    TilePyramid

    Raises
    ------
    TilingError
        On any I/O failure. Tiles already written are left in place and
        must be treated as invalid.
    ValueError
        If a tile dimension is not positive.
    """
    if min(tile_size) <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    target_dir = Path(target_dir)
    base = Path(src_path).stem
    tiles = []

    try:
        with rasterio.open(src_path) as src:
            for level in range(levels + 1):
                out_dir = level_dir(target_dir, level)
                out_dir.mkdir(parents=True, exist_ok=True)
                written = tuple(_write_level(src, out_dir, base, level, tile_size,
                                             resampling, compress))
                logger.info("Level %d: %d tiles in %s", level, len(written), out_dir)
                tiles.append(written)
    except RASTER_ERRORS as err:
        raise TilingError(f"retile failed: {err}", path=src_path) from err

    return TilePyramid(root=target_dir, levels=levels, tiles=tuple(tiles))


def _write_level(src, out_dir: Path, base: str, level: int,
                 tile_size: Tuple[int, int], resampling: str,
                 compress: str) -> Iterator[Path]:
    """Write every tile of one level and yield their paths."""
    factor = 2 ** level
    level_width = max(1, math.ceil(src.width / factor))
    level_height = max(1, math.ceil(src.height / factor))
    tile_w, tile_h = tile_size

    # RGBA mosaics keep their alpha band flagged as such
    layout = {}
    if src.count == 4 and src.colorinterp[3] == ColorInterp.alpha:
        layout = {"photometric": "RGB", "alpha": "YES"}

    cols = math.ceil(level_width / tile_w)
    rows = math.ceil(level_height / tile_h)
    digits = len(str(max(rows, cols)))

    for row in range(rows):
        for col in range(cols):
            x0, y0 = col * tile_w, row * tile_h
            width = min(tile_w, level_width - x0)
            height = min(tile_h, level_height - y0)

            # Same area in full-resolution pixels, clipped to the source
            window = Window(
                x0 * factor,
                y0 * factor,
                min(width * factor, src.width - x0 * factor),
                min(height * factor, src.height - y0 * factor),
            )
            data = src.read(
                window=window,
                out_shape=(src.count, height, width),
                resampling=resampling_from_name(resampling),
            )
            transform = src.window_transform(window) @ Affine.scale(
                window.width / width, window.height / height
            )

            profile = {
                "driver": "GTiff",
                "dtype": "uint8",
                "count": src.count,
                "width": width,
                "height": height,
                "crs": src.crs,
                "transform": transform,
                "nodata": src.nodata,
                "tiled": True,
                "compress": compress,
                **layout,
            }
            path = out_dir / f"{base}_{row + 1:0{digits}d}_{col + 1:0{digits}d}.tif"
            with rasterio.open(path, "w", **profile) as dst:
                dst.write(data.astype("uint8"))
            yield path
