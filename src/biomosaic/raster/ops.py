"""Per-file raster operations.

RasterOp is the closed set of transforms the pipeline knows about. The
per-file cases live here; the whole-mosaic cases (merge, cutline crop,
retile) live in ``biomosaic.raster.mosaic`` and ``biomosaic.raster.retile``.

Each operation reads one raster and writes one new raster (unset-nodata
is the single in-place exception) and reports failure by raising the
specific RasterOpError subclass, carrying the offending path.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import rasterio
from rasterio import shutil as rio_shutil
from rasterio.crs import CRS
from rasterio.errors import RasterioError
from rasterio.warp import calculate_default_transform, reproject

from biomosaic.errors import (
    BandError,
    MetadataError,
    RasterCopyError,
    ReprojectionError,
)
from biomosaic.raster.raster_utils import resampling_from_name

__all__ = [
    'RasterOp',
    'apply_op',
    'copy_raster',
    'unset_nodata',
    'reproject_raster',
    'remove_alpha_band',
    'set_nodata',
    'is_in_place',
]

logger = logging.getLogger(__name__)

# Errors raised by rasterio/GDAL that the operations translate
RASTER_ERRORS = (RasterioError, OSError, ValueError)

# Layout keys that must not be copied from a source profile
_LAYOUT_KEYS = ("blockxsize", "blockysize", "tiled", "interleave")


class RasterOp(str, Enum):
    """Closed set of raster transforms used by the pipeline."""
    COPY = "copy"
    UNSET_NODATA = "unset_nodata"
    REPROJECT = "reproject"
    REMOVE_ALPHA = "remove_alpha"
    SET_NODATA = "set_nodata"
    MERGE = "merge"
    CUTLINE_CROP = "cutline_crop"
    RETILE = "retile"


def _gtiff_profile(profile: dict, **updates) -> dict:
    """GTiff creation profile derived from a source profile."""
    out = {k: v for k, v in profile.items() if k not in _LAYOUT_KEYS}
    out["driver"] = "GTiff"
    out.update(updates)
    return out


def copy_raster(src_path: Path, dst_path: Path) -> Path:
    """Duplicate a raster (and its sidecar files) into a new path.

    Raises
    ------
    RasterCopyError
        If the source is unreadable or the destination unwritable.
    """
    try:
        rio_shutil.copyfiles(str(src_path), str(dst_path))
    except RASTER_ERRORS as err:
        raise RasterCopyError(f"cannot copy raster: {err}", path=src_path) from err
    return Path(dst_path)


def unset_nodata(path: Path) -> Path:
    """Remove the nodata marker from every band, in place.

    Raises
    ------
    MetadataError
        If the raster header cannot be opened for update.
    """
    try:
        with rasterio.open(path, "r+") as dst:
            if any(v is not None for v in dst.nodatavals):
                dst.nodata = None
                logger.debug("Nodata cleared: %s", Path(path).name)
    except RASTER_ERRORS as err:
        raise MetadataError(f"cannot edit raster header: {err}", path=path) from err
    return Path(path)


def reproject_raster(src_path: Path, dst_path: Path, dst_crs: str = "EPSG:4326",
                     src_crs: Optional[str] = None,
                     resampling: str = "nearest") -> Path:
    """Warp a raster to ``dst_crs``.

    Parameters
    ----------
    src_path, dst_path : Path
        Input raster and output GeoTIFF.
    dst_crs : str
        Target CRS.
    src_crs : str, optional
        Source CRS override. When None the embedded CRS is used.
    resampling : str
        Resampling name (nearest, bilinear, cubic).

    Raises
    ------
    ReprojectionError
        If no source CRS is available or the warp fails.
    """
    try:
        with rasterio.open(src_path) as src:
            source_crs = CRS.from_user_input(src_crs) if src_crs else src.crs
            if source_crs is None:
                raise ReprojectionError(
                    "raster has no CRS and no source CRS override was given",
                    path=src_path
                )

            transform, width, height = calculate_default_transform(
                source_crs, dst_crs, src.width, src.height, *src.bounds
            )
            profile = _gtiff_profile(
                src.profile, crs=dst_crs, transform=transform, width=width, height=height
            )

            with rasterio.open(dst_path, "w", **profile) as dst:
                for band in range(1, src.count + 1):
                    reproject(
                        source=rasterio.band(src, band),
                        destination=rasterio.band(dst, band),
                        src_transform=src.transform,
                        src_crs=source_crs,
                        dst_transform=transform,
                        dst_crs=dst_crs,
                        resampling=resampling_from_name(resampling),
                    )
    except RASTER_ERRORS as err:
        raise ReprojectionError(f"warp failed: {err}", path=src_path) from err

    return Path(dst_path)


def remove_alpha_band(src_path: Path, dst_path: Path,
                      bands: Sequence[int] = (1, 2, 3)) -> Path:
    """Keep the first three bands, discarding alpha or any extra band.

    Raises
    ------
    BandError
        If the raster has fewer than three bands.
    """
    bands = list(bands)
    try:
        with rasterio.open(src_path) as src:
            if src.count < len(bands):
                raise BandError(
                    f"expected at least {len(bands)} bands, found {src.count}",
                    path=src_path
                )
            profile = _gtiff_profile(src.profile, count=len(bands))
            with rasterio.open(dst_path, "w", **profile) as dst:
                for _, window in src.block_windows(1):
                    dst.write(src.read(bands, window=window), window=window)
    except RASTER_ERRORS as err:
        raise BandError(f"band extraction failed: {err}", path=src_path) from err

    return Path(dst_path)


def set_nodata(src_path: Path, dst_path: Path, dst_crs: str = "EPSG:4326",
               src_nodata: Sequence[int] = (255, 255, 255),
               dst_nodata: Sequence[int] = (0, 0, 0),
               resampling: str = "nearest") -> Path:
    """Re-warp a raster while remapping a transparent colour to nodata.

    A pixel whose bands all equal ``src_nodata`` is transparent. It is
    written as ``dst_nodata`` and excluded from resampling. The output
    declares ``dst_nodata[0]`` as nodata on every band.

    Raises
    ------
    BandError
        If the raster band count differs from the nodata triplet length.
    ReprojectionError
        If the raster has no CRS or the warp fails.
    """
    try:
        with rasterio.open(src_path) as src:
            if src.count != len(src_nodata) or src.count != len(dst_nodata):
                raise BandError(
                    f"nodata triplets need {len(src_nodata)} bands, found {src.count}",
                    path=src_path
                )
            if src.crs is None:
                raise ReprojectionError("raster has no CRS", path=src_path)

            data = src.read()
            transparent = np.all(
                data == np.asarray(src_nodata, dtype=data.dtype).reshape(-1, 1, 1),
                axis=0
            )
            for band, value in enumerate(dst_nodata):
                data[band][transparent] = value

            transform, width, height = calculate_default_transform(
                src.crs, dst_crs, src.width, src.height, *src.bounds
            )
            out = np.empty((src.count, height, width), dtype=data.dtype)
            for band, value in enumerate(dst_nodata):
                out[band].fill(value)
                reproject(
                    source=data[band],
                    destination=out[band],
                    src_transform=src.transform,
                    src_crs=src.crs,
                    src_nodata=value,
                    dst_transform=transform,
                    dst_crs=dst_crs,
                    dst_nodata=value,
                    resampling=resampling_from_name(resampling),
                )

            profile = _gtiff_profile(
                src.profile, crs=dst_crs, transform=transform,
                width=width, height=height, nodata=dst_nodata[0]
            )
            with rasterio.open(dst_path, "w", **profile) as dst:
                dst.write(out)
    except RASTER_ERRORS as err:
        raise ReprojectionError(f"nodata warp failed: {err}", path=src_path) from err

    logger.debug("Transparent pixels remapped: %s (%d)", Path(src_path).name,
                 int(transparent.sum()))
    return Path(dst_path)


# Dispatch tables for the per-file cases
_PER_FILE_OPS = {
    RasterOp.COPY: copy_raster,
    RasterOp.REPROJECT: reproject_raster,
    RasterOp.REMOVE_ALPHA: remove_alpha_band,
    RasterOp.SET_NODATA: set_nodata,
}

_IN_PLACE_OPS = {
    RasterOp.UNSET_NODATA: unset_nodata,
}


def apply_op(op: RasterOp | str, src: Path, dst: Optional[Path] = None, **options) -> Path:
    """Apply one per-file RasterOp.

    Parameters
    ----------
    op : RasterOp or str
        Operation tag.
    src : Path
        Input raster (edited directly for in-place operations).
    dst : Path, optional
        Output raster. Required for every operation except unset-nodata.
    **options
        Operation keyword arguments.

    Returns
    -------
    Path
        The raster written (``dst``, or ``src`` for in-place operations).

    Raises
    ------
    ValueError
        If ``op`` is a whole-mosaic operation or ``dst`` is missing.
    """
    op = RasterOp(op)
    if op in _IN_PLACE_OPS:
        return _IN_PLACE_OPS[op](src, **options)
    if op not in _PER_FILE_OPS:
        raise ValueError(f"'{op.value}' is a whole-mosaic operation, not a per-file one")
    if dst is None:
        raise ValueError(f"'{op.value}' needs an output path")
    return _PER_FILE_OPS[op](src, dst, **options)


def is_in_place(op: RasterOp | str) -> bool:
    """True for operations that edit their input instead of writing a new file."""
    return RasterOp(op) in _IN_PLACE_OPS
