"""Scene raster discovery and naming helpers.

Stages read and write plain directories of GeoTIFFs. These helpers
enumerate the rasters of a directory and derive the per-stage output
names (original base name + stage suffix, extension preserved).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import rasterio
from rasterio.enums import Resampling, WktVersion
from rasterio.errors import RasterioError

from biomosaic.errors import MetadataError

__all__ = [
    'SceneRaster',
    'find_rasters',
    'derive_output_name',
    'has_rasters',
    'resampling_from_name',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SceneRaster:
    """One input image file.

    Attributes
    ----------
    path : Path
        Location of the raster.
    crs_descriptor : str or None
        Embedded CRS as WKT2 text; None when the raster carries no CRS.
    """
    path: Path
    crs_descriptor: Optional[str] = None

    @property
    def base_name(self) -> str:
        """File name without its last extension."""
        return self.path.stem

    @property
    def extension(self) -> str:
        """Extension without the leading dot, original case preserved."""
        return self.path.suffix.lstrip(".")

    @classmethod
    def from_path(cls, path: Path | str) -> "SceneRaster":
        """Read the raster header and build a SceneRaster.

        Raises
        ------
        MetadataError
            If the header cannot be read.
        """
        path = Path(path)
        try:
            with rasterio.open(path) as src:
                crs = src.crs
                descriptor = crs.to_wkt(version=WktVersion.WKT2_2019) if crs else None
        except (RasterioError, OSError, ValueError) as err:
            raise MetadataError(f"cannot read raster header: {err}", path=path) from err
        return cls(path=path, crs_descriptor=descriptor)


def find_rasters(directory: Path | str, extension: str = "tif") -> List[Path]:
    """List the rasters directly inside a directory.

    Extension matching is case-insensitive (``.tif`` matches ``.TIF``).
    Results are sorted by file name so every stage sees scenes in the
    same order.

    Parameters
    ----------
    directory : Path or str
        Directory to scan (not recursive).
    extension : str
        Raster extension without the dot.

    Returns
    -------
    list of Path
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    wanted = "." + extension.lower().lstrip(".")
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() == wanted
    )


def has_rasters(directory: Path | str, extension: str = "tif") -> bool:
    """True if the directory holds at least one raster."""
    return len(find_rasters(directory, extension)) > 0


def derive_output_name(path: Path | str, suffix: str) -> str:
    """Deterministic stage output name: ``<base><suffix>.<ext>``.

    Examples
    --------
    >>> derive_output_name("/data/LC08_221071.tif", "_copy")
    'LC08_221071_copy.tif'
    """
    path = Path(path)
    return f"{path.stem}{suffix}{path.suffix}"


def resampling_from_name(name: str) -> Resampling:
    """Map a config resampling name ('bilinear', ...) to rasterio's enum."""
    return Resampling[name.lower()]
