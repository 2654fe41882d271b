"""Mosaic and pyramid contracts.

Enforces that the merge stage wrote a mosaic carrying the configured
nodata sentinel on every band, and that retiling left a non-empty
pyramid behind.
"""

from pathlib import Path

import rasterio

from biomosaic.contracts.base import require


def assert_mosaic(path: Path, nodata: float) -> None:
    """Enforce the merge stage contract.

    Parameters
    ----------
    path : Path
        Mosaic written by the merge stage.
    nodata : float
        Configured nodata sentinel.

    Raises
    ------
    ContractViolation
        If the file is missing or its bands do not declare the sentinel.
    """
    require(
        Path(path).is_file(),
        f"Mosaic contract violated: {path} was not written"
    )
    with rasterio.open(path) as src:
        require(
            all(v == nodata for v in src.nodatavals),
            f"Mosaic contract violated: nodata is {src.nodatavals}, expected {nodata}"
        )


def assert_pyramid(root: Path, levels: int) -> None:
    """Enforce the retile stage contract.

    Parameters
    ----------
    root : Path
        Pyramid root directory.
    levels : int
        Number of downsampled levels requested.

    Raises
    ------
    ContractViolation
        If the base level or any overview level holds no tile.
    """
    require(
        Path(root).is_dir() and any(Path(root).glob("*.tif")),
        f"Pyramid contract violated: no base tiles in {root}"
    )
    for level in range(1, levels + 1):
        level_dir = Path(root) / str(level)
        require(
            level_dir.is_dir() and any(level_dir.glob("*.tif")),
            f"Pyramid contract violated: no tiles for level {level} in {level_dir}"
        )
