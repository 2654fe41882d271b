"""
Input and output layout for the mosaic pipeline.

Inputs follow the historical shapefile convention:
- <shapefile_dir>/limite_<biome>/<biome>_border_new_ibge_4326.shp
- <shapefile_dir>/limite_<biome>/grid_landsat_<biome>_new_ibge_4326.shp

Outputs are written next to the scenes, in the data directory:
- mosaic_<year>_border.tif   merged mosaic
- mosaic_<year>.tif          mosaic clipped to the biome boundary
- <year>/                    tile pyramid
- tempNoData/                promoted per-scene rasters
- output_mosaic_<year>_<YYYYMMDD>.log
"""

from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple

__all__ = [
    'project_root',
    'default_shapefile_dir',
    'default_crop_script',
    'resolve_vector_paths',
    'setup_output_paths',
    'get_log_path',
]


def project_root() -> Path:
    """Repository root (parent of ``src/``)."""
    return Path(__file__).resolve().parents[2]


def default_shapefile_dir() -> Path:
    """``shapefiles/`` at the project root."""
    return project_root() / "shapefiles"


def default_crop_script() -> Path:
    """Grid-crop R script shipped alongside the run scripts."""
    return project_root() / "scripts" / "script_r_cut_images_by_grid.R"


def resolve_vector_paths(vectors, biome: str) -> Tuple[Path, Path]:
    """Boundary and grid vector paths for a biome.

    Explicit ``boundary_path``/``grid_path`` win; otherwise the paths are
    built from the naming patterns under ``shapefile_dir``.

    Parameters
    ----------
    vectors : InternalVectorsConfig
        Vector section of the resolved config.
    biome : str
        Biome name as used in the shapefile names (e.g. 'cerrado').

    Returns
    -------
    (Path, Path)
        Boundary path, grid path.

    Example
    -------
    >>> resolve_vector_paths(config.vectors, "cerrado")
    (Path('shapefiles/limite_cerrado/cerrado_border_new_ibge_4326.shp'),
     Path('shapefiles/limite_cerrado/grid_landsat_cerrado_new_ibge_4326.shp'))
    """
    base = Path(vectors.shapefile_dir).expanduser() if vectors.shapefile_dir else default_shapefile_dir()

    if vectors.boundary_path:
        boundary = Path(vectors.boundary_path).expanduser()
    else:
        boundary = base / vectors.boundary_pattern.format(biome=biome)

    if vectors.grid_path:
        grid = Path(vectors.grid_path).expanduser()
    else:
        grid = base / vectors.grid_pattern.format(biome=biome)

    return boundary, grid


def setup_output_paths(data_dir, year: int, nodata_dir: str = "tempNoData") -> Dict[str, Path]:
    """
    Paths of every run output in the data directory.

    Nothing is created here; the pipeline creates directories as stages
    run, and preflight checks that none of them holds files yet.

    Returns
    -------
    dict
        Keys: 'base', 'border_mosaic', 'mosaic', 'pyramid', 'promoted'
    """
    data_dir = Path(data_dir).expanduser().resolve()
    return {
        "base": data_dir,
        "border_mosaic": data_dir / f"mosaic_{year}_border.tif",
        "mosaic": data_dir / f"mosaic_{year}.tif",
        "pyramid": data_dir / str(year),
        "promoted": data_dir / nodata_dir,
    }


def get_log_path(data_dir, year: int, run_date: Optional[date] = None) -> Path:
    """
    Run log path: <data_dir>/output_mosaic_<year>_<YYYYMMDD>.log

    Example
    -------
    >>> get_log_path("/data/cerrado", 2020, date(2021, 3, 4))
    Path('/data/cerrado/output_mosaic_2020_20210304.log')
    """
    run_date = run_date or date.today()
    return Path(data_dir) / f"output_mosaic_{year}_{run_date.strftime('%Y%m%d')}.log"
