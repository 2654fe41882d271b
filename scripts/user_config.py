"""Biome Mosaic User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Advanced settings are in src/biomosaic/schemas/param.py

Usage:
    python scripts/run_mosaic_pipeline.py 2020 cerrado /data/cerrado/2020 --config scripts/user_config.py

Year, biome and data directory given on the command line win over the
values below.
"""

CONFIG = {
    # ========================================================================
    # RUN TARGET
    # ========================================================================
    "YEAR": 2020,
    "BIOME": "cerrado",                 # amazonia, caatinga, cerrado, mata_atlantica, pampa, pantanal
    "DATA_DIR": "/pve12/share/prodes/cerrado/2020",

    # ========================================================================
    # VECTORS
    # ========================================================================
    "SHAPEFILE_DIR": None,              # None = shapefiles/ at the project root
    "BOUNDARY_PATH": None,              # Explicit boundary vector (overrides SHAPEFILE_DIR)
    "GRID_PATH": None,                  # Explicit grid vector (overrides SHAPEFILE_DIR)

    # ========================================================================
    # PROJECTION
    # ========================================================================
    "TARGET_CRS": "EPSG:4326",
    "FALLBACK_CRS": "EPSG:4674",        # Forced for scenes with an "unknown" CRS; "none" disables

    # ========================================================================
    # GRID CROP
    # ========================================================================
    "GRID_CROP_SCRIPT": None,           # None = scripts/script_r_cut_images_by_grid.R
    "CROP_TIMEOUT_SEC": 7200,

    # ========================================================================
    # MOSAIC & PYRAMID
    # ========================================================================
    "MERGE_METHOD": "first",            # "first" or "last" scene wins on overlaps
    "RETILE_LEVELS": 4,
    "TILE_SIZE": (2048, 2048),

    "LOG_LEVEL": "INFO",
}
