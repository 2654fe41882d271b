"""Formal pipeline invariants.

This file documents what each stage MUST produce. It is a reviewer anchor,
not executable code.
"""

PIPELINE_INVARIANTS = {
    "copy": [
        "One <base>_copy.<ext> per input raster in tempCopy/",
        "Input directory files are never modified",
    ],

    "unset_nodata": [
        "Rasters in tempCopy/ declare no nodata value on any band",
        "Edited in place (the only in-place stage)",
    ],

    "reproject": [
        "One <base>_copy_4326.<ext> per raster in tempCopy/tempEPSG4326/",
        "Every output is in the target CRS (EPSG:4326 by default)",
        "Rasters with an 'unknown' geographic CRS were warped from the fallback CRS",
    ],

    "grid_crop": [
        "Collaborator exit status 0",
        "tempCutted_buffer/ exists and holds at least one raster",
    ],

    "remove_alpha": [
        "One <base>_noalpha.<ext> per cropped tile, exactly 3 bands",
    ],

    "set_nodata": [
        "One <base>_nodata.<ext> per 3-band tile, nodata 0 on every band",
        "Pixels that were (255, 255, 255) are now (0, 0, 0)",
    ],

    "merge": [
        "mosaic_<year>_border.tif declares the sentinel as nodata on every band",
        "Pixels with no contributing scene equal the sentinel",
    ],

    "cutline_crop": [
        "mosaic_<year>.tif lies within the boundary's bounding extent",
        "Alpha band is 0 outside the boundary",
    ],

    "retile": [
        "<year>/ holds base tiles and one subdirectory per overview level",
        "Every level holds at least one tile",
    ],
}

# Stages whose output count must equal their input count
PER_SCENE_STAGES = ("copy", "unset_nodata", "reproject", "remove_alpha", "set_nodata")
