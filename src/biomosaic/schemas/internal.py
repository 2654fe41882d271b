"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and immutable.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, PositiveInt
from biomosaic.schemas.base import MosaicBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalSceneConfig(MosaicBaseModel):
    """Runtime scene discovery configuration."""
    raster_extension: str


class InternalStagesConfig(MosaicBaseModel):
    """Runtime stage directory names and suffixes."""
    copy_dir: str
    reprojection_dir: str
    alpha_dir: str
    nodata_dir: str
    copy_suffix: str
    reprojection_suffix: str
    alpha_suffix: str
    nodata_suffix: str


class InternalProjectionConfig(MosaicBaseModel):
    """Runtime reprojection configuration."""
    target_crs: str
    fallback_crs: Optional[str]  # None disables the unknown-CRS fallback
    unknown_crs_patterns: list[str]
    resampling: Literal["nearest", "bilinear", "cubic"]


class InternalNodataConfig(MosaicBaseModel):
    """Runtime nodata configuration."""
    src_nodata: tuple[int, int, int]
    dst_nodata: tuple[int, int, int]
    mosaic_nodata: int


class InternalGridCropConfig(MosaicBaseModel):
    """Runtime grid-crop collaborator configuration."""
    command: list[str] = Field(min_length=1)
    script_path: Optional[str]
    output_subdir: str
    timeout_sec: int = Field(ge=1)


class InternalMergeConfig(MosaicBaseModel):
    """Runtime merge configuration."""
    method: Literal["first", "last"]


class InternalCutlineConfig(MosaicBaseModel):
    """Runtime cutline configuration."""
    compress: Literal["LZW", "DEFLATE", "NONE"]
    bigtiff: Literal["YES", "NO", "IF_NEEDED", "IF_SAFER"]
    dst_alpha: bool


class InternalRetileConfig(MosaicBaseModel):
    """Runtime retile configuration."""
    levels: int = Field(ge=0, le=12)
    tile_size: tuple[PositiveInt, PositiveInt]
    resampling: Literal["nearest", "bilinear", "cubic", "average"]
    compress: Literal["LZW", "DEFLATE", "NONE"]


class InternalVectorsConfig(MosaicBaseModel):
    """Runtime vector path configuration."""
    shapefile_dir: Optional[str]
    boundary_pattern: str
    grid_pattern: str
    boundary_path: Optional[str]
    grid_path: Optional[str]


class InternalGdalConfig(MosaicBaseModel):
    """Runtime GDAL environment."""
    num_threads: str


class InternalLoggingConfig(MosaicBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(MosaicBaseModel):
    """Authoritative runtime configuration.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.target_crs = config.projection.target_crs  # NOT .get()

    year, biome and data_dir may still be None here; PipelineContext
    refuses to start a run without them.
    """

    year: Optional[int]
    biome: Optional[str]
    data_dir: Optional[str]
    scene: InternalSceneConfig
    stages: InternalStagesConfig
    projection: InternalProjectionConfig
    nodata: InternalNodataConfig
    grid_crop: InternalGridCropConfig
    merge: InternalMergeConfig
    cutline: InternalCutlineConfig
    retile: InternalRetileConfig
    vectors: InternalVectorsConfig
    gdal: InternalGdalConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
