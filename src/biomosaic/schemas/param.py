"""ParamConfig: Expert defaults for the mosaic pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, PositiveInt, field_validator
from biomosaic.schemas.base import MosaicBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class SceneConfig(MosaicBaseModel):
    """Input scene discovery."""
    raster_extension: str = Field("tif", description="Extension of scene rasters, matched case-insensitively")

    @field_validator("raster_extension", mode="before")
    @classmethod
    def strip_leading_dot(cls, v):
        """Accept '.tif' as well as 'tif'."""
        if isinstance(v, str):
            return v.strip().lstrip(".")
        return v


class StagesConfig(MosaicBaseModel):
    """Stage directory names and per-stage filename suffixes."""
    copy_dir: str = "tempCopy"
    reprojection_dir: str = "tempEPSG4326"
    alpha_dir: str = "tempNoAlphaBand"
    nodata_dir: str = "tempNoData"
    copy_suffix: str = "_copy"
    reprojection_suffix: str = "_4326"
    alpha_suffix: str = "_noalpha"
    nodata_suffix: str = "_nodata"


class ProjectionConfig(MosaicBaseModel):
    """Reprojection and the unknown-CRS fallback."""
    target_crs: str = "EPSG:4326"
    # SIRGAS 2000 geographic. Known metadata defect in Cerrado scenes; set to
    # None to disable the fallback for deployments where it does not apply.
    fallback_crs: Optional[str] = "EPSG:4674"
    unknown_crs_patterns: list[str] = Field(
        default_factory=lambda: [
            r'GEOGCRS\["unknown",',
            r'GEOGCS\["unknown",',
        ]
    )
    resampling: Literal["nearest", "bilinear", "cubic"] = "nearest"


class NodataConfig(MosaicBaseModel):
    """Nodata substitution and mosaic sentinel."""
    src_nodata: tuple[int, int, int] = (255, 255, 255)
    dst_nodata: tuple[int, int, int] = (0, 0, 0)
    mosaic_nodata: int = 0


class GridCropConfig(MosaicBaseModel):
    """External grid-crop collaborator invocation."""
    command: list[str] = Field(
        default_factory=lambda: ["Rscript", "--vanilla", "{script}", "{grid}", "{raster_dir}"]
    )
    script_path: Optional[str] = None
    output_subdir: str = "tempCutted_buffer"
    timeout_sec: int = Field(7200, ge=1, description="Seconds before the collaborator is killed")


class MergeConfig(MosaicBaseModel):
    """Mosaic compositing."""
    method: Literal["first", "last"] = "first"


class CutlineConfig(MosaicBaseModel):
    """Cutline crop output options."""
    compress: Literal["LZW", "DEFLATE", "NONE"] = "LZW"
    bigtiff: Literal["YES", "NO", "IF_NEEDED", "IF_SAFER"] = "YES"
    dst_alpha: bool = True


class RetileConfig(MosaicBaseModel):
    """Tile pyramid generation."""
    levels: int = Field(4, ge=0, le=12)
    tile_size: tuple[PositiveInt, PositiveInt] = (2048, 2048)
    resampling: Literal["nearest", "bilinear", "cubic", "average"] = "bilinear"
    compress: Literal["LZW", "DEFLATE", "NONE"] = "LZW"


class VectorsConfig(MosaicBaseModel):
    """Biome boundary and grid vector naming convention."""
    shapefile_dir: Optional[str] = None
    boundary_pattern: str = "limite_{biome}/{biome}_border_new_ibge_4326.shp"
    grid_pattern: str = "limite_{biome}/grid_landsat_{biome}_new_ibge_4326.shp"
    boundary_path: Optional[str] = None
    grid_path: Optional[str] = None


class GdalConfig(MosaicBaseModel):
    """GDAL environment for the whole run."""
    num_threads: str = "ALL_CPUS"


class LoggingConfig(MosaicBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(MosaicBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    year: Optional[int] = None
    biome: Optional[str] = None
    data_dir: Optional[str] = None
    scene: SceneConfig = Field(default_factory=SceneConfig)
    stages: StagesConfig = Field(default_factory=StagesConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    nodata: NodataConfig = Field(default_factory=NodataConfig)
    grid_crop: GridCropConfig = Field(default_factory=GridCropConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    cutline: CutlineConfig = Field(default_factory=CutlineConfig)
    retile: RetileConfig = Field(default_factory=RetileConfig)
    vectors: VectorsConfig = Field(default_factory=VectorsConfig)
    gdal: GdalConfig = Field(default_factory=GdalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
