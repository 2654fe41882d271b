"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with flat uppercase aliases
(e.g., YEAR → year, DATA_DIR → data_dir) and ignores unknown keys.

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from biomosaic.schemas.base import MosaicBaseModel


class UserProjectionConfig(MosaicBaseModel):
    """User-facing projection config."""
    target_crs: Optional[str] = None
    fallback_crs: Optional[str] = None
    unknown_crs_patterns: Optional[list[str]] = None
    resampling: Optional[str] = None

    @field_validator("resampling", mode="before")
    @classmethod
    def normalize_resampling(cls, v):
        """Normalize resampling names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserGridCropConfig(MosaicBaseModel):
    """User-facing grid-crop collaborator config."""
    command: Optional[list[str]] = None
    script_path: Optional[str] = None
    output_subdir: Optional[str] = None
    timeout_sec: Optional[int] = None


class UserRetileConfig(MosaicBaseModel):
    """User-facing retile config."""
    levels: Optional[int] = None
    tile_size: Optional[tuple[int, int]] = None
    resampling: Optional[str] = None
    compress: Optional[str] = None


class UserVectorsConfig(MosaicBaseModel):
    """User-facing vector config."""
    shapefile_dir: Optional[str] = None
    boundary_pattern: Optional[str] = None
    grid_pattern: Optional[str] = None
    boundary_path: Optional[str] = None
    grid_path: Optional[str] = None


class UserConfig(MosaicBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    Usage
    -----
        user_cfg = UserConfig(
            year=2023,
            biome="cerrado",
            data_dir="/pve12/share/cerrado/2023",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Run target
    year: Optional[int] = Field(None, alias="YEAR")
    biome: Optional[str] = Field(None, alias="BIOME")
    data_dir: Optional[str] = Field(None, alias="DATA_DIR")

    # Vectors (flat aliases)
    shapefile_dir: Optional[str] = Field(None, alias="SHAPEFILE_DIR")
    boundary_path: Optional[str] = Field(None, alias="BOUNDARY_PATH")
    grid_path: Optional[str] = Field(None, alias="GRID_PATH")

    # Projection (flat aliases)
    target_crs: Optional[str] = Field(None, alias="TARGET_CRS")
    fallback_crs: Optional[str] = Field(None, alias="FALLBACK_CRS")

    # Grid crop (flat aliases)
    grid_crop_command: Optional[list[str]] = Field(None, alias="GRID_CROP_COMMAND")
    grid_crop_script: Optional[str] = Field(None, alias="GRID_CROP_SCRIPT")
    crop_timeout_sec: Optional[int] = Field(None, alias="CROP_TIMEOUT_SEC")

    # Mosaic and pyramid (flat aliases)
    merge_method: Optional[Literal["first", "last"]] = Field(None, alias="MERGE_METHOD")
    retile_levels: Optional[int] = Field(None, alias="RETILE_LEVELS")
    tile_size: Optional[tuple[int, int]] = Field(None, alias="TILE_SIZE")

    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    projection: Optional[UserProjectionConfig] = None
    grid_crop: Optional[UserGridCropConfig] = None
    retile: Optional[UserRetileConfig] = None
    vectors: Optional[UserVectorsConfig] = None
    stages: Optional[dict[str, str]] = None
    nodata: Optional[dict[str, Any]] = None

    model_config = MosaicBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("biome", mode="before")
    @classmethod
    def normalize_biome(cls, v):
        """Biome tokens are lowercase (amazonia, mata_atlantica, ...)."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("merge_method", "log_level", mode="before")
    @classmethod
    def normalize_case(cls, v, info):
        """Lowercase merge method, uppercase log level."""
        if isinstance(v, str):
            return v.upper().strip() if info.field_name == "log_level" else v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.year is not None:
            overrides["year"] = self.year
        if self.biome is not None:
            overrides["biome"] = self.biome
        if self.data_dir is not None:
            overrides["data_dir"] = str(self.data_dir)

        # Vectors section
        vectors = {}
        if self.shapefile_dir is not None:
            vectors["shapefile_dir"] = str(self.shapefile_dir)
        if self.boundary_path is not None:
            vectors["boundary_path"] = str(self.boundary_path)
        if self.grid_path is not None:
            vectors["grid_path"] = str(self.grid_path)
        if self.vectors is not None:
            vectors.update(self.vectors.model_dump(exclude_none=True))
        if vectors:
            overrides["vectors"] = vectors

        # Projection section
        projection = {}
        if self.target_crs is not None:
            projection["target_crs"] = self.target_crs
        if self.fallback_crs is not None:
            # "none" disables the unknown-CRS fallback
            projection["fallback_crs"] = None if self.fallback_crs.lower() == "none" else self.fallback_crs
        if self.projection is not None:
            projection.update(self.projection.model_dump(exclude_none=True))
        if projection:
            overrides["projection"] = projection

        # Grid crop section
        grid_crop = {}
        if self.grid_crop_command is not None:
            grid_crop["command"] = self.grid_crop_command
        if self.grid_crop_script is not None:
            grid_crop["script_path"] = str(self.grid_crop_script)
        if self.crop_timeout_sec is not None:
            grid_crop["timeout_sec"] = self.crop_timeout_sec
        if self.grid_crop is not None:
            grid_crop.update(self.grid_crop.model_dump(exclude_none=True))
        if grid_crop:
            overrides["grid_crop"] = grid_crop

        if self.merge_method is not None:
            overrides["merge"] = {"method": self.merge_method}

        # Retile section
        retile = {}
        if self.retile_levels is not None:
            retile["levels"] = self.retile_levels
        if self.tile_size is not None:
            retile["tile_size"] = self.tile_size
        if self.retile is not None:
            retile.update(self.retile.model_dump(exclude_none=True))
        if retile:
            overrides["retile"] = retile

        if self.stages:
            overrides["stages"] = dict(self.stages)
        if self.nodata:
            overrides["nodata"] = dict(self.nodata)

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
