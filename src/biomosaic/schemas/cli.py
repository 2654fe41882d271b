"""CLIConfig: Command-line operational overrides.

Minimal configuration for the parameters that change on every run:
year, biome, data directory, plus a few operational knobs.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from biomosaic.schemas.base import MosaicBaseModel


class CLIConfig(MosaicBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            year=2023,
            biome="cerrado",
            data_dir="/pve12/share/cerrado/2023",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    year: Optional[int] = Field(None, ge=1900, le=2999)
    biome: Optional[str] = None
    data_dir: Optional[str] = None
    shapefile_dir: Optional[str] = None
    crop_timeout_sec: Optional[int] = Field(None, ge=1)
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("biome", mode="before")
    @classmethod
    def normalize_biome(cls, v):
        """Biome tokens are lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

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

        if self.shapefile_dir is not None:
            overrides["vectors"] = {"shapefile_dir": str(self.shapefile_dir)}

        if self.crop_timeout_sec is not None:
            overrides["grid_crop"] = {"timeout_sec": self.crop_timeout_sec}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
