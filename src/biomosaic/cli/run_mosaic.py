"""Core mosaic pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import argparse
import importlib.util
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from biomosaic.errors import PipelineError
from biomosaic.pipeline.orchestrator import MosaicPipeline
from biomosaic.raster.retile import TilePyramid
from biomosaic.schemas import resolve_config, ParamConfig, UserConfig, CLIConfig

__all__ = ['load_user_config_dict', 'run_mosaic_pipeline', 'build_parser', 'main']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def run_mosaic_pipeline(
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False
) -> TilePyramid:
    """Execute the biome mosaic pipeline for one year.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Validates the run inputs
    3. Runs every stage, from scene copies to the tile pyramid

    Parameters
    ----------
    user_config_path : str, optional
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: year, biome, data_dir,
        shapefile_dir, crop_timeout_sec, log_level. All optional.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    TilePyramid

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValidationError
        If configuration validation fails.
    PipelineError
        If the run cannot start or a stage fails.

    Examples
    --------
    Run with CLI arguments only::

        run_mosaic_pipeline(cli_args={"year": 2020, "biome": "cerrado",
                                      "data_dir": "/data/cerrado/2020"})

    Run with a user config::

        run_mosaic_pipeline("scripts/user_config.py", verbose=True)
    """
    # Load configurations
    param_cfg = ParamConfig()  # Expert defaults

    user_cfg_dict = load_user_config_dict(user_config_path) if user_config_path else {}
    user_cfg = UserConfig.model_validate(user_cfg_dict)

    cli_args = dict(cli_args or {})
    if verbose and not cli_args.get("log_level"):
        cli_args["log_level"] = "DEBUG"

    # Filter None values
    cli_dict = {k: v for k, v in cli_args.items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    # Resolve to internal config (Param < User < CLI)
    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    # Print summary
    print(f"\n{'='*60}")
    print("Biome Mosaic Pipeline")
    print('='*60)
    print(f"Config: {user_config_path or '(defaults)'}")
    print(f"Year:   {config.year}")
    print(f"Biome:  {config.biome}")
    print(f"Data:   {config.data_dir}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    pipeline = MosaicPipeline(config)
    return pipeline.execute()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biomosaic",
        description="Build the biome mosaic and tile pyramid for one year of scenes",
    )
    parser.add_argument("year", type=int, help="Mosaic year (names the outputs)")
    parser.add_argument("biome", help="Biome name, e.g. cerrado")
    parser.add_argument("data_dir", help="Directory holding the scene rasters")
    parser.add_argument("--config", help="Path to user config file (Python file with CONFIG dict)")
    parser.add_argument("--shapefile-dir", help="Directory holding limite_<biome>/ vectors")
    parser.add_argument("--crop-timeout", type=int, help="Grid crop timeout in seconds")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Override log level")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point. Returns the process exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # --help exits 0; argument errors exit 1
        return 0 if exc.code == 0 else 1

    cli_args = {
        "year": args.year,
        "biome": args.biome,
        "data_dir": args.data_dir,
        "shapefile_dir": args.shapefile_dir,
        "crop_timeout_sec": args.crop_timeout,
        "log_level": args.log_level,
    }

    try:
        run_mosaic_pipeline(args.config, cli_args=cli_args, verbose=args.verbose)
    except (FileNotFoundError, ValueError) as err:
        print(f"Configuration error: {err}", file=sys.stderr)
        return 1
    except PipelineError as err:
        print(f"Pipeline failed: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
