"""Command-line entry points."""

from biomosaic.cli.run_mosaic import load_user_config_dict, run_mosaic_pipeline, main

__all__ = ['load_user_config_dict', 'run_mosaic_pipeline', 'main']
