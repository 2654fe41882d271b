"""Pydantic configuration schemas for the mosaic pipeline.

All configuration validation, coercion, and normalization happens at
schema validation time via pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from biomosaic.schemas.resolve import resolve_config
from biomosaic.schemas.internal import InternalConfig
from biomosaic.schemas.param import ParamConfig
from biomosaic.schemas.user import UserConfig
from biomosaic.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
