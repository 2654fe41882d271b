"""Root-level pytest fixtures for the biomosaic test suite.

Provides shared configuration fixtures and synthetic run inputs.
All tests must use these fixtures instead of creating raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from biomosaic.schemas import ParamConfig, UserConfig, resolve_config

from tests.helpers.fake_collaborator import PASS_THROUGH, write_collaborator
from tests.helpers.fake_raster import write_scene
from tests.helpers.scenario import BOUNDARY_BOUNDS, GRID_BOUNDS, SCENES
from tests.helpers.fake_vectors import write_box_vector, write_grid_vector


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs
    (field names or their uppercase aliases).

    Examples
    --------
    >>> def test_custom_levels(make_config):
    ...     config = make_config(RETILE_LEVELS=2)
    ...     assert config.retile.levels == 2
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Synthetic Run Inputs
# =============================================================================

@pytest.fixture
def run_inputs(temp_dir):
    """Data directory with three scenes, vectors and a pass-through collaborator.

    Returns dict with keys: data_dir, boundary, grid, command, scenes
    """
    data_dir = temp_dir / "cerrado_2020"
    data_dir.mkdir()
    scenes = [
        write_scene(data_dir / name, crs=crs, origin=origin, seed=seed)
        for name, crs, origin, seed in SCENES
    ]

    vectors = temp_dir / "vectors"
    vectors.mkdir()
    boundary = write_box_vector(vectors / "cerrado_border.geojson", BOUNDARY_BOUNDS)
    grid = write_grid_vector(vectors / "cerrado_grid.geojson", GRID_BOUNDS)

    command = write_collaborator(temp_dir, PASS_THROUGH)
    return {
        "data_dir": data_dir,
        "boundary": boundary,
        "grid": grid,
        "command": command,
        "scenes": scenes,
    }


@pytest.fixture
def run_config(make_config, run_inputs):
    """Factory: InternalConfig for the synthetic run, with extra user overrides."""
    def _make(**overrides):
        values = {
            "YEAR": 2020,
            "BIOME": "cerrado",
            "DATA_DIR": str(run_inputs["data_dir"]),
            "BOUNDARY_PATH": str(run_inputs["boundary"]),
            "GRID_PATH": str(run_inputs["grid"]),
            "GRID_CROP_COMMAND": run_inputs["command"],
            "CROP_TIMEOUT_SEC": 60,
            "RETILE_LEVELS": 2,
            "TILE_SIZE": (8, 8),
            "LOG_LEVEL": "INFO",
        }
        values.update(overrides)
        return make_config(**values)

    return _make
