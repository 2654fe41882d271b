"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, one stage boundary at a time.
"""

import pytest

pytestmark = pytest.mark.unit

from biomosaic.contracts import (
    ContractViolation,
    FailurePolicy,
    assert_mosaic,
    assert_pyramid,
    assert_stage_complete,
    require,
)
from biomosaic.contracts.invariants import PER_SCENE_STAGES, PIPELINE_INVARIANTS
from tests.helpers.fake_raster import make_scene_array, write_scene


class TestRequire:

    def test_require_passes_on_true(self):
        require(True, "never raised")

    def test_require_raises_on_false(self):
        with pytest.raises(ContractViolation, match="broken"):
            require(False, "broken")

    def test_fail_fast_is_the_policy(self):
        assert FailurePolicy.FAIL_FAST.value == "fail_fast"


class TestStageContract:
    """Test per-scene stage contract."""

    def test_passes_with_one_output_per_input(self, tmp_path):
        outputs = [tmp_path / "a_copy.tif", tmp_path / "b_copy.tif"]
        for p in outputs:
            p.write_bytes(b"data")
        # Should not raise
        assert_stage_complete("copy", tmp_path, outputs, 2)

    def test_fails_on_missing_output(self, tmp_path):
        out = tmp_path / "a_copy.tif"
        out.write_bytes(b"data")
        with pytest.raises(ContractViolation, match="wrote 1 rasters, expected 2"):
            assert_stage_complete("copy", tmp_path, [out], 2)

    def test_fails_on_empty_file(self, tmp_path):
        out = tmp_path / "a_copy.tif"
        out.touch()
        with pytest.raises(ContractViolation, match="missing or empty"):
            assert_stage_complete("copy", tmp_path, [out], 1)

    def test_fails_on_output_outside_stage_dir(self, tmp_path):
        (tmp_path / "stage").mkdir()
        out = tmp_path / "a_copy.tif"
        out.write_bytes(b"data")
        with pytest.raises(ContractViolation, match="outside"):
            assert_stage_complete("copy", tmp_path / "stage", [out], 1)


class TestMosaicContract:
    """Test merge stage contract."""

    def test_passes_when_sentinel_declared(self, tmp_path):
        path = write_scene(tmp_path / "m.tif", data=make_scene_array(count=3), nodata=0)
        assert_mosaic(path, 0)

    def test_fails_on_other_sentinel(self, tmp_path):
        path = write_scene(tmp_path / "m.tif", data=make_scene_array(count=3), nodata=255)
        with pytest.raises(ContractViolation, match="nodata"):
            assert_mosaic(path, 0)

    def test_fails_on_missing_file(self, tmp_path):
        with pytest.raises(ContractViolation, match="was not written"):
            assert_mosaic(tmp_path / "missing.tif", 0)


class TestPyramidContract:
    """Test retile stage contract."""

    def test_passes_with_every_level(self, tmp_path):
        (tmp_path / "m_1_1.tif").write_bytes(b"x")
        for level in (1, 2):
            (tmp_path / str(level)).mkdir()
            (tmp_path / str(level) / "m_1_1.tif").write_bytes(b"x")
        assert_pyramid(tmp_path, 2)

    def test_fails_without_base_tiles(self, tmp_path):
        with pytest.raises(ContractViolation, match="no base tiles"):
            assert_pyramid(tmp_path, 0)

    def test_fails_on_missing_level(self, tmp_path):
        (tmp_path / "m_1_1.tif").write_bytes(b"x")
        (tmp_path / "1").mkdir()
        (tmp_path / "1" / "m_1_1.tif").write_bytes(b"x")
        with pytest.raises(ContractViolation, match="level 2"):
            assert_pyramid(tmp_path, 2)


def test_every_per_scene_stage_documents_invariants():
    for stage in PER_SCENE_STAGES:
        assert PIPELINE_INVARIANTS[stage]
