"""Tests for the per-file raster operations."""

import numpy as np
import pytest
import rasterio

from biomosaic.errors import (
    BandError,
    MetadataError,
    RasterCopyError,
    RasterOpError,
    ReprojectionError,
)
from biomosaic.raster.ops import (
    RasterOp,
    apply_op,
    copy_raster,
    is_in_place,
    remove_alpha_band,
    reproject_raster,
    set_nodata,
    unset_nodata,
)
from tests.helpers.fake_raster import make_scene_array, read_raster, write_scene

pytestmark = pytest.mark.unit


class TestCopy:

    def test_copy_duplicates_pixels_and_georeferencing(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif")
        dst = copy_raster(src, tmp_path / "scene_copy.tif")

        src_data, src_profile = read_raster(src)
        dst_data, dst_profile = read_raster(dst)
        assert np.array_equal(src_data, dst_data)
        assert dst_profile["crs"] == src_profile["crs"]
        assert dst_profile["transform"] == src_profile["transform"]

    def test_copy_missing_source_raises(self, tmp_path):
        with pytest.raises(RasterCopyError) as exc_info:
            copy_raster(tmp_path / "missing.tif", tmp_path / "out.tif")
        assert exc_info.value.path == tmp_path / "missing.tif"

    def test_copy_error_is_an_oserror(self, tmp_path):
        with pytest.raises(OSError):
            copy_raster(tmp_path / "missing.tif", tmp_path / "out.tif")


class TestUnsetNodata:

    def test_nodata_marker_is_removed_in_place(self, tmp_path):
        path = write_scene(tmp_path / "scene.tif", nodata=0)
        before, _ = read_raster(path)

        assert unset_nodata(path) == path

        after, profile = read_raster(path)
        assert profile["nodata"] is None
        assert np.array_equal(before, after)

    def test_raster_without_nodata_is_left_alone(self, tmp_path):
        path = write_scene(tmp_path / "scene.tif")
        unset_nodata(path)
        _, profile = read_raster(path)
        assert profile["nodata"] is None

    def test_unreadable_header_raises_metadata_error(self, tmp_path):
        bogus = tmp_path / "bogus.tif"
        bogus.write_bytes(b"not a tiff")
        with pytest.raises(MetadataError):
            unset_nodata(bogus)


class TestReproject:

    def test_output_is_in_target_crs(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", crs="EPSG:4674")
        dst = reproject_raster(src, tmp_path / "scene_4326.tif", dst_crs="EPSG:4326")

        with rasterio.open(dst) as ds:
            assert ds.crs.to_epsg() == 4326
            assert ds.count == 4
            assert ds.dtypes[0] == "uint8"

    def test_source_crs_override_is_used(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", crs=None)
        dst = reproject_raster(src, tmp_path / "out.tif", src_crs="EPSG:4674")
        with rasterio.open(dst) as ds:
            assert ds.crs.to_epsg() == 4326

    def test_missing_crs_without_override_raises(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", crs=None)
        with pytest.raises(ReprojectionError, match="no CRS"):
            reproject_raster(src, tmp_path / "out.tif")

    def test_nearest_neighbour_keeps_original_values(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif")
        dst = reproject_raster(src, tmp_path / "out.tif")

        src_values = set(np.unique(read_raster(src)[0][0]))
        dst_values = set(np.unique(read_raster(dst)[0][0])) - {0}
        assert dst_values <= src_values


class TestRemoveAlpha:

    def test_keeps_first_three_bands(self, tmp_path):
        data = make_scene_array(count=4)
        src = write_scene(tmp_path / "scene.tif", data=data)
        dst = remove_alpha_band(src, tmp_path / "scene_noalpha.tif")

        out, profile = read_raster(dst)
        assert profile["count"] == 3
        assert np.array_equal(out, data[:3])

    def test_extra_bands_beyond_alpha_are_dropped(self, tmp_path):
        data = make_scene_array(count=5)
        src = write_scene(tmp_path / "scene.tif", data=data)
        out, _ = read_raster(remove_alpha_band(src, tmp_path / "out.tif"))
        assert out.shape[0] == 3

    def test_fewer_than_three_bands_raises(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", data=make_scene_array(count=2))
        with pytest.raises(BandError, match="at least 3 bands"):
            remove_alpha_band(src, tmp_path / "out.tif")


class TestSetNodata:

    def test_white_pixels_become_nodata(self, tmp_path):
        data = make_scene_array(count=3)
        src = write_scene(tmp_path / "scene.tif", data=data)
        dst = set_nodata(src, tmp_path / "scene_nodata.tif")

        out, profile = read_raster(dst)
        assert profile["nodata"] == 0
        assert not np.any(np.all(out == 255, axis=0))
        assert np.any(np.all(out == 0, axis=0))

    def test_partially_white_pixels_are_kept(self, tmp_path):
        data = make_scene_array(count=3, white_block=False)
        data[0, 8, 8] = 255
        data[1, 8, 8] = 255
        data[2, 8, 8] = 10
        src = write_scene(tmp_path / "scene.tif", data=data)

        out, _ = read_raster(set_nodata(src, tmp_path / "out.tif"))
        kept = np.all(out == np.array([255, 255, 10]).reshape(3, 1, 1), axis=0)
        assert kept.any()

    def test_band_count_must_match_triplet(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", data=make_scene_array(count=4))
        with pytest.raises(BandError):
            set_nodata(src, tmp_path / "out.tif")


class TestApplyOp:

    def test_dispatches_per_file_op(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif")
        out = apply_op(RasterOp.COPY, src, tmp_path / "copy.tif")
        assert out.exists()

    def test_accepts_string_tag(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif")
        out = apply_op("remove_alpha", src, tmp_path / "noalpha.tif")
        assert read_raster(out)[1]["count"] == 3

    def test_in_place_op_needs_no_destination(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", nodata=0)
        assert apply_op(RasterOp.UNSET_NODATA, src) == src

    def test_whole_mosaic_op_is_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="whole-mosaic"):
            apply_op(RasterOp.MERGE, tmp_path / "a.tif", tmp_path / "b.tif")

    def test_missing_destination_is_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="output path"):
            apply_op(RasterOp.COPY, tmp_path / "a.tif")

    def test_is_in_place(self):
        assert is_in_place(RasterOp.UNSET_NODATA)
        assert not is_in_place(RasterOp.REPROJECT)

    def test_every_failure_is_a_raster_op_error(self, tmp_path):
        src = write_scene(tmp_path / "scene.tif", data=make_scene_array(count=2))
        with pytest.raises(RasterOpError):
            apply_op(RasterOp.REMOVE_ALPHA, src, tmp_path / "out.tif")
