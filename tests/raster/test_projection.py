"""Tests for the unknown-CRS fallback decision."""

import logging
from pathlib import Path

import pytest

from biomosaic.errors import MetadataError
from biomosaic.raster.projection import ProjectionResolver
from biomosaic.raster.raster_utils import SceneRaster
from tests.helpers.fake_raster import UNKNOWN_GEOGCS_WKT, write_scene

pytestmark = pytest.mark.unit

UNKNOWN_WKT2 = 'GEOGCRS["unknown",DATUM["unknown",ELLIPSOID["GRS 1980",6378137,298.257222101]]]'
WGS84_WKT2 = 'GEOGCRS["WGS 84",DATUM["World Geodetic System 1984",ELLIPSOID["WGS 84",6378137,298.257223563]]]'


class TestResolveDescriptor:

    def test_unknown_wkt2_gets_fallback(self):
        assert ProjectionResolver().resolve_descriptor(UNKNOWN_WKT2) == "EPSG:4674"

    def test_unknown_wkt1_gets_fallback(self):
        assert ProjectionResolver().resolve_descriptor(UNKNOWN_GEOGCS_WKT) == "EPSG:4674"

    def test_known_crs_gets_no_override(self):
        assert ProjectionResolver().resolve_descriptor(WGS84_WKT2) is None

    def test_missing_descriptor_gets_no_override(self):
        assert ProjectionResolver().resolve_descriptor(None) is None

    def test_unknown_datum_under_named_crs_is_not_matched(self):
        descriptor = 'GEOGCRS["SIRGAS 2000",DATUM["unknown",ELLIPSOID["GRS 1980",6378137,298.257222101]]]'
        assert ProjectionResolver().resolve_descriptor(descriptor) is None

    def test_fallback_is_configurable(self):
        resolver = ProjectionResolver(fallback_crs="EPSG:4326")
        assert resolver.resolve_descriptor(UNKNOWN_WKT2) == "EPSG:4326"

    def test_fallback_can_be_disabled(self):
        resolver = ProjectionResolver(fallback_crs=None)
        assert resolver.is_unknown(UNKNOWN_WKT2)
        assert resolver.resolve_descriptor(UNKNOWN_WKT2) is None

    def test_from_config(self, make_config):
        resolver = ProjectionResolver.from_config(make_config(FALLBACK_CRS="EPSG:31983"))
        assert resolver.fallback_crs == "EPSG:31983"


class TestResolveRaster:

    def test_scene_raster_with_unknown_crs_logs_one_warning(self, caplog):
        scene = SceneRaster(path=Path("a.tif"), crs_descriptor=UNKNOWN_WKT2)
        with caplog.at_level(logging.WARNING, logger="biomosaic.raster.projection"):
            assert ProjectionResolver().resolve(scene) == "EPSG:4674"

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "a.tif" in warnings[0].getMessage()
        assert "EPSG:4674" in warnings[0].getMessage()

    def test_known_scene_logs_nothing(self, caplog):
        scene = SceneRaster(path=Path("b.tif"), crs_descriptor=WGS84_WKT2)
        with caplog.at_level(logging.WARNING, logger="biomosaic.raster.projection"):
            assert ProjectionResolver().resolve(scene) is None
        assert not caplog.records

    def test_resolves_from_file_header(self, tmp_path):
        unknown = write_scene(tmp_path / "unknown.tif", crs=UNKNOWN_GEOGCS_WKT)
        known = write_scene(tmp_path / "known.tif", crs="EPSG:4326")

        resolver = ProjectionResolver()
        assert resolver.resolve(unknown) == "EPSG:4674"
        assert resolver.resolve(known) is None

    def test_unreadable_file_raises_metadata_error(self, tmp_path):
        bogus = tmp_path / "bogus.tif"
        bogus.write_bytes(b"garbage")
        with pytest.raises(MetadataError):
            ProjectionResolver().resolve(bogus)
