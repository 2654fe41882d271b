"""End-to-end pipeline scenarios on synthetic scenes."""

import logging
import shutil

import pytest
import rasterio

from biomosaic.errors import CollaboratorError, StageConflictError
from biomosaic.pipeline.context import PipelineContext
from biomosaic.pipeline.orchestrator import STAGES, MosaicPipeline
from biomosaic.raster.ops import RasterOp
from biomosaic.raster.retile import TilePyramid
from tests.helpers.fake_collaborator import EMPTY_OUTPUT, FAILING, write_collaborator
from tests.helpers.scenario import BOUNDARY_BOUNDS

pytestmark = [pytest.mark.pipeline, pytest.mark.integration]


def test_stage_sequence_is_fixed():
    assert [s.name for s in STAGES] == [
        "copy", "unset_nodata", "reproject", "grid_crop", "remove_alpha", "set_nodata",
    ]
    assert STAGES[3].op is None
    assert STAGES[1].op == RasterOp.UNSET_NODATA


def test_full_run_produces_mosaic_and_pyramid(run_config, run_inputs, caplog):
    data_dir = run_inputs["data_dir"]
    pipeline = MosaicPipeline(run_config())

    with caplog.at_level(logging.INFO):
        pyramid = pipeline.execute()

    assert isinstance(pyramid, TilePyramid)
    assert (data_dir / "2020").is_dir()
    assert any((data_dir / "2020").glob("*.tif"))
    assert any((data_dir / "2020" / "2").glob("*.tif"))
    assert pyramid.levels == 2

    # Exactly one fallback warning, naming the unknown-CRS scene
    fallback = [r for r in caplog.records
                if r.levelno == logging.WARNING and "Unknown projection" in r.getMessage()]
    assert len(fallback) == 1
    assert "LC08_222070_20200722" in fallback[0].getMessage()

    # Intermediates promoted and cleaned up
    assert not (data_dir / "tempCopy").exists()
    promoted = sorted(p.name for p in (data_dir / "tempNoData").iterdir())
    assert promoted == [
        "LC08_221070_20200715_copy_4326_noalpha_nodata.tif",
        "LC08_221071_20200715_copy_4326_noalpha_nodata.tif",
        "LC08_222070_20200722_copy_4326_noalpha_nodata.tif",
    ]

    with rasterio.open(data_dir / "mosaic_2020_border.tif") as src:
        assert src.nodatavals == (0, 0, 0)
        assert src.crs.to_epsg() == 4326

    with rasterio.open(data_dir / "mosaic_2020.tif") as src:
        assert src.count == 4
        assert src.dtypes[0] == "uint8"

    assert list(data_dir.glob("output_mosaic_2020_*.log"))


def test_cutline_output_within_boundary_extent(run_config, run_inputs):
    MosaicPipeline(run_config()).execute()
    with rasterio.open(run_inputs["data_dir"] / "mosaic_2020.tif") as src:
        res = src.res[0]
        left, bottom, right, top = src.bounds
    west, south, east, north = BOUNDARY_BOUNDS
    assert left >= west - res
    assert bottom >= south - res
    assert right <= east + res
    assert top <= north + res


def test_identical_inputs_give_identical_mosaic(run_config, run_inputs, tmp_path):
    twin = tmp_path / "twin"
    shutil.copytree(run_inputs["data_dir"], twin)

    MosaicPipeline(run_config()).execute()
    MosaicPipeline(run_config(DATA_DIR=str(twin))).execute()

    first = run_inputs["data_dir"] / "mosaic_2020.tif"
    assert first.read_bytes() == (twin / "mosaic_2020.tif").read_bytes()


def test_empty_collaborator_output_stops_before_remove_alpha(run_config, run_inputs, temp_dir):
    command = write_collaborator(temp_dir, EMPTY_OUTPUT, name="empty.py")
    pipeline = MosaicPipeline(run_config(GRID_CROP_COMMAND=command))

    with pytest.raises(CollaboratorError):
        pipeline.execute()

    reprojected = run_inputs["data_dir"] / "tempCopy" / "tempEPSG4326"
    assert reprojected.is_dir()
    assert not (reprojected / "tempCutted_buffer" / "tempNoAlphaBand").exists()
    assert not (run_inputs["data_dir"] / "mosaic_2020_border.tif").exists()


def test_failed_collaborator_stops_the_run(run_config, run_inputs, temp_dir):
    command = write_collaborator(temp_dir, FAILING, name="failing.py")
    with pytest.raises(CollaboratorError) as exc_info:
        MosaicPipeline(run_config(GRID_CROP_COMMAND=command)).execute()

    assert exc_info.value.returncode == 3
    assert not (run_inputs["data_dir"] / "tempNoData").exists()


def test_previous_stage_directory_conflicts_before_any_raster_op(run_config, run_inputs):
    data_dir = run_inputs["data_dir"]
    leftover = data_dir / "tempCopy"
    leftover.mkdir()
    (leftover / "old_copy.tif").write_bytes(b"x")

    with pytest.raises(StageConflictError) as exc_info:
        MosaicPipeline(run_config()).execute()

    assert exc_info.value.stage == "preflight"
    # Nothing was copied
    assert [p.name for p in leftover.iterdir()] == ["old_copy.tif"]


@pytest.mark.parametrize("leftover", ["mosaic_2020.tif", "mosaic_2020_border.tif"])
def test_previous_mosaic_conflicts(run_config, run_inputs, leftover):
    (run_inputs["data_dir"] / leftover).write_bytes(b"x")
    with pytest.raises(StageConflictError):
        MosaicPipeline(run_config()).execute()
    assert not (run_inputs["data_dir"] / "tempCopy").exists()


def test_rerun_after_success_conflicts(run_config):
    MosaicPipeline(run_config()).execute()
    with pytest.raises(StageConflictError):
        MosaicPipeline(run_config()).execute()


def test_execute_accepts_prebuilt_context(run_config):
    config = run_config(RETILE_LEVELS=0)
    context = PipelineContext.from_config(config)
    pyramid = MosaicPipeline(config).execute(context)
    assert pyramid.levels == 0
    assert len(pyramid.tiles) == 1


def test_logging_handlers_are_removed_after_run(run_config):
    root = logging.getLogger()
    before = list(root.handlers)
    MosaicPipeline(run_config()).execute()
    assert root.handlers == before
