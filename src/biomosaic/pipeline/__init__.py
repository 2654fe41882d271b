"""Stage pipeline: run context, per-directory stage driver and orchestration."""

from biomosaic.pipeline.context import PipelineContext
from biomosaic.pipeline.stage import StageDirectory, StageRunner
from biomosaic.pipeline.orchestrator import MosaicPipeline, StageSpec, STAGES

__all__ = [
    'PipelineContext',
    'StageDirectory',
    'StageRunner',
    'MosaicPipeline',
    'StageSpec',
    'STAGES',
]
