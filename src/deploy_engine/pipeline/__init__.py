"""Deployment pipeline: config generation, stage execution and sequencing."""

from deploy_engine.pipeline.builder import PipelineBuilder
from deploy_engine.pipeline.generator import PipelineConfigGenerator, mentions_security
from deploy_engine.pipeline.observer import CompositeObserver, StageObserver
from deploy_engine.pipeline.runner import PipelineRunner
from deploy_engine.pipeline.stage_executor import StageExecutor

__all__ = [
    "CompositeObserver",
    "PipelineBuilder",
    "PipelineConfigGenerator",
    "PipelineRunner",
    "StageExecutor",
    "StageObserver",
    "mentions_security",
]
