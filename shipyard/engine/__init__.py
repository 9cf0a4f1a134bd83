"""Core engine components for Shipyard."""

from shipyard.engine.pipeline import Pipeline, PipelineRunner, Stage
from shipyard.engine.powerset import FeaturePowersetChecker
from shipyard.engine.programs import TestProgramBuilder
from shipyard.engine.auditor import AdvisoryAuditor
from shipyard.engine.planner import PublishPlanner
from shipyard.engine.publisher import PublishOrchestrator
from shipyard.engine.orchestrator import Orchestrator

__all__ = [
    "Pipeline",
    "PipelineRunner",
    "Stage",
    "FeaturePowersetChecker",
    "TestProgramBuilder",
    "AdvisoryAuditor",
    "PublishPlanner",
    "PublishOrchestrator",
    "Orchestrator",
]
