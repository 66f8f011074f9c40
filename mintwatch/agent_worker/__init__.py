"""
Agent worker package: bounded queue, shared pipeline state, single-flight
analysis worker and operator controls.
"""

from mintwatch.agent_worker.analysis_queue import AnalysisQueue
from mintwatch.agent_worker.state import PipelineCounters, PipelineState, ProcessedSet

__all__ = [
    "AnalysisQueue",
    "PipelineCounters",
    "PipelineState",
    "ProcessedSet",
]
