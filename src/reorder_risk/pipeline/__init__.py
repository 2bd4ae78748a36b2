# Pipeline Module
"""
Orchestration of the load -> extract -> train -> predict pipeline.
"""

from .orchestrator import DEGRADED_MODE, PipelineOrchestrator, RecordPrediction
from .state import PipelineSnapshot, PipelineState, PipelineStatus

__all__ = [
    'DEGRADED_MODE',
    'PipelineOrchestrator',
    'PipelineSnapshot',
    'PipelineState',
    'PipelineStatus',
    'RecordPrediction',
]
