# Reorder-Risk Pipeline
"""
Live reorder-risk predictions for an inventory catalog.

A small binary classifier is trained in-process on the currently loaded
catalog and serves a per-item reorder probability.
"""

from .catalog import HttpCatalogAccessor, InventoryRecord
from .config import PipelineSettings
from .errors import (
    CatalogUnavailableError,
    EmptyTrainingSetError,
    MalformedRecordError,
    ModelNotTrainedError,
    OperationInProgressError,
    PipelineError,
    TrainingConfigError,
    TrainingFailedError,
)
from .pipeline import PipelineOrchestrator, PipelineSnapshot, PipelineState, PipelineStatus
from .training import TrainingConfig

__version__ = '0.1.0'

__all__ = [
    'CatalogUnavailableError',
    'EmptyTrainingSetError',
    'HttpCatalogAccessor',
    'InventoryRecord',
    'MalformedRecordError',
    'ModelNotTrainedError',
    'OperationInProgressError',
    'PipelineError',
    'PipelineOrchestrator',
    'PipelineSettings',
    'PipelineSnapshot',
    'PipelineState',
    'PipelineStatus',
    'TrainingConfig',
    'TrainingConfigError',
    'TrainingFailedError',
]
