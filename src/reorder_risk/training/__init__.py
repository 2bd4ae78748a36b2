# ML Training Module
"""
Training for the reorder-risk classifier.

A TrainingSession fits a feed-forward binary classifier against the full
feature set currently in memory.
"""

from .network import ReorderNetwork
from .options import LayerSpec, TrainingConfig
from .session import (
    Classifier,
    ClassifierStatus,
    TrainingMetrics,
    TrainingSession,
    shuffle_paired,
)

__all__ = [
    'Classifier',
    'ClassifierStatus',
    'LayerSpec',
    'ReorderNetwork',
    'TrainingConfig',
    'TrainingMetrics',
    'TrainingSession',
    'shuffle_paired',
]
