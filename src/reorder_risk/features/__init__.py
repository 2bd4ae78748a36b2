# Features Module
"""
Feature extraction for the reorder-risk classifier.
"""

from .extractor import (
    FEATURE_COLUMNS,
    FeatureVector,
    TrainingSet,
    coerce_features,
    extract,
    reorder_label,
)

__all__ = [
    'FEATURE_COLUMNS',
    'FeatureVector',
    'TrainingSet',
    'coerce_features',
    'extract',
    'reorder_label',
]
