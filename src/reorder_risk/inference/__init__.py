# ML Inference Module
"""
Per-item reorder probabilities from a trained classifier.
"""

from .predictor import REORDER_THRESHOLD, predict, predict_many, reorder_decision, require_trained

__all__ = ['REORDER_THRESHOLD', 'predict', 'predict_many', 'reorder_decision', 'require_trained']
