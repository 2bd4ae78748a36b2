"""
Predictor for the Reorder-Risk Classifier

Scores feature vectors against a trained classifier. Prediction is
read-only: it never refits or mutates the scaler or the network, and it
draws no random numbers, so the same vector always gets the same
probability from the same classifier.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..errors import ModelNotTrainedError
from ..features.extractor import FeatureVector
from ..training.session import Classifier

logger = logging.getLogger(__name__)

REORDER_THRESHOLD = 0.5

# Column of predict_proba for label 1 ("reorder")
POSITIVE_CLASS = 1


def require_trained(classifier: Optional[Classifier]) -> Classifier:
    if classifier is None or not classifier.is_trained:
        raise ModelNotTrainedError("No trained classifier is available; train the model first")
    return classifier


def predict(classifier: Optional[Classifier], vector: FeatureVector) -> float:
    """
    Return the reorder probability for one feature vector.

    Args:
        classifier: A classifier in the ``trained`` state
        vector: Features in FEATURE_COLUMNS order

    Returns:
        Probability in [0, 1]

    Raises:
        ModelNotTrainedError: If the classifier is missing or not trained
    """
    classifier = require_trained(classifier)

    X = classifier.scaler.transform(np.asarray([vector], dtype=float))
    proba = classifier.network.predict_proba(X)
    probability = float(proba[0, POSITIVE_CLASS])
    # Release the per-call arrays before returning the scalar
    del X, proba

    return min(1.0, max(0.0, probability))


def predict_many(classifier: Optional[Classifier], vectors: Sequence[FeatureVector]) -> np.ndarray:
    """Batch form of predict(); returns one probability per vector."""
    classifier = require_trained(classifier)
    if len(vectors) == 0:
        return np.empty(0, dtype=float)

    X = classifier.scaler.transform(np.asarray(vectors, dtype=float))
    return np.clip(classifier.network.predict_proba(X)[:, POSITIVE_CLASS], 0.0, 1.0)


def reorder_decision(probability: float) -> str:
    """Display label for a probability: 'reorder' above 0.5, else 'no reorder'."""
    return 'reorder' if probability > REORDER_THRESHOLD else 'no reorder'
