"""
Training Session for the Reorder-Risk Classifier

Fits a small feed-forward binary classifier (torch, see network.py) on the
full in-memory training set. The session owns exactly one classifier at
a time: starting a run discards the previous one, whether the new run
succeeds or fails.

Training runs ``epochs`` passes of ``partial_fit``. Before each pass the
feature rows and labels are shuffled together, so row/label pairing is
never broken. After each pass the loss and weights are checked; a
non-finite value fails the run with TrainingFailedError.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

import numpy as np
import torch
from sklearn.metrics import accuracy_score
from sklearn.preprocessing import StandardScaler
from sklearn.utils import shuffle

from ..errors import EmptyTrainingSetError, TrainingFailedError
from ..features.extractor import FEATURE_COLUMNS, TrainingSet
from .network import ReorderNetwork
from .options import TrainingConfig

logger = logging.getLogger(__name__)

class ClassifierStatus(Enum):
    """Classifier lifecycle."""
    UNTRAINED = 'untrained'
    TRAINING = 'training'
    TRAINED = 'trained'
    FAILED = 'failed'


@dataclass
class TrainingMetrics:
    """Metrics recorded at the end of a successful run."""
    final_loss: float = 0.0
    accuracy: float = 0.0
    samples: int = 0
    positive_rate: float = 0.0
    epochs: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _generate_version() -> str:
    """Generate a version tag based on timestamp."""
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')
    return f"v{timestamp}"


class Classifier:
    """
    A fitted scaler + network pair and its lifecycle state.

    Inference must go through ``scaler`` then ``network`` so inputs are
    standardized exactly as during training.
    """

    def __init__(self, config: TrainingConfig):
        self.config = config
        self.version = _generate_version()
        self.status = ClassifierStatus.UNTRAINED
        self.scaler: Optional[StandardScaler] = None
        self.network: Optional[ReorderNetwork] = None
        self.metrics: Optional[TrainingMetrics] = None
        self.failure: Optional[BaseException] = None
        self.feature_names = list(FEATURE_COLUMNS)

    @property
    def is_trained(self) -> bool:
        return self.status is ClassifierStatus.TRAINED

    def describe(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'status': self.status.value,
            'architecture': [len(self.feature_names), *self.config.hidden_layer_sizes, 1],
            'activations': [*self.config.activations, 'sigmoid'],
            'config': self.config.to_dict(),
            'metrics': self.metrics.to_dict() if self.metrics else None,
            'failure': str(self.failure) if self.failure else None,
        }

    def __repr__(self) -> str:
        return f"Classifier(version={self.version!r}, status={self.status.value!r})"


def shuffle_paired(
    features: np.ndarray,
    labels: np.ndarray,
    random_state: Optional[np.random.RandomState] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Shuffle rows and labels with one permutation."""
    return shuffle(features, labels, random_state=random_state)


class _Buffers:
    """Transient numeric arrays used during one fit."""

    def __init__(self, features: np.ndarray, labels: np.ndarray):
        self.features = features
        self.labels = labels

    def release(self) -> None:
        self.features = None
        self.labels = None


@contextmanager
def _training_buffers(scaler: StandardScaler, training_set: TrainingSet) -> Iterator[_Buffers]:
    buffers = _Buffers(
        scaler.fit_transform(training_set.features),
        np.array(training_set.labels, dtype=int),
    )
    try:
        yield buffers
    finally:
        buffers.release()


class TrainingSession:
    """
    Owns the live classifier and fits it on demand.

    Usage:
        session = TrainingSession()
        classifier = session.fit(extract(records), TrainingConfig(epochs=100))
    """

    def __init__(self):
        self.classifier: Optional[Classifier] = None

    def fit(self, training_set: TrainingSet, config: Optional[TrainingConfig] = None) -> Classifier:
        """
        Train a new classifier on the whole training set.

        Args:
            training_set: Feature rows and labels from one catalog snapshot
            config: Hyperparameters (defaults if None)

        Returns:
            The trained classifier (also held as ``self.classifier``)

        Raises:
            EmptyTrainingSetError: If the training set has no rows
            TrainingFailedError: On any numerical or runtime failure while fitting
        """
        if training_set.is_empty:
            raise EmptyTrainingSetError("No usable records to train on")

        config = config or TrainingConfig()

        # No fallback to a stale model
        self.classifier = None
        classifier = Classifier(config)
        self.classifier = classifier
        classifier.status = ClassifierStatus.TRAINING

        logger.info(
            f"Training classifier {classifier.version} on {len(training_set)} samples "
            f"(layers={config.hidden_layer_sizes}, epochs={config.epochs}, optimizer={config.optimizer})"
        )
        started = time.monotonic()

        try:
            scaler = StandardScaler()
            network = self._build_network(config, len(training_set))
            with _training_buffers(scaler, training_set) as buffers:
                loss = self._run_epochs(network, buffers, config)
                accuracy = accuracy_score(buffers.labels, network.predict(buffers.features))
        except TrainingFailedError as e:
            self._mark_failed(classifier, e)
            raise
        except Exception as e:
            self._mark_failed(classifier, e)
            raise TrainingFailedError(f"Training failed: {e}", cause=e) from e

        classifier.scaler = scaler
        classifier.network = network
        classifier.metrics = TrainingMetrics(
            final_loss=float(loss),
            accuracy=float(accuracy),
            samples=len(training_set),
            positive_rate=training_set.positive_rate,
            epochs=config.epochs,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        classifier.status = ClassifierStatus.TRAINED

        logger.info(
            f"Classifier {classifier.version} trained - loss: {loss:.4f}, accuracy: {accuracy:.4f}"
        )
        return classifier

    def _build_network(self, config: TrainingConfig, n_samples: int) -> ReorderNetwork:
        def build():
            return ReorderNetwork(
                len(FEATURE_COLUMNS),
                config.hidden_layers,
                optimizer=config.optimizer,
                learning_rate=config.learning_rate,
                batch_size=min(config.batch_size, n_samples),
            )

        if config.random_state is None:
            return build()
        # Seed weight init without touching the global torch RNG
        with torch.random.fork_rng(devices=[]):
            torch.manual_seed(config.random_state)
            return build()

    def _run_epochs(self, network: ReorderNetwork, buffers: _Buffers, config: TrainingConfig) -> float:
        rng = np.random.RandomState(config.random_state)
        loss = float('nan')

        for epoch in range(1, config.epochs + 1):
            if config.shuffle_each_epoch:
                X, y = shuffle_paired(buffers.features, buffers.labels, rng)
            else:
                X, y = buffers.features, buffers.labels

            network.partial_fit(X, y)
            loss = network.loss_
            self._check_finite(network, epoch)

            if epoch % 20 == 0:
                logger.debug(f"Epoch {epoch}/{config.epochs} - loss: {loss:.4f}")

        return loss

    @staticmethod
    def _check_finite(network: ReorderNetwork, epoch: int) -> None:
        if not np.isfinite(network.loss_):
            cause = FloatingPointError(f"loss is {network.loss_}")
            raise TrainingFailedError(f"Non-finite loss at epoch {epoch}: {network.loss_}", cause=cause) from cause
        if not network.weights_finite():
            cause = FloatingPointError("network parameters contain NaN or infinity")
            raise TrainingFailedError(f"Weights diverged at epoch {epoch}", cause=cause) from cause

    @staticmethod
    def _mark_failed(classifier: Classifier, error: BaseException) -> None:
        classifier.status = ClassifierStatus.FAILED
        classifier.failure = error
        logger.error(f"Training of classifier {classifier.version} failed: {error}")
