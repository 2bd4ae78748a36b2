"""
Pipeline Orchestrator

Sequences load -> extract -> train -> predict over an explicitly owned
PipelineState.

State machine:
    idle | catalogLoaded | ready | error --load_catalog--> loadingCatalog --> catalogLoaded
    catalogLoaded | ready | error --train--> training --> ready | error

Catalog loading and training are coroutines: the blocking accessor call and
the model fit run in the loop's default executor, so callers can read
``snapshot()`` while either is outstanding. At most one of them runs at a
time; a second request is rejected with OperationInProgressError instead of
being queued. There is no cancellation of an in-flight training run.

Reloading the catalog keeps the current classifier. Predictions made after a
reload come from a model fitted on the previous catalog until ``train`` is
called again.

Usage:
    state = PipelineState()
    orchestrator = PipelineOrchestrator(state, HttpCatalogAccessor(url))
    await orchestrator.load_catalog()
    await orchestrator.train({'epochs': 60})
    probability = orchestrator.predict(state.records[0])
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from ..catalog.accessor import (
    CatalogAccessor,
    InventoryRecord,
    RecordId,
    generate_synthetic_catalog,
    record_from_payload,
    records_from_payload,
)
from ..config import PipelineSettings
from ..errors import (
    CatalogUnavailableError,
    EmptyTrainingSetError,
    MalformedRecordError,
    OperationInProgressError,
    TrainingFailedError,
)
from ..features.extractor import coerce_features, extract
from ..inference.predictor import predict, predict_many, reorder_decision, require_trained
from ..training.options import TrainingConfig
from ..training.session import Classifier, TrainingSession
from .state import PipelineSnapshot, PipelineState, PipelineStatus

logger = logging.getLogger(__name__)

DEGRADED_MODE = 'degraded mode'
TRAIN_MODEL_PLACEHOLDER = 'train model'
INVALID_RECORD_PLACEHOLDER = 'invalid record'


@dataclass(frozen=True)
class RecordPrediction:
    """Prediction for one catalog record, ready for display."""
    id: RecordId
    name: str
    probability: Optional[float]
    decision: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PipelineOrchestrator:
    """
    Single writer of a PipelineState.

    Args:
        state: The state record to drive (constructed by the caller)
        accessor: Catalog accessor; None means always use synthetic data
        settings: Pipeline settings (defaults if None)
        session: Training session (a fresh one if None)
    """

    def __init__(
        self,
        state: PipelineState,
        accessor: Optional[CatalogAccessor] = None,
        settings: Optional[PipelineSettings] = None,
        session: Optional[TrainingSession] = None,
    ):
        self.state = state
        self.accessor = accessor
        self.settings = settings or PipelineSettings()
        self.session = session or TrainingSession()
        self._in_flight: Optional[str] = None

    @property
    def in_flight(self) -> Optional[str]:
        """Name of the running operation, if any."""
        return self._in_flight

    def snapshot(self) -> PipelineSnapshot:
        return self.state.snapshot(in_flight=self._in_flight)

    def _begin(self, operation: str) -> None:
        # Check-and-set runs before the first await, so it is atomic on the loop
        if self._in_flight is not None:
            raise OperationInProgressError(
                f"Cannot start {operation}: {self._in_flight} already in progress"
            )
        self._in_flight = operation

    def _transition(self, status: PipelineStatus, message: str) -> None:
        previous = self.state.status
        self.state.status = status
        self.state.message = message
        self.state.touch()
        logger.info(f"Pipeline {previous.value} -> {status.value}: {message}")

    def _fetch_catalog(self) -> List[InventoryRecord]:
        if self.accessor is None:
            raise CatalogUnavailableError("No catalog accessor configured")
        try:
            return records_from_payload(self.accessor.fetch_products())
        except CatalogUnavailableError:
            raise
        except Exception as e:
            raise CatalogUnavailableError(f"Catalog accessor failed: {e}") from e

    def _synthetic_catalog(self) -> List[InventoryRecord]:
        return records_from_payload(generate_synthetic_catalog(
            min_size=self.settings.mock_min_size,
            max_size=self.settings.mock_max_size,
            seed=self.settings.random_seed,
        ))

    async def load_catalog(self) -> List[InventoryRecord]:
        """
        Load the catalog, substituting synthetic data if the accessor fails.

        Returns:
            The records now held in the pipeline state

        Raises:
            OperationInProgressError: If a load or training run is in flight
        """
        self._begin('catalog load')
        try:
            self._transition(PipelineStatus.LOADING_CATALOG, 'Loading products...')
            loop = asyncio.get_running_loop()
            try:
                records = await loop.run_in_executor(None, self._fetch_catalog)
                degraded = False
                message = f"Loaded {len(records)} products."
            except CatalogUnavailableError as e:
                logger.warning(f"Catalog unavailable, switching to synthetic data: {e}")
                records = self._synthetic_catalog()
                degraded = True
                message = (
                    f"Catalog unavailable ({e}); running in {DEGRADED_MODE} "
                    f"with {len(records)} synthetic products."
                )

            self.state.records = records
            self.state.degraded = degraded
            self._transition(PipelineStatus.CATALOG_LOADED, message)
            return records
        finally:
            self._in_flight = None

    async def train(
        self,
        config: Union[TrainingConfig, Mapping[str, Any], None] = None,
    ) -> Classifier:
        """
        Train a new classifier on the records currently loaded.

        Args:
            config: TrainingConfig or loose options mapping

        Returns:
            The trained classifier, also published in the pipeline state

        Raises:
            TrainingConfigError: If an option is invalid (nothing changes)
            OperationInProgressError: If a load or training run is in flight
            EmptyTrainingSetError: If no usable records are loaded; status
                and classifier are left unchanged
            TrainingFailedError: If fitting fails; status becomes ``error``
                and the classifier is cleared
        """
        config = TrainingConfig.from_options(config)
        self._begin('training')
        try:
            records = list(self.state.records)
            training_set = extract(records)
            if training_set.excluded_ids:
                logger.warning(
                    f"Excluded {len(training_set.excluded_ids)} malformed records from training: "
                    f"{list(training_set.excluded_ids)}"
                )
            if training_set.is_empty:
                if records:
                    message = f"No usable records to train on: all {len(records)} products are malformed."
                else:
                    message = 'No products to train on. Load products first.'
                self.state.message = message
                self.state.touch()
                logger.warning(message)
                raise EmptyTrainingSetError(message)

            self.state.classifier = None
            self._transition(
                PipelineStatus.TRAINING,
                f"Training model on {len(training_set)} products - please wait...",
            )

            loop = asyncio.get_running_loop()
            try:
                classifier = await loop.run_in_executor(None, self.session.fit, training_set, config)
            except TrainingFailedError as e:
                self.state.classifier = None
                self._transition(PipelineStatus.ERROR, f"Training failed: {e}")
                raise
            except BaseException as e:
                # Cancellation or executor shutdown; never leave status at training
                self.state.classifier = None
                self._transition(PipelineStatus.ERROR, f"Training interrupted: {e!r}")
                raise

            self.state.classifier = classifier
            self._transition(
                PipelineStatus.READY,
                f"Model trained! ({classifier.version}, accuracy {classifier.metrics.accuracy:.0%})",
            )
            return classifier
        finally:
            self._in_flight = None

    def predict(self, record: Union[InventoryRecord, Mapping[str, Any]]) -> float:
        """
        Reorder probability for one record.

        Raises:
            ModelNotTrainedError: If no trained classifier is available
            MalformedRecordError: If the record cannot be coerced to features
        """
        classifier = require_trained(self.state.classifier)
        if isinstance(record, Mapping):
            record = record_from_payload(record)

        vector = coerce_features(record)
        if vector is None:
            raise MalformedRecordError(f"Record {record.id!r} has no usable numeric fields")
        return predict(classifier, vector)

    def predict_catalog(self) -> List[RecordPrediction]:
        """Predictions for every loaded record, with display placeholders."""
        records = list(self.state.records)
        classifier = self.state.classifier
        if classifier is None or not classifier.is_trained:
            return [
                RecordPrediction(record.id, record.name, None, TRAIN_MODEL_PLACEHOLDER)
                for record in records
            ]

        vectors = [coerce_features(record) for record in records]
        valid = [vector for vector in vectors if vector is not None]
        probabilities = iter(predict_many(classifier, valid))

        predictions = []
        for record, vector in zip(records, vectors):
            if vector is None:
                predictions.append(
                    RecordPrediction(record.id, record.name, None, INVALID_RECORD_PLACEHOLDER)
                )
                continue
            probability = float(next(probabilities))
            predictions.append(
                RecordPrediction(record.id, record.name, probability, reorder_decision(probability))
            )
        return predictions
