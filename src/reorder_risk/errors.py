"""
Error taxonomy for the reorder-risk pipeline.

Only catalog failures are recovered locally (the orchestrator substitutes a
synthetic catalog). Every other error is surfaced to the caller.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class CatalogUnavailableError(PipelineError):
    """The catalog accessor failed or returned a non-success result."""


class EmptyTrainingSetError(PipelineError):
    """Training was requested with no usable records."""


class TrainingFailedError(PipelineError):
    """Numerical or runtime failure while fitting the classifier."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ModelNotTrainedError(PipelineError):
    """Prediction was requested without a trained classifier."""


class OperationInProgressError(PipelineError):
    """A catalog load or training run is already in flight."""


class TrainingConfigError(PipelineError, ValueError):
    """A recognized training option carries an invalid value."""


class MalformedRecordError(PipelineError, ValueError):
    """An inventory record cannot be coerced into a feature vector."""
