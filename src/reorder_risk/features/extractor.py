"""
Feature Extractor for the Reorder-Risk Classifier

Turns inventory records into the fixed three-column feature matrix and the
synthetic reorder label the classifier is trained on.

The label is derived from the same record as the features:
``1`` ("reorder needed") iff inventory < average sales * lead time. The
classifier therefore learns to recover a deterministic rule rather than an
observed outcome. This is intentional; predictions are a heuristic, not a
validated forecast.
"""

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd

from ..catalog.accessor import InventoryRecord, RecordId

# Column order is part of the model contract (must match training and inference)
FEATURE_COLUMNS = ['inventory_level', 'average_sales', 'lead_time_days']
LABEL_COLUMN = 'reorder'


class FeatureVector(NamedTuple):
    """Numeric encoding of one record, in FEATURE_COLUMNS order."""
    inventory_level: float
    average_sales: float
    lead_time_days: float

    def as_array(self) -> np.ndarray:
        return np.array([self], dtype=float)


def _to_number(value: Any) -> Optional[float]:
    """Parse a loosely typed value; None means it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _coerce_inventory(value: Any) -> Optional[float]:
    if value is None:
        return 0.0
    number = _to_number(value)
    if number is None or not math.isfinite(number) or number < 0:
        return None
    return number


def _coerce_positive(value: Any) -> Optional[float]:
    # Average sales and lead time: absent or non-positive default to 1
    if value is None:
        return 1.0
    number = _to_number(value)
    if number is None or not math.isfinite(number):
        return None
    return number if number > 0 else 1.0


def coerce_features(record: InventoryRecord) -> Optional[FeatureVector]:
    """
    Coerce a record into a feature vector.

    Total over all inputs: returns None (excluded) instead of raising when a
    field is unparseable, non-finite, or a negative inventory.
    """
    inventory = _coerce_inventory(record.inventory_level)
    average_sales = _coerce_positive(record.average_sales)
    lead_time = _coerce_positive(record.lead_time_days)

    if inventory is None or average_sales is None or lead_time is None:
        return None
    return FeatureVector(inventory, average_sales, lead_time)


def reorder_label(vector: FeatureVector) -> int:
    """Return 1 when projected consumption over the lead time exceeds stock."""
    return int(vector.inventory_level < vector.average_sales * vector.lead_time_days)


@dataclass(frozen=True, eq=False)
class TrainingSet:
    """
    Feature rows paired positionally with labels and source record ids.

    Built in one pass from a single catalog snapshot; row i of ``features``,
    ``labels`` and ``record_ids`` always describe the same record.
    """
    features: np.ndarray
    labels: np.ndarray
    record_ids: Tuple[RecordId, ...] = ()
    excluded_ids: Tuple[RecordId, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not (len(self.features) == len(self.labels) == len(self.record_ids)):
            raise ValueError(
                f"Misaligned training set: {len(self.features)} feature rows, "
                f"{len(self.labels)} labels, {len(self.record_ids)} ids"
            )
        self.features.setflags(write=False)
        self.labels.setflags(write=False)

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    @property
    def positive_rate(self) -> float:
        """Share of rows labelled 'reorder'."""
        return float(self.labels.mean()) if len(self) else 0.0

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(self.features, columns=FEATURE_COLUMNS)
        frame.insert(0, 'id', list(self.record_ids))
        frame[LABEL_COLUMN] = self.labels
        return frame

    def summary(self) -> Dict[str, Any]:
        return {
            'rows': len(self),
            'excluded': len(self.excluded_ids),
            'positive_rate': round(self.positive_rate, 3),
        }


def extract(records: Iterable[InventoryRecord]) -> TrainingSet:
    """
    Build the training set for a catalog snapshot.

    Has no side effects. Records that cannot be coerced are dropped and
    listed in ``excluded_ids``; the remaining rows keep their input order.
    An empty input yields an empty set.

    Args:
        records: Inventory records in catalog order

    Returns:
        TrainingSet with an (n, 3) float feature matrix and n int labels
    """
    rows: List[FeatureVector] = []
    ids: List[RecordId] = []
    excluded: List[RecordId] = []

    for record in records:
        vector = coerce_features(record)
        if vector is None:
            excluded.append(record.id)
            continue
        rows.append(vector)
        ids.append(record.id)

    frame = pd.DataFrame(rows, columns=FEATURE_COLUMNS, dtype=float)
    labels = (
        frame['inventory_level'] < frame['average_sales'] * frame['lead_time_days']
    ).astype(int)

    return TrainingSet(
        features=frame[FEATURE_COLUMNS].to_numpy(dtype=float).reshape(-1, len(FEATURE_COLUMNS)),
        labels=labels.to_numpy(dtype=int),
        record_ids=tuple(ids),
        excluded_ids=tuple(excluded),
    )
