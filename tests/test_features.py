"""
Unit tests for feature extraction and the synthetic reorder label.
"""

import logging

import numpy as np
import pytest

from reorder_risk.catalog.accessor import InventoryRecord
from reorder_risk.features.extractor import (
    FEATURE_COLUMNS,
    FeatureVector,
    TrainingSet,
    coerce_features,
    extract,
    reorder_label,
)


def make_record(record_id=1, inventory=None, avg_sales=None, lead_time=None):
    return InventoryRecord(record_id, f"Product {record_id}", inventory, avg_sales, lead_time)


class TestCoercion:
    """Explicit record -> feature vector coercion."""

    def test_plain_numbers(self):
        assert coerce_features(make_record(inventory=5, avg_sales=10, lead_time=2)) == FeatureVector(5.0, 10.0, 2.0)

    def test_missing_fields_default(self):
        assert coerce_features(make_record()) == FeatureVector(0.0, 1.0, 1.0)

    @pytest.mark.parametrize('value', [0, -3, -0.5])
    def test_non_positive_sales_and_lead_time_default_to_one(self, value):
        vector = coerce_features(make_record(inventory=4, avg_sales=value, lead_time=value))
        assert vector == FeatureVector(4.0, 1.0, 1.0)

    def test_numeric_strings_accepted(self):
        assert coerce_features(make_record(inventory='12', avg_sales=' 3.5 ', lead_time='4')) == FeatureVector(12.0, 3.5, 4.0)

    @pytest.mark.parametrize('fields', [
        {'inventory': -1},
        {'inventory': 'lots'},
        {'inventory': float('nan')},
        {'inventory': float('inf')},
        {'avg_sales': 'n/a'},
        {'avg_sales': float('inf')},
        {'lead_time': float('nan')},
        {'lead_time': 'soon'},
        {'inventory': True},
        {'avg_sales': [1, 2]},
    ])
    def test_uncoercible_records_are_excluded(self, fields):
        assert coerce_features(make_record(**fields)) is None


class TestLabel:
    """Reorder threshold rule."""

    def test_below_threshold_is_reorder(self):
        assert reorder_label(FeatureVector(5, 10, 2)) == 1

    def test_equality_is_no_reorder(self):
        assert reorder_label(FeatureVector(20, 10, 2)) == 0

    def test_above_threshold_is_no_reorder(self):
        assert reorder_label(FeatureVector(21, 10, 2)) == 0


class TestExtract:
    """Training set construction."""

    def test_labels_follow_rule(self, records):
        training_set = extract(records)

        expected = [reorder_label(coerce_features(r)) for r in records]
        assert training_set.labels.tolist() == expected
        assert training_set.labels.tolist() == [1, 0, 1, 0, 1, 0]

    def test_shape_and_column_order(self, records):
        training_set = extract(records)

        assert training_set.features.shape == (len(records), len(FEATURE_COLUMNS))
        assert training_set.features[0].tolist() == [5.0, 10.0, 2.0]

    def test_malformed_records_dropped_in_order(self):
        records = [
            make_record(1, 5, 10, 2),
            make_record(2, 'broken', 1, 1),
            make_record(3, 50, 1, 1),
            make_record(4, -2, 1, 1),
        ]
        training_set = extract(records)

        assert training_set.record_ids == (1, 3)
        assert training_set.excluded_ids == (2, 4)
        assert training_set.labels.tolist() == [1, 0]

    def test_extract_does_not_log(self, caplog):
        caplog.set_level(logging.DEBUG)
        extract([make_record(1, 5, 10, 2), make_record(2, 'broken', 1, 1)])
        assert caplog.records == []

    def test_empty_input(self):
        training_set = extract([])

        assert training_set.is_empty
        assert len(training_set) == 0
        assert training_set.features.shape == (0, 3)
        assert training_set.positive_rate == 0.0

    def test_all_malformed_is_empty(self):
        assert extract([make_record(1, 'x'), make_record(2, -1)]).is_empty

    def test_deterministic(self, records):
        first, second = extract(records), extract(records)

        np.testing.assert_array_equal(first.features, second.features)
        np.testing.assert_array_equal(first.labels, second.labels)
        assert first.record_ids == second.record_ids

    def test_arrays_are_read_only(self, records):
        training_set = extract(records)
        with pytest.raises(ValueError):
            training_set.features[0, 0] = 1.0

    def test_to_frame(self, records):
        frame = extract(records).to_frame()

        assert list(frame.columns) == ['id', *FEATURE_COLUMNS, 'reorder']
        assert frame['id'].tolist() == [r.id for r in records]

    def test_misaligned_set_rejected(self):
        with pytest.raises(ValueError, match='Misaligned'):
            TrainingSet(features=np.zeros((2, 3)), labels=np.zeros(3, dtype=int), record_ids=(1, 2))
