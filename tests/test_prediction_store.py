"""Tests for the prediction store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from lead_scoring.classifier import ConfidenceLevel, NextBestAction, ValueTier
from lead_scoring.exceptions import PredictionValidationError
from lead_scoring.prediction_store import Prediction, PredictionStore
from lead_scoring.scoring_model import Factor


@pytest.fixture
def store():
    return PredictionStore()


class TestUpsert:
    def test_insert_and_get(self, store, make_prediction):
        prediction = make_prediction(1, 80)
        assert store.upsert(prediction) is True
        assert store.get(1) is prediction
        assert len(store) == 1

    def test_newer_write_replaces(self, store, make_prediction, as_of):
        store.upsert(make_prediction(1, 80, computed_at=as_of))
        newer = make_prediction(1, 40, computed_at=as_of + timedelta(minutes=5))
        assert store.upsert(newer) is True
        assert store.get(1).probability == 40

    def test_stale_write_ignored(self, store, make_prediction, as_of):
        store.upsert(make_prediction(1, 80, computed_at=as_of))
        stale = make_prediction(1, 20, computed_at=as_of - timedelta(minutes=5))
        assert store.upsert(stale) is False
        assert store.get(1).probability == 80

    def test_aware_and_naive_timestamps_compare(self, store, make_prediction, as_of):
        aware = as_of.replace(tzinfo=timezone.utc)
        assert store.upsert(make_prediction(1, 80, computed_at=aware)) is True

        older_naive = make_prediction(1, 20, computed_at=as_of - timedelta(minutes=1))
        assert store.upsert(older_naive) is False

        newer_naive = make_prediction(1, 40, computed_at=as_of + timedelta(minutes=1))
        assert store.upsert(newer_naive) is True
        assert store.get(1).probability == 40

    def test_aware_timestamp_normalized_to_utc(self, make_prediction):
        offset = timezone(timedelta(hours=-5))
        prediction = make_prediction(1, 50, computed_at=datetime(2024, 6, 1, 7, 0, tzinfo=offset))
        assert prediction.computed_at == datetime(2024, 6, 1, 12, 0)
        assert prediction.computed_at.tzinfo is None

    def test_delete(self, store, make_prediction):
        store.upsert(make_prediction(1, 80))
        assert store.delete(1) is True
        assert store.delete(1) is False
        assert store.get(1) is None

    def test_version_tracks_applied_writes(self, store, make_prediction, as_of):
        store.upsert(make_prediction(1, 80, computed_at=as_of))
        store.upsert(make_prediction(1, 70, computed_at=as_of - timedelta(seconds=1)))
        assert store.version == 1

    def test_listeners_notified(self, store, make_prediction):
        seen = []
        store.subscribe(seen.append)
        store.upsert(make_prediction(3, 80))
        store.delete(3)
        assert seen == [3, 3]


class TestValidation:
    @pytest.mark.parametrize("probability", [-1, 101, 55.5, True, "70"])
    def test_bad_probability_rejected(self, store, make_prediction, probability):
        prediction = make_prediction(1, 50)
        bad = Prediction(
            lead_id=1,
            probability=probability,
            confidence_level=prediction.confidence_level,
            value_tier=prediction.value_tier,
            next_best_action=prediction.next_best_action,
        )
        with pytest.raises(PredictionValidationError):
            store.upsert(bad)
        assert len(store) == 0

    def test_unknown_enum_rejected(self, store):
        bad = Prediction(
            lead_id=1,
            probability=50,
            confidence_level="very high",
            value_tier=ValueTier.MEDIUM,
            next_best_action=NextBestAction.ENRICH_FIRST,
        )
        with pytest.raises(PredictionValidationError):
            store.upsert(bad)

    def test_bad_factor_rejected(self, store):
        bad = Prediction(
            lead_id=1,
            probability=50,
            confidence_level=ConfidenceLevel.LOW,
            value_tier=ValueTier.MEDIUM,
            next_best_action=NextBestAction.NEEDS_MORE_DATA,
            factors=[Factor("Email Available", float("inf"))],
        )
        with pytest.raises(PredictionValidationError):
            store.upsert(bad)

    def test_validation_error_is_value_error(self, store):
        with pytest.raises(ValueError):
            store.upsert(Prediction(
                lead_id="1",
                probability=50,
                confidence_level=ConfidenceLevel.LOW,
                value_tier=ValueTier.MEDIUM,
                next_best_action=NextBestAction.NEEDS_MORE_DATA,
            ))


class TestSnapshot:
    def test_snapshot_ordered_by_lead_id(self, store, make_prediction):
        for lead_id in (5, 2, 9):
            store.upsert(make_prediction(lead_id, 60))
        snapshot = store.get_all()
        assert [p.lead_id for p in snapshot] == [2, 5, 9]
        assert snapshot.version == 3

    def test_snapshot_isolated_from_later_writes(self, store, make_prediction, as_of):
        store.upsert(make_prediction(1, 80, computed_at=as_of))
        snapshot = store.get_all()

        store.upsert(make_prediction(1, 10, computed_at=as_of + timedelta(seconds=1)))
        store.upsert(make_prediction(2, 90))

        assert len(snapshot) == 1
        assert snapshot.predictions[0].probability == 80

    def test_concurrent_upserts_never_tear(self, store, as_of):
        # Every write keeps probability and tier consistent with each other
        def writer(offset):
            for i in range(200):
                high = (i + offset) % 2 == 0
                store.upsert(Prediction(
                    lead_id=i % 10,
                    probability=90 if high else 10,
                    confidence_level=ConfidenceLevel.HIGH,
                    value_tier=ValueTier.HIGH if high else ValueTier.LOW,
                    next_best_action=(
                        NextBestAction.CALL_IMMEDIATELY if high else NextBestAction.NEEDS_MORE_DATA
                    ),
                    computed_at=as_of + timedelta(microseconds=i * 10 + offset),
                ))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()

        snapshots = [store.get_all() for _ in range(50)]
        for t in threads:
            t.join()

        for snapshot in snapshots + [store.get_all()]:
            for p in snapshot:
                expected = ValueTier.HIGH if p.probability == 90 else ValueTier.LOW
                assert p.value_tier == expected
