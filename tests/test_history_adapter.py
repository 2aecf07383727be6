from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from sda_routing import (
    ConfigurationError,
    HistoricalStat,
    HistoricalStatsSnapshot,
    Role,
    WorkloadSnapshot,
    compute_routing,
    predict_timeline,
    stats_from_history,
    workload_from_queue,
)
from sda_routing.models import ClassificationFacts


def test_stats_from_history_aggregates_per_role() -> None:
    history = pd.DataFrame({
        "role": ["Plant Director", "Plant Director", "Plant Director", "Requestor"],
        "duration_days": [5.0, 7.0, 6.0, 0.5],
        "decision_date": ["2025-01-10", "2025-01-15", "2025-01-12", "2025-01-20"],
    })

    stats = stats_from_history(history)

    assert stats[Role.PLANT_DIRECTOR] == HistoricalStat(6.0, 3, date(2025, 1, 15))
    assert stats[Role.REQUESTOR].avg_days == 0.5
    assert stats[Role.REQUESTOR].sample_count == 1
    assert len(stats) == 2


def test_stats_from_history_derives_days_from_timestamps() -> None:
    history = pd.DataFrame({
        "role": ["ASQE (Buy Part)", "ASQE (Buy Part)"],
        "requested_date": ["2025-01-01 00:00", "2025-01-05 00:00"],
        "decision_date": ["2025-01-03 12:00", "2025-01-06 12:00"],
    })

    stats = stats_from_history(history)

    assert stats[Role.ASQE].avg_days == 2.0
    assert stats[Role.ASQE].last_updated == date(2025, 1, 6)


def test_stats_from_history_ignores_incomplete_rows() -> None:
    history = pd.DataFrame({
        "role": ["Head of ME", "Head of ME", "Head of ME"],
        "duration_days": [3.0, None, -1.0],
    })

    stats = stats_from_history(history, decided_col=None)

    assert stats[Role.HEAD_OF_ME] == HistoricalStat(3.0, 1, None)


def test_stats_from_history_requires_duration_source() -> None:
    with pytest.raises(ConfigurationError):
        stats_from_history(pd.DataFrame({"role": ["Requestor"]}))


def test_stats_from_history_rejects_unknown_role() -> None:
    history = pd.DataFrame({"role": ["Plant Directr"], "duration_days": [4.0]})
    with pytest.raises(ConfigurationError):
        stats_from_history(history)


def test_workload_from_queue_counts_pending_only() -> None:
    queue = pd.DataFrame({
        "role": ["Plant Director", "Plant Director", "Plant Director", "Head of ME"],
        "status": ["Pending", "Pending", "Approved", "Pending"],
    })

    workload = workload_from_queue(queue)

    assert workload[Role.PLANT_DIRECTOR] == 2
    assert workload.pending(Role.HEAD_OF_ME) == 1
    assert workload.pending(Role.REQUESTOR) == 0


def test_workload_from_queue_requires_columns() -> None:
    with pytest.raises(ConfigurationError):
        workload_from_queue(pd.DataFrame({"role": ["Requestor"]}))


def test_snapshots_are_read_only() -> None:
    workload = WorkloadSnapshot({"Plant Director": 3})
    with pytest.raises(TypeError):
        workload[Role.PLANT_DIRECTOR] = 4


def test_snapshot_coerces_string_keys_and_dict_values() -> None:
    stats = HistoricalStatsSnapshot({"Plant Director": {"avg_days": 6.2, "sample_count": 45}})
    assert stats["Plant Director"].avg_days == 6.2
    assert stats.get(Role.REQUESTOR) is None
    assert list(stats.to_frame()["role"]) == ["Plant Director"]


def test_negative_workload_rejected() -> None:
    with pytest.raises(ConfigurationError):
        WorkloadSnapshot({Role.ASQE: -1})


def test_snapshots_feed_predictor(reference_stats, reference_workload) -> None:
    stats = HistoricalStatsSnapshot(reference_stats)
    workload = WorkloadSnapshot(reference_workload)
    steps = compute_routing(ClassificationFacts(bu="ET", duration="D3", safety_relevant=True))

    from_snapshots = predict_timeline(steps, "2025-01-20", "ET", "D3", stats, workload)
    from_dicts = predict_timeline(steps, "2025-01-20", "ET", "D3", reference_stats, reference_workload)

    assert from_snapshots.to_dict() == from_dicts.to_dict()


def test_misspelled_role_lookup_raises() -> None:
    workload = WorkloadSnapshot({"Plant Director": 12})
    stats = HistoricalStatsSnapshot({"Plant Director": {"avg_days": 6.2}})

    with pytest.raises(ConfigurationError):
        workload.pending("Plant Directr")
    with pytest.raises(ConfigurationError):
        stats.get("Plant Directr")

    assert workload.pending("Plant Director") == 12
    assert workload.pending(Role.ASQE) == 0


def test_snapshot_parses_last_updated_string() -> None:
    stats = HistoricalStatsSnapshot({
        "Plant Director": {"avg_days": 6.2, "sample_count": 45, "last_updated": "2025-01-15"},
    })

    assert stats[Role.PLANT_DIRECTOR].last_updated == date(2025, 1, 15)
    assert stats.to_frame()["last_updated"].iloc[0] == date(2025, 1, 15)


def test_snapshot_rejects_malformed_last_updated() -> None:
    with pytest.raises(ConfigurationError):
        HistoricalStatsSnapshot({"Head of ME": {"avg_days": 3.0, "last_updated": "15/01/2025"}})


def test_fractional_workload_rejected() -> None:
    with pytest.raises(ConfigurationError):
        WorkloadSnapshot({Role.ASQE: 2.5})
