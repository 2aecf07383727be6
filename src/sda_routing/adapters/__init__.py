"""Adapters for building prediction inputs from approval records."""

from .history import HistoricalStatsSnapshot, WorkloadSnapshot, stats_from_history, workload_from_queue

__all__ = ["HistoricalStatsSnapshot", "WorkloadSnapshot", "stats_from_history", "workload_from_queue"]
