"""
History adapters: build read-only prediction inputs from approval records.

The predictor never reads a shared table. Callers hand it snapshots built
here from whatever store holds past decisions and the live approval queue:

- stats_from_history(): completed approvals → HistoricalStatsSnapshot
- workload_from_queue(): open approvals → WorkloadSnapshot

Snapshots are immutable and safe to share between threads until the owner
replaces them with a fresh build.
"""

import logging
from collections.abc import Mapping
from datetime import date
from types import MappingProxyType
from typing import Optional, Dict, Any, Iterator
import numpy as np
import pandas as pd

from ..models import HistoricalStat, Role, StepStatus, coerce_enum, parse_date, pending_count
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class _RoleSnapshot(Mapping):
    """Immutable mapping keyed by Role; string keys are coerced on build."""

    def __init__(self, data: Optional[Dict[Any, Any]] = None):
        coerced = {
            coerce_enum(Role, key, "role"): self._coerce_value(value)
            for key, value in (data or {}).items()
        }
        self._data = MappingProxyType(coerced)

    def _coerce_value(self, value: Any) -> Any:
        return value

    def __getitem__(self, key: Any) -> Any:
        return self._data[coerce_enum(Role, key, "role")]

    def get(self, key: Any, default: Any = None) -> Any:
        return self._data.get(coerce_enum(Role, key, "role"), default)

    def __iter__(self) -> Iterator[Role]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self._data)!r})"


class HistoricalStatsSnapshot(_RoleSnapshot):
    """Role → HistoricalStat."""

    def _coerce_value(self, value: Any) -> HistoricalStat:
        if isinstance(value, HistoricalStat):
            return value
        if isinstance(value, dict):
            return HistoricalStat(
                avg_days=float(value["avg_days"]),
                sample_count=int(value.get("sample_count", 0)),
                last_updated=parse_date(value.get("last_updated")),
            )
        raise ConfigurationError(f"Cannot interpret {value!r} as a historical stat")

    def to_frame(self) -> pd.DataFrame:
        """Export as a DataFrame with one row per role."""
        return pd.DataFrame([
            {
                "role": role.value,
                "avg_days": stat.avg_days,
                "sample_count": stat.sample_count,
                "last_updated": stat.last_updated,
            }
            for role, stat in self.items()
        ], columns=["role", "avg_days", "sample_count", "last_updated"])


class WorkloadSnapshot(_RoleSnapshot):
    """Role → number of pending approvals."""

    def _coerce_value(self, value: Any) -> int:
        return pending_count(value)

    def pending(self, role: Role) -> int:
        return self.get(role, 0)


def _to_date(value: Any) -> Optional[date]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).date()


def stats_from_history(
    history_df: pd.DataFrame,
    role_col: str = "role",
    days_col: str = "duration_days",
    decided_col: Optional[str] = "decision_date",
    requested_col: Optional[str] = "requested_date"
) -> HistoricalStatsSnapshot:
    """
    Aggregate completed approvals into per-role duration statistics.

    Parameters
    ----------
    history_df : pd.DataFrame
        One row per completed approval step
    role_col : str
        Column holding the role name
    days_col : str
        Column with the approval duration in days. When absent it is derived
        from ``decided_col`` - ``requested_col``.
    decided_col : str, optional
        Decision timestamp; its maximum per role becomes ``last_updated``
    requested_col : str, optional
        Timestamp the step became actionable

    Returns
    -------
    HistoricalStatsSnapshot
        Mean days, sample count and last update per role
    """
    if role_col not in history_df:
        raise ConfigurationError(f"History frame has no {role_col!r} column")

    df = history_df.copy()

    if days_col not in df:
        if not (decided_col and requested_col and decided_col in df and requested_col in df):
            raise ConfigurationError(
                f"History frame needs {days_col!r} or both {decided_col!r} and {requested_col!r}"
            )
        elapsed = pd.to_datetime(df[decided_col]) - pd.to_datetime(df[requested_col])
        df[days_col] = elapsed.dt.total_seconds() / 86400.0

    df = df[df[days_col].notna() & (df[days_col] >= 0)].copy()

    has_decided = bool(decided_col) and decided_col in df
    if has_decided:
        df[decided_col] = pd.to_datetime(df[decided_col])

    stats: Dict[Role, HistoricalStat] = {}
    for role_name, group in df.groupby(role_col, sort=False):
        role = coerce_enum(Role, role_name, "role")
        days = group[days_col].to_numpy(dtype=float)
        stats[role] = HistoricalStat(
            avg_days=float(np.round(np.mean(days), 2)),
            sample_count=int(len(days)),
            last_updated=_to_date(group[decided_col].max()) if has_decided else None,
        )

    logger.info("Built historical stats for %d roles from %d approvals", len(stats), len(df))
    return HistoricalStatsSnapshot(stats)


def workload_from_queue(
    queue_df: pd.DataFrame,
    role_col: str = "role",
    status_col: str = "status"
) -> WorkloadSnapshot:
    """
    Count pending approvals per role.

    Parameters
    ----------
    queue_df : pd.DataFrame
        Open approval steps, one row each
    role_col, status_col : str
        Column name mappings

    Returns
    -------
    WorkloadSnapshot
        Pending count per role (roles with nothing pending are omitted)
    """
    for col in (role_col, status_col):
        if col not in queue_df:
            raise ConfigurationError(f"Queue frame has no {col!r} column")

    pending = queue_df[queue_df[status_col] == StepStatus.PENDING.value]
    counts = pending.groupby(role_col, sort=False).size()

    logger.debug("Workload snapshot: %d pending approvals", int(counts.sum()))
    return WorkloadSnapshot({role: int(n) for role, n in counts.items()})
