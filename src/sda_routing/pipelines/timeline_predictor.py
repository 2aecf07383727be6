"""
TimelinePredictor: Approval Timeline and Bottleneck Prediction

Turns an approval route into calendar estimates using injected historical
durations and the current approver workload.

Per step:
- expected = avg_days + pending × workload_day_cost
- × business unit multiplier, × duration multiplier for the slower buckets
- rounded half up to the day resolution (0.5 days)
- confidence = min(cap, base + sample_count / samples_per_confidence_point)

A step is a bottleneck when its expected duration exceeds its historical
average by more than ``bottleneck_ratio``. Nothing here reads a clock or a
shared table; the same inputs always give the same prediction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Dict, List, Mapping, Sequence, Tuple, Union
import numpy as np

from ..models import (
    ApprovalPrediction,
    ApprovalStep,
    BottleneckIssue,
    BottleneckWarning,
    BusinessUnit,
    DurationCategory,
    HistoricalStat,
    RiskLevel,
    Role,
    Severity,
    StepPrediction,
    coerce_enum,
    pending_count,
    role_keyed,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


class DayCounting(Enum):
    """How day offsets are applied to the request date."""
    CALENDAR = "calendar"  # Weekends count as approval days
    BUSINESS = "business"  # Skip weekends and configured holidays


def _default_bu_multipliers() -> Dict[BusinessUnit, float]:
    slower = {BusinessUnit.RT, BusinessUnit.RB}
    return {bu: (1.2 if bu in slower else 1.0) for bu in BusinessUnit}


def _default_slower_durations() -> Dict[DurationCategory, bool]:
    return {
        DurationCategory.D1: False,
        DurationCategory.D2: False,
        DurationCategory.D3: True,
        DurationCategory.D4: True,
        DurationCategory.D5: True,
        DurationCategory.D6: True,
    }


def _default_delegates() -> Dict[Role, Tuple[str, ...]]:
    return {
        Role.PLANT_DIRECTOR: ("Deputy Plant Director", "Plant Quality Manager"),
        Role.RD_DIRECTOR: ("Senior R&D Manager", "Technical Lead"),
    }


@dataclass
class PredictorConfig:
    """Heuristic constants and rule tables for timeline prediction."""

    # Defaults for roles without history
    default_avg_days: float = 3.0
    workload_day_cost: float = 0.3    # Days added per pending approval

    # Rule tables
    bu_multipliers: Dict[BusinessUnit, float] = field(default_factory=_default_bu_multipliers)
    slower_durations: Dict[DurationCategory, bool] = field(default_factory=_default_slower_durations)
    duration_multiplier: float = 1.15

    day_resolution: float = 0.5
    total_resolution: float = 0.1

    # Confidence
    confidence_base: float = 50.0
    confidence_cap: float = 95.0
    samples_per_confidence_point: float = 3.0

    # Risk and bottleneck ratios (expected / historical average)
    high_risk_ratio: float = 1.5
    medium_risk_ratio: float = 1.2
    bottleneck_ratio: float = 1.3
    critical_ratio: float = 2.0
    workload_critical_threshold: int = 8

    suggested_delegates: Dict[Role, Tuple[str, ...]] = field(default_factory=_default_delegates)

    day_counting: DayCounting = DayCounting.CALENDAR
    holidays: Tuple[date, ...] = ()

    def validate(self) -> "PredictorConfig":
        """Check that the rule tables cover every enumeration member."""
        missing_bu = [bu.value for bu in BusinessUnit if bu not in self.bu_multipliers]
        if missing_bu:
            raise ConfigurationError(f"bu_multipliers missing business units: {missing_bu}")

        missing_duration = [d.name for d in DurationCategory if d not in self.slower_durations]
        if missing_duration:
            raise ConfigurationError(f"slower_durations missing buckets: {missing_duration}")

        for name in ("day_resolution", "total_resolution", "samples_per_confidence_point"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")

        if not isinstance(self.day_counting, DayCounting):
            raise ConfigurationError(f"Unrecognized day counting mode {self.day_counting!r}")

        return self


def _round_half_up(value: float, resolution: float) -> float:
    """Round to the nearest multiple of ``resolution``, ties away from zero."""
    scale = 1.0 / resolution
    if scale >= 1 and np.isclose(scale, round(scale), rtol=0.0, atol=1e-9):
        scale = round(scale)
        return float(np.floor(value * scale + 0.5) / scale)
    steps = np.floor(value / resolution + 0.5)
    # Drop float noise so 0.3 steps give 0.9, not 0.8999999999999999
    return float(np.round(steps * resolution, 10))


def _fmt(days: float) -> str:
    return f"{days:g}"


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ConfigurationError(f"Invalid request date {value!r}") from exc


class TimelinePredictor:
    """
    Approval timeline prediction with bottleneck detection.

    Parameters
    ----------
    config : PredictorConfig, optional
        Rule tables and constants; defaults reproduce the production heuristics.
    """

    def __init__(self, config: Optional[PredictorConfig] = None):
        self.config = (config or PredictorConfig()).validate()

    def predict(
        self,
        steps: Sequence[ApprovalStep],
        request_date: DateLike,
        bu: BusinessUnit,
        duration: DurationCategory,
        historical_stats: Optional[Mapping[Role, HistoricalStat]] = None,
        workload: Optional[Mapping[Role, int]] = None
    ) -> ApprovalPrediction:
        """
        Predict when each step and the whole route will complete.

        Parameters
        ----------
        steps : Sequence[ApprovalStep]
            Route in approval order
        request_date : date or ISO string
            Day the deviation was requested; all offsets start here
        bu : BusinessUnit
            Owning business unit
        duration : DurationCategory
            Duration bucket of the deviation
        historical_stats : Mapping[Role, HistoricalStat], optional
            Read-only history per role; missing roles use the defaults
        workload : Mapping[Role, int], optional
            Pending approvals per role; missing roles count as zero

        Returns
        -------
        ApprovalPrediction
            One StepPrediction per step, in order, plus bottlenecks
        """
        cfg = self.config
        start = _as_date(request_date)
        bu = coerce_enum(BusinessUnit, bu, "business unit")
        duration = coerce_enum(DurationCategory, duration, "duration category")
        historical_stats = role_keyed(historical_stats)
        workload = role_keyed(workload)

        cumulative = 0.0
        step_predictions: List[StepPrediction] = []
        bottlenecks: List[BottleneckWarning] = []

        for step in steps:
            stat = self._historical(step.role, historical_stats)
            pending = pending_count(workload.get(step.role))

            expected = stat.avg_days + pending * cfg.workload_day_cost
            expected *= cfg.bu_multipliers[bu]
            if cfg.slower_durations[duration]:
                expected *= cfg.duration_multiplier
            expected = _round_half_up(expected, cfg.day_resolution)

            cumulative += expected
            confidence = self._confidence(stat)

            step_predictions.append(StepPrediction(
                step_id=step.id,
                role=step.role,
                expected_days=expected,
                expected_date=self._offset(start, cumulative),
                confidence=confidence,
                risk_level=self._risk_level(expected, stat.avg_days),
                historical_avg_days=stat.avg_days,
            ))
            logger.debug(
                "Step %s (%s): %.1f days, pending=%d, confidence=%.1f",
                step.id, step.role.value, expected, pending, confidence
            )

            warning = self._bottleneck(step.id, step.role, expected, stat.avg_days, pending,
                                       with_delegates=True)
            if warning is not None:
                bottlenecks.append(warning)

        if step_predictions:
            overall = int(np.floor(np.mean([p.confidence for p in step_predictions]) + 0.5))
        else:
            overall = 0

        prediction = ApprovalPrediction(
            expected_completion_date=self._offset(start, cumulative),
            confidence=overall,
            estimated_days=_round_half_up(cumulative, cfg.total_resolution),
            step_predictions=step_predictions,
            bottlenecks=bottlenecks,
        )

        logger.info(
            "Predicted %s days over %d steps (confidence %d, %d bottlenecks)",
            _fmt(prediction.estimated_days), len(step_predictions), overall, len(bottlenecks)
        )
        if prediction.has_critical_bottleneck:
            logger.warning(
                "Critical approval bottleneck: %s",
                ", ".join(b.role.value for b in bottlenecks if b.severity == Severity.CRITICAL)
            )
        return prediction

    def identify_bottleneck(
        self,
        role: Role,
        historical_stats: Mapping[Role, HistoricalStat],
        workload: Optional[Mapping[Role, int]] = None
    ) -> Optional[BottleneckWarning]:
        """
        Check a single role for a bottleneck outside of any route.

        Uses the historical average plus workload only. Returns None when the
        role has no history or is within the bottleneck ratio.
        """
        role = coerce_enum(Role, role, "role")
        stat = role_keyed(historical_stats).get(role)
        if stat is None:
            return None
        pending = pending_count(role_keyed(workload).get(role))
        expected = stat.avg_days + pending * self.config.workload_day_cost
        return self._bottleneck("", role, expected, stat.avg_days, pending, with_delegates=False)

    def _historical(self, role: Role, historical_stats: Mapping[Role, HistoricalStat]) -> HistoricalStat:
        stat = historical_stats.get(role)
        if stat is None:
            logger.debug("No history for %s, using %.1f day default", role.value,
                         self.config.default_avg_days)
            return HistoricalStat(avg_days=self.config.default_avg_days, sample_count=0)
        return stat

    def _confidence(self, stat: HistoricalStat) -> float:
        cfg = self.config
        return min(
            cfg.confidence_cap,
            cfg.confidence_base + stat.sample_count / cfg.samples_per_confidence_point
        )

    def _risk_level(self, expected: float, historical_avg: float) -> RiskLevel:
        if expected > historical_avg * self.config.high_risk_ratio:
            return RiskLevel.HIGH
        if expected > historical_avg * self.config.medium_risk_ratio:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def _offset(self, start: date, days: float) -> date:
        # Fractional days are truncated when landing on a date
        whole = int(days)
        if self.config.day_counting == DayCounting.BUSINESS:
            result = np.busday_offset(
                np.datetime64(start, "D"),
                whole,
                roll="forward",
                holidays=[np.datetime64(h, "D") for h in self.config.holidays],
            )
            return result.astype("datetime64[D]").item()
        return start + timedelta(days=whole)

    def _bottleneck(
        self,
        step_id: str,
        role: Role,
        expected: float,
        historical_avg: float,
        pending: int,
        with_delegates: bool
    ) -> Optional[BottleneckWarning]:
        cfg = self.config
        if not expected > historical_avg * cfg.bottleneck_ratio:
            return None

        delegates = None
        if pending > cfg.workload_critical_threshold:
            issue = BottleneckIssue.HIGH_WORKLOAD
            severity = Severity.CRITICAL
            if with_delegates and role in cfg.suggested_delegates:
                delegates = list(cfg.suggested_delegates[role])
        else:
            issue = BottleneckIssue.SLOW_APPROVER
            severity = Severity.WARNING
            if expected > historical_avg * cfg.critical_ratio:
                severity = Severity.CRITICAL

        return BottleneckWarning(
            step_id=step_id,
            role=role,
            issue=issue,
            severity=severity,
            current_avg_days=expected,
            historical_avg_days=historical_avg,
            suggested_delegates=delegates,
            message=bottleneck_message(role, issue, expected, historical_avg, pending),
        )


def bottleneck_message(
    role: Role,
    issue: BottleneckIssue,
    current_days: float,
    historical_days: float,
    pending: int
) -> str:
    """Human readable explanation of a bottleneck."""
    delay = _fmt(_round_half_up(current_days - historical_days, 0.1))

    if issue == BottleneckIssue.HIGH_WORKLOAD:
        return (f"{role.value} has {pending} pending approvals ({delay} days slower than "
                f"average). Consider delegating to reduce delay.")
    if issue == BottleneckIssue.SLOW_APPROVER:
        return (f"{role.value} is currently {delay} days slower than historical average. "
                f"This may delay approval.")
    return (f"{role.value} approval is expected to take {_fmt(current_days)} days "
            f"({delay} days above average).")


# =============================================================================
# Convenience Functions
# =============================================================================

def predict_timeline(
    steps: Sequence[ApprovalStep],
    request_date: DateLike,
    bu: BusinessUnit,
    duration: DurationCategory,
    historical_stats: Optional[Mapping[Role, HistoricalStat]] = None,
    workload: Optional[Mapping[Role, int]] = None,
    config: Optional[PredictorConfig] = None
) -> ApprovalPrediction:
    """Predict with a one-off predictor."""
    return TimelinePredictor(config).predict(
        steps, request_date, bu, duration, historical_stats, workload
    )


def identify_bottleneck(
    role: Role,
    historical_stats: Mapping[Role, HistoricalStat],
    workload: Optional[Mapping[Role, int]] = None,
    config: Optional[PredictorConfig] = None
) -> Optional[BottleneckWarning]:
    """Single-role bottleneck check with a one-off predictor."""
    return TimelinePredictor(config).identify_bottleneck(role, historical_stats, workload)
