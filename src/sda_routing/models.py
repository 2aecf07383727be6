"""
Data model for deviation approval routing.

Closed vocabularies (business units, duration buckets, roles) are shared by
the routing table, the historical statistics, the workload snapshot and the
delegate table, so a role name can only be spelled one way.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Mapping, Type, TypeVar
from enum import Enum

from .exceptions import ConfigurationError


E = TypeVar("E", bound=Enum)
V = TypeVar("V")


class BusinessUnit(str, Enum):
    """Business units owning a deviation."""
    ET = "ET"
    EB = "EB"
    RT = "RT"
    RB = "RB"
    RF = "RF"
    RX = "RX"


class Trigger(str, Enum):
    """Standardized deviation trigger codes."""
    T0010 = "0010 PPAP/EMPB missing (product release)"
    T0020 = "0020 PPAP/EMPB nok (product release)"
    T0030 = "0030 Dimensional deviation"
    T0040 = "0040 Functional deviation"
    T0050 = "0050 Software faulty"
    T0060 = "0060 Specification invalid/not up to date"
    T0070 = "0070 Missing process release"
    T0080 = "0080 Process release nok"


class DurationCategory(str, Enum):
    """Duration buckets relative to the series handover milestone."""
    D1 = "≤ 3 months & prior to handover"
    D2 = "> 3 months ≤ 9 months & prior to handover"
    D3 = "> 9 months & prior to handover"
    D4 = "≤ 3 months & after handover"
    D5 = "> 3 months ≤ 9 months & after handover"
    D6 = "> 9 months & after handover"


class Role(str, Enum):
    """Approver roles that can appear in a routing."""
    REQUESTOR = "Requestor"
    PROJECT_MANAGER = "Project Manager"
    RD_RESPONSIBLE = "R&D responsible"
    RD_DIRECTOR = "R&D Director / Business Line"
    ME_SERIES = "ME series"
    HEAD_OF_ME = "Head of ME"
    ASQE = "ASQE (Buy Part)"
    QUALITY_ENGINEER = "Quality Engineer (series)"
    BU_QUALITY_LEAD = "BU Quality Lead"
    PLANT_DIRECTOR = "Plant Director"
    PRODUCT_SAFETY_OFFICER = "Product Safety Officer"


class StepStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BottleneckIssue(str, Enum):
    SLOW_APPROVER = "slow_approver"
    HIGH_WORKLOAD = "high_workload"
    VACATION = "vacation"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


def coerce_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    """
    Convert a raw value into a member of ``enum_cls``.

    Accepts a member, its value, or its name. Anything else is a
    configuration error: routing must never fall back to a default bucket.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    if isinstance(value, str) and value in enum_cls.__members__:
        return enum_cls[value]
    allowed = ", ".join(repr(m.value) for m in enum_cls)
    raise ConfigurationError(
        f"Unrecognized {field_name} {value!r}; expected one of: {allowed}"
    )


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ConfigurationError(f"Invalid date {value!r}; expected ISO format YYYY-MM-DD")


@dataclass(frozen=True)
class ClassificationFacts:
    """Inputs to routing. Raw strings are coerced into the closed vocabularies."""
    bu: BusinessUnit
    duration: DurationCategory
    safety_relevant: bool = False
    trigger: Optional[Trigger] = None

    def __post_init__(self):
        object.__setattr__(self, "bu", coerce_enum(BusinessUnit, self.bu, "business unit"))
        object.__setattr__(
            self, "duration", coerce_enum(DurationCategory, self.duration, "duration category")
        )
        if self.trigger is not None:
            object.__setattr__(self, "trigger", coerce_enum(Trigger, self.trigger, "trigger"))
        if not isinstance(self.safety_relevant, bool):
            raise ConfigurationError(
                f"safety_relevant must be a bool, got {self.safety_relevant!r}"
            )


@dataclass
class ApprovalStep:
    """
    One step of an approval route.

    Created by the routing engine with ``status=PENDING``. Decision fields are
    written back by the approval workflow that owns the deviation record.
    """
    id: str
    role: Role
    required: bool = True
    status: StepStatus = StepStatus.PENDING
    approver_name: Optional[str] = None
    decision_date: Optional[date] = None
    comment: Optional[str] = None
    signature: Optional[str] = None

    def __post_init__(self):
        self.role = coerce_enum(Role, self.role, "role")
        self.status = coerce_enum(StepStatus, self.status, "step status")

    def to_dict(self) -> Dict[str, Any]:
        """Export as dictionary."""
        return {
            "id": self.id,
            "role": self.role.value,
            "required": self.required,
            "status": self.status.value,
            "approver_name": self.approver_name,
            "decision_date": _iso(self.decision_date),
            "comment": self.comment,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApprovalStep":
        """Build a step from the mapping stored by the hosting application."""
        return cls(
            id=str(data["id"]),
            role=coerce_enum(Role, data["role"], "role"),
            required=bool(data.get("required", True)),
            status=coerce_enum(StepStatus, data.get("status", StepStatus.PENDING), "step status"),
            approver_name=data.get("approver_name"),
            decision_date=parse_date(data.get("decision_date")),
            comment=data.get("comment"),
            signature=data.get("signature"),
        )


@dataclass(frozen=True)
class HistoricalStat:
    """Historical approval duration for one role."""
    avg_days: float
    sample_count: int = 0
    last_updated: Optional[date] = None


@dataclass
class StepPrediction:
    """Predicted completion of a single approval step."""
    step_id: str
    role: Role
    expected_days: float
    expected_date: date
    confidence: float
    risk_level: RiskLevel
    historical_avg_days: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "role": self.role.value,
            "expected_days": self.expected_days,
            "expected_date": _iso(self.expected_date),
            "confidence": self.confidence,
            "risk_level": self.risk_level.value,
            "historical_avg_days": self.historical_avg_days,
        }


@dataclass
class BottleneckWarning:
    """A step expected to take significantly longer than its history."""
    step_id: str
    role: Role
    issue: BottleneckIssue
    severity: Severity
    current_avg_days: float
    historical_avg_days: float
    message: str
    suggested_delegates: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "role": self.role.value,
            "issue": self.issue.value,
            "severity": self.severity.value,
            "current_avg_days": self.current_avg_days,
            "historical_avg_days": self.historical_avg_days,
            "suggested_delegates": (
                list(self.suggested_delegates) if self.suggested_delegates else None
            ),
            "message": self.message,
        }


@dataclass
class ApprovalPrediction:
    """Complete timeline prediction for an approval route."""
    expected_completion_date: date
    confidence: int
    estimated_days: float
    step_predictions: List[StepPrediction] = field(default_factory=list)
    bottlenecks: List[BottleneckWarning] = field(default_factory=list)

    @property
    def has_critical_bottleneck(self) -> bool:
        return any(b.severity == Severity.CRITICAL for b in self.bottlenecks)

    def to_dict(self) -> Dict[str, Any]:
        """Export as dictionary."""
        return {
            "expected_completion_date": _iso(self.expected_completion_date),
            "confidence": self.confidence,
            "estimated_days": self.estimated_days,
            "bottlenecks": [b.to_dict() for b in self.bottlenecks],
            "step_predictions": [p.to_dict() for p in self.step_predictions],
        }


def role_keyed(mapping: Optional[Mapping[Any, V]]) -> Dict[Role, V]:
    """Copy ``mapping`` with its keys coerced to ``Role`` members."""
    if not mapping:
        return {}
    return {coerce_enum(Role, key, "role"): value for key, value in mapping.items()}


def pending_count(value: Any) -> int:
    """Validate a pending approval count: a whole, non-negative number."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ConfigurationError(f"Pending approval count must be a number, got {value!r}")
    try:
        pending = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ConfigurationError(f"Pending approval count must be a number, got {value!r}")
    if not isinstance(value, str) and pending != value:
        raise ConfigurationError(f"Pending approval count must be a whole number: {value!r}")
    if pending < 0:
        raise ConfigurationError(f"Pending approval count cannot be negative: {value!r}")
    return pending
