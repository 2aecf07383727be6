"""
SDA Routing: Deviation Approval Routing and Timeline Prediction

Computes the mandatory approval route for a supplier/customer deviation
and predicts when each approval will land, flagging likely bottlenecks.
"""

__version__ = "0.1.0"

from .exceptions import SDARoutingError, ConfigurationError
from .models import (
    ApprovalPrediction,
    ApprovalStep,
    BottleneckWarning,
    BusinessUnit,
    ClassificationFacts,
    DurationCategory,
    HistoricalStat,
    Role,
    StepPrediction,
    StepStatus,
    Trigger,
)
from .pipelines.routing_engine import RoutingEngine, ReconciliationPolicy, compute_routing
from .pipelines.timeline_predictor import (
    DayCounting,
    PredictorConfig,
    TimelinePredictor,
    identify_bottleneck,
    predict_timeline,
)
from .adapters.history import (
    HistoricalStatsSnapshot,
    WorkloadSnapshot,
    stats_from_history,
    workload_from_queue,
)

__all__ = [
    "SDARoutingError",
    "ConfigurationError",
    "ApprovalPrediction",
    "ApprovalStep",
    "BottleneckWarning",
    "BusinessUnit",
    "ClassificationFacts",
    "DurationCategory",
    "HistoricalStat",
    "Role",
    "StepPrediction",
    "StepStatus",
    "Trigger",
    "RoutingEngine",
    "ReconciliationPolicy",
    "compute_routing",
    "DayCounting",
    "PredictorConfig",
    "TimelinePredictor",
    "identify_bottleneck",
    "predict_timeline",
    "HistoricalStatsSnapshot",
    "WorkloadSnapshot",
    "stats_from_history",
    "workload_from_queue",
]
