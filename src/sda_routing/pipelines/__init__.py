"""Routing and prediction pipelines."""

from .routing_engine import RoutingEngine, ReconciliationPolicy, compute_routing, carry_over_decisions
from .timeline_predictor import TimelinePredictor, PredictorConfig, DayCounting, predict_timeline

__all__ = [
    "RoutingEngine",
    "ReconciliationPolicy",
    "compute_routing",
    "carry_over_decisions",
    "TimelinePredictor",
    "PredictorConfig",
    "DayCounting",
    "predict_timeline",
]
