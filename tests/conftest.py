"""
Shared pytest fixtures for the routing and prediction tests.

Provides:
    - reference_stats: historical approval durations per role
    - reference_workload: pending approvals per role
    - engine / predictor: default-configured components
"""

from datetime import date

import pytest

from sda_routing import (
    ClassificationFacts,
    BusinessUnit,
    DurationCategory,
    HistoricalStat,
    Role,
    RoutingEngine,
    TimelinePredictor,
)


REFERENCE_STATS = {
    Role.REQUESTOR: HistoricalStat(0.5, 150, date(2025, 1, 20)),
    Role.PROJECT_MANAGER: HistoricalStat(1.2, 145, date(2025, 1, 20)),
    Role.RD_RESPONSIBLE: HistoricalStat(2.5, 120, date(2025, 1, 19)),
    Role.RD_DIRECTOR: HistoricalStat(4.8, 80, date(2025, 1, 18)),
    Role.ME_SERIES: HistoricalStat(1.8, 110, date(2025, 1, 20)),
    Role.HEAD_OF_ME: HistoricalStat(3.2, 75, date(2025, 1, 17)),
    Role.ASQE: HistoricalStat(2.1, 130, date(2025, 1, 20)),
    Role.QUALITY_ENGINEER: HistoricalStat(1.5, 125, date(2025, 1, 20)),
    Role.BU_QUALITY_LEAD: HistoricalStat(3.5, 70, date(2025, 1, 16)),
    Role.PLANT_DIRECTOR: HistoricalStat(6.2, 45, date(2025, 1, 15)),
    Role.PRODUCT_SAFETY_OFFICER: HistoricalStat(2.8, 60, date(2025, 1, 19)),
}

REFERENCE_WORKLOAD = {
    Role.PLANT_DIRECTOR: 12,
    Role.RD_DIRECTOR: 8,
    Role.BU_QUALITY_LEAD: 6,
    Role.HEAD_OF_ME: 5,
    Role.PRODUCT_SAFETY_OFFICER: 4,
    Role.RD_RESPONSIBLE: 3,
    Role.ASQE: 2,
    Role.QUALITY_ENGINEER: 2,
    Role.ME_SERIES: 2,
    Role.PROJECT_MANAGER: 1,
    Role.REQUESTOR: 0,
}


@pytest.fixture
def reference_stats():
    return dict(REFERENCE_STATS)


@pytest.fixture
def reference_workload():
    return dict(REFERENCE_WORKLOAD)


@pytest.fixture
def engine():
    return RoutingEngine()


@pytest.fixture
def predictor():
    return TimelinePredictor()


@pytest.fixture
def long_safety_facts():
    return ClassificationFacts(
        bu=BusinessUnit.ET,
        duration=DurationCategory.D3,
        safety_relevant=True,
    )
