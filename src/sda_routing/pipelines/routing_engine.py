"""
RoutingEngine: Deviation Approval Routing

Maps classification facts to the ordered list of mandatory approval steps.

Decision table (evaluated in this order):
1. Requestor, Project Manager
2. Short deviations (≤ 3 months, prior to handover) go to the series-level
   approvers; every other bucket goes to the management-level approvers
3. Long deviations prior to handover and every deviation after handover
   additionally need the Plant Director
4. Safety relevant deviations end with the Product Safety Officer

The route is recomputed from scratch on every classification change.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Dict

from ..models import (
    ApprovalStep,
    ClassificationFacts,
    DurationCategory,
    Role,
    StepStatus,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


FIXED_HEAD: Tuple[Role, ...] = (Role.REQUESTOR, Role.PROJECT_MANAGER)

SHORT_DURATION = DurationCategory.D1

SHORT_ROUTE: Tuple[Role, ...] = (
    Role.RD_RESPONSIBLE,
    Role.ME_SERIES,
    Role.ASQE,
    Role.QUALITY_ENGINEER,
)

EXTENDED_ROUTE: Tuple[Role, ...] = (
    Role.RD_DIRECTOR,
    Role.HEAD_OF_ME,
    Role.ASQE,
    Role.BU_QUALITY_LEAD,
)

# Explicit inclusion list, not "everything but D1/D2"
PLANT_DIRECTOR_DURATIONS = frozenset({
    DurationCategory.D3,
    DurationCategory.D4,
    DurationCategory.D5,
    DurationCategory.D6,
})


class ReconciliationPolicy(Enum):
    """What happens to recorded decisions when a route is recomputed."""
    DISCARD = "discard"              # Fresh route, prior decisions dropped
    MATCH_BY_ROLE = "match_by_role"  # Carry decisions over where the role is unambiguous


class RoutingEngine:
    """
    Deterministic approval routing.

    Parameters
    ----------
    policy : ReconciliationPolicy, default=DISCARD
        Used by ``reroute`` to decide whether decisions recorded on the
        previous route survive a classification change.
    """

    def __init__(self, policy: ReconciliationPolicy = ReconciliationPolicy.DISCARD):
        self.policy = policy

    def required_roles(self, facts: ClassificationFacts) -> List[Role]:
        """Ordered roles required for ``facts``."""
        duration = facts.duration
        if not isinstance(duration, DurationCategory):
            raise ConfigurationError(f"Unrecognized duration category {duration!r}")

        roles = list(FIXED_HEAD)

        if duration == SHORT_DURATION:
            roles.extend(SHORT_ROUTE)
        else:
            roles.extend(EXTENDED_ROUTE)

        if duration in PLANT_DIRECTOR_DURATIONS:
            roles.append(Role.PLANT_DIRECTOR)

        if facts.safety_relevant:
            roles.append(Role.PRODUCT_SAFETY_OFFICER)

        return roles

    def route(self, facts: ClassificationFacts) -> List[ApprovalStep]:
        """
        Compute a fresh approval route.

        Parameters
        ----------
        facts : ClassificationFacts
            Business unit, duration category and safety flag

        Returns
        -------
        List[ApprovalStep]
            Pending, required steps with positional ids "1".."n"
        """
        steps = [
            ApprovalStep(id=str(position), role=role)
            for position, role in enumerate(self.required_roles(facts), start=1)
        ]
        logger.info(
            "Routed %s deviation (%s, safety=%s) to %d approval steps",
            facts.bu.value, facts.duration.name, facts.safety_relevant, len(steps)
        )
        return steps

    def reroute(
        self,
        facts: ClassificationFacts,
        previous: Optional[Sequence[ApprovalStep]] = None
    ) -> List[ApprovalStep]:
        """Recompute the route after a classification change, applying the policy."""
        steps = self.route(facts)
        if previous and self.policy == ReconciliationPolicy.MATCH_BY_ROLE:
            steps = carry_over_decisions(previous, steps)
        elif previous:
            decided = sum(1 for s in previous if s.status != StepStatus.PENDING)
            if decided:
                logger.info("Rerouting discarded %d recorded decisions", decided)
        return steps


def _unique_by_role(steps: Sequence[ApprovalStep]) -> Dict[Role, ApprovalStep]:
    counts: Dict[Role, int] = {}
    for step in steps:
        counts[step.role] = counts.get(step.role, 0) + 1
    return {s.role: s for s in steps if counts[s.role] == 1}


def carry_over_decisions(
    previous: Sequence[ApprovalStep],
    steps: Sequence[ApprovalStep]
) -> List[ApprovalStep]:
    """
    Copy recorded decisions from ``previous`` onto a freshly routed ``steps``.

    A decision moves only when its role occurs exactly once in both lists.
    Neither input is mutated; new step ids are kept.
    """
    old_by_role = _unique_by_role(previous)
    new_by_role = _unique_by_role(steps)

    result = []
    for step in steps:
        old = old_by_role.get(step.role)
        if old is None or step.role not in new_by_role:
            result.append(replace(step))
            continue
        result.append(replace(
            step,
            status=old.status,
            approver_name=old.approver_name,
            decision_date=old.decision_date,
            comment=old.comment,
            signature=old.signature,
        ))
    return result


# =============================================================================
# Convenience Functions
# =============================================================================

def compute_routing(facts: ClassificationFacts) -> List[ApprovalStep]:
    """Route ``facts`` with the default engine."""
    return RoutingEngine().route(facts)
