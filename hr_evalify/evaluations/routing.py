from __future__ import annotations

from dataclasses import dataclass

from .exceptions import RoutingNotConfigured
from .models import EvaluatorSetup


@dataclass(frozen=True)
class Route:
    evaluator_id: int
    reviewer_id: int
    manager_id: int


def lookup_routing(department_id: int | None) -> Route:
    """Return the active approver triple for a department.

    Raises ``RoutingNotConfigured`` when the department is unknown or has no
    active setup row.
    """

    if department_id is None:
        raise RoutingNotConfigured
    setup = (
        EvaluatorSetup.objects.filter(department_id=department_id, is_active=True)
        .only("evaluator_id", "reviewer_id", "manager_id")
        .first()
    )
    if setup is None:
        raise RoutingNotConfigured(department_id)
    return Route(
        evaluator_id=setup.evaluator_id,
        reviewer_id=setup.reviewer_id,
        manager_id=setup.manager_id,
    )
