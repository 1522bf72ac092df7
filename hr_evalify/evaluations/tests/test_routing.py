import pytest

from hr_evalify.evaluations.exceptions import RoutingNotConfigured
from hr_evalify.evaluations.models import EvaluatorSetup
from hr_evalify.evaluations.routing import lookup_routing
from hr_evalify.org.models import Department


def test_lookup_returns_active_triple(chain):
    route = lookup_routing(chain.department.pk)
    assert route.evaluator_id == chain.evaluator.employee.pk
    assert route.reviewer_id == chain.reviewer.employee.pk
    assert route.manager_id == chain.manager.employee.pk


def test_lookup_ignores_inactive_rows(chain):
    EvaluatorSetup.objects.filter(department=chain.department).update(is_active=False)
    with pytest.raises(RoutingNotConfigured) as exc:
        lookup_routing(chain.department.pk)
    assert exc.value.get_codes() == "routing_not_configured"
    assert str(chain.department.pk) in str(exc.value.detail)


@pytest.mark.django_db
def test_lookup_without_department_is_not_configured():
    with pytest.raises(RoutingNotConfigured):
        lookup_routing(None)
    empty = Department.objects.create(name="Empty")
    with pytest.raises(RoutingNotConfigured):
        lookup_routing(empty.pk)
