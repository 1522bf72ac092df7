import pytest
from django.contrib.auth.models import AnonymousUser
from django.contrib.auth.models import Group
from rest_framework.exceptions import NotAuthenticated

from hr_evalify.employees.api.permissions import ROLE_ADMIN
from hr_evalify.employees.api.permissions import ROLE_EMPLOYEE
from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import ROLE_HR
from hr_evalify.employees.api.permissions import ROLE_MANAGER
from hr_evalify.employees.api.permissions import ROLE_REVIEWER
from hr_evalify.employees.api.permissions import resolve_caller
from hr_evalify.employees.api.permissions import resolve_role
from hr_evalify.employees.models import Employee


def _join(user, *names):
    for name in names:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)


def test_plain_user_is_employee(user):
    assert resolve_role(user) == ROLE_EMPLOYEE


def test_staff_and_superuser_resolve_to_admin(user):
    user.is_staff = True
    assert resolve_role(user) == ROLE_ADMIN
    user.is_staff = False
    user.is_superuser = True
    assert resolve_role(user) == ROLE_ADMIN


@pytest.mark.parametrize(
    ("groups", "expected"),
    [
        ((ROLE_EVALUATOR, ROLE_REVIEWER), ROLE_REVIEWER),
        ((ROLE_REVIEWER, ROLE_MANAGER), ROLE_MANAGER),
        ((ROLE_MANAGER, ROLE_HR), ROLE_HR),
        ((ROLE_HR, ROLE_ADMIN), ROLE_ADMIN),
    ],
)
def test_highest_group_wins(user, groups, expected):
    _join(user, *groups)
    assert resolve_role(user) == expected


def test_resolve_caller_binds_employee_profile(user):
    employee = Employee.objects.create(user=user)
    _join(user, ROLE_EVALUATOR)
    user.refresh_from_db()
    caller = resolve_caller(user)
    assert caller.employee_id == employee.pk
    assert caller.role == ROLE_EVALUATOR
    assert caller.is_elevated is False


def test_resolve_caller_without_profile(user):
    _join(user, ROLE_HR)
    caller = resolve_caller(user)
    assert caller.employee is None
    assert caller.is_elevated is True


def test_anonymous_caller_is_unauthenticated():
    with pytest.raises(NotAuthenticated):
        resolve_caller(AnonymousUser())
