from dataclasses import dataclass

import pytest

from hr_evalify.employees.api.permissions import ROLE_ADMIN
from hr_evalify.employees.api.permissions import ROLE_EMPLOYEE
from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import ROLE_HR
from hr_evalify.employees.api.permissions import ROLE_MANAGER
from hr_evalify.employees.api.permissions import ROLE_REVIEWER
from hr_evalify.employees.api.permissions import Caller
from hr_evalify.employees.api.permissions import resolve_caller
from hr_evalify.org.models import Department
from tests.permissions.factories import RoleContext
from tests.permissions.factories import create_evaluation
from tests.permissions.factories import create_questions
from tests.permissions.factories import create_setup
from tests.permissions.factories import create_user_with_role


@dataclass
class Chain:
    department: Department
    admin: RoleContext
    hr: RoleContext
    evaluator: RoleContext
    reviewer: RoleContext
    manager: RoleContext
    evaluee: RoleContext
    outsider: RoleContext

    def caller(self, name: str) -> Caller:
        return resolve_caller(getattr(self, name).user)

    def evaluation(self, **kwargs):
        return create_evaluation(
            self.evaluee.employee,
            evaluator=self.evaluator.employee,
            reviewer=self.reviewer.employee,
            manager=self.manager.employee,
            **kwargs,
        )


@pytest.fixture
def chain(db) -> Chain:
    department = Department.objects.create(name="Engineering")
    built = Chain(
        department=department,
        admin=create_user_with_role("admin", groups=[ROLE_ADMIN], is_staff=True),
        hr=create_user_with_role("hr", groups=[ROLE_HR]),
        evaluator=create_user_with_role(
            "evaluator", groups=[ROLE_EVALUATOR], department=department
        ),
        reviewer=create_user_with_role(
            "reviewer", groups=[ROLE_REVIEWER], department=department
        ),
        manager=create_user_with_role(
            "manager", groups=[ROLE_MANAGER], department=department
        ),
        evaluee=create_user_with_role(
            "evaluee", groups=[ROLE_EMPLOYEE], department=department
        ),
        outsider=create_user_with_role("outsider", groups=[ROLE_EVALUATOR]),
    )
    create_setup(
        department,
        evaluator=built.evaluator.employee,
        reviewer=built.reviewer.employee,
        manager=built.manager.employee,
    )
    return built


@pytest.fixture
def questions(db):
    return create_questions(3)
