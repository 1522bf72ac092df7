from __future__ import annotations

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from hr_evalify.employees.api.permissions import ROLE_ADMIN
from hr_evalify.employees.api.permissions import ROLE_EMPLOYEE
from hr_evalify.employees.api.permissions import ROLE_EVALUATOR
from hr_evalify.employees.api.permissions import ROLE_HR
from hr_evalify.employees.api.permissions import ROLE_MANAGER
from hr_evalify.employees.api.permissions import ROLE_REVIEWER
from hr_evalify.evaluations.models import Evaluation
from hr_evalify.org.models import Department
from tests.permissions.factories import RoleContext
from tests.permissions.factories import create_evaluation
from tests.permissions.factories import create_questions
from tests.permissions.factories import create_setup
from tests.permissions.factories import create_user_with_role
from tests.permissions.factories import ensure_groups

User = get_user_model()

RBAC_GROUPS = [
    ROLE_ADMIN,
    ROLE_HR,
    ROLE_MANAGER,
    ROLE_REVIEWER,
    ROLE_EVALUATOR,
    ROLE_EMPLOYEE,
]


class RoleAPITestCase(APITestCase):
    """Base test case wiring one approver chain for the HQ department.

    ``self.roles`` holds one user per role; the Evaluator/Reviewer/Manager
    users are the participants configured for HQ. ``self.others`` holds
    users outside that chain.
    """

    def setUp(self):
        super().setUp()
        ensure_groups(RBAC_GROUPS)
        self.departments = {
            "hq": Department.objects.create(name="HQ"),
            "remote": Department.objects.create(name="Remote"),
            "lab": Department.objects.create(name="Lab"),
        }
        hq = self.departments["hq"]
        self.roles: dict[str, RoleContext] = {}
        self.roles[ROLE_ADMIN] = create_user_with_role(
            "admin", groups=[ROLE_ADMIN], is_staff=True, department=hq
        )
        self.roles[ROLE_HR] = create_user_with_role(
            "hr", groups=[ROLE_HR], department=hq
        )
        self.roles[ROLE_MANAGER] = create_user_with_role(
            "manager", groups=[ROLE_MANAGER], department=hq
        )
        self.roles[ROLE_REVIEWER] = create_user_with_role(
            "reviewer", groups=[ROLE_REVIEWER], department=hq
        )
        self.roles[ROLE_EVALUATOR] = create_user_with_role(
            "evaluator", groups=[ROLE_EVALUATOR], department=hq
        )
        self.roles[ROLE_EMPLOYEE] = create_user_with_role(
            "employee", groups=[ROLE_EMPLOYEE], department=hq
        )
        self.others = {
            "employee": create_user_with_role(
                "other", groups=[ROLE_EMPLOYEE], department=self.departments["remote"]
            ),
            "evaluator": create_user_with_role(
                "evaluator2", groups=[ROLE_EVALUATOR], department=hq
            ),
            "reviewer": create_user_with_role(
                "reviewer2", groups=[ROLE_REVIEWER], department=hq
            ),
            "lab": create_user_with_role(
                "labtech", groups=[ROLE_EMPLOYEE], department=self.departments["lab"]
            ),
        }
        self.setup_hq = create_setup(
            hq,
            evaluator=self.employee(ROLE_EVALUATOR),
            reviewer=self.employee(ROLE_REVIEWER),
            manager=self.employee(ROLE_MANAGER),
        )
        self.setup_remote = create_setup(
            self.departments["remote"],
            evaluator=self.others["evaluator"].employee,
            reviewer=self.others["reviewer"].employee,
            manager=self.employee(ROLE_MANAGER),
        )
        self.questions = create_questions(2)

    # Utilities -------------------------------------------------------------
    def employee(self, role: str):
        return self.roles[role].employee

    def make_evaluation(self, status=Evaluation.Status.EVALUATOR_EVALUATING, **kwargs):
        defaults = {
            "evaluator": self.employee(ROLE_EVALUATOR),
            "reviewer": self.employee(ROLE_REVIEWER),
            "manager": self.employee(ROLE_MANAGER),
        }
        defaults.update(kwargs)
        evaluee = defaults.pop("evaluee", self.employee(ROLE_EMPLOYEE))
        return create_evaluation(evaluee, status=status, **defaults)

    def authenticate(self, role: str):
        self.client.force_authenticate(user=self.roles[role].user)

    def assert_http_status(self, response, expected_status: int):
        msg = getattr(response, "data", response)
        assert response.status_code == expected_status, msg

    def get(self, url_name: str, *, role: str, reverse_kwargs=None, **kwargs):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.get(url, **kwargs)

    def post(
        self, url_name: str, *, role: str, payload=None, reverse_kwargs=None, **kwargs
    ):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.post(url, data=payload or {}, format="json", **kwargs)

    def patch(
        self, url_name: str, *, role: str, payload=None, reverse_kwargs=None, **kwargs
    ):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.patch(url, data=payload or {}, format="json", **kwargs)

    def delete(self, url_name: str, *, role: str, reverse_kwargs=None, **kwargs):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.delete(url, **kwargs)

    def assert_allowed(self, response):
        assert response.status_code in (
            status.HTTP_200_OK,
            status.HTTP_201_CREATED,
            status.HTTP_204_NO_CONTENT,
        ), response.data

    def assert_denied(self, response, code=status.HTTP_403_FORBIDDEN):
        assert response.status_code == code, response.data

    def extract_results(self, response):
        data = response.data
        if isinstance(data, dict) and "results" in data:
            return data["results"]
        return data if isinstance(data, list) else []
