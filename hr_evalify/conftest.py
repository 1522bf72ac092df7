import pytest
from rest_framework.test import APIClient

from hr_evalify.users.models import User


@pytest.fixture
def user(db) -> User:
    return User.objects.create_user(
        username="user",
        email="user@example.com",
        password="TestPass123!",  # noqa: S106
    )


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()
