import pytest
from django.urls import reverse

from hr_evalify.notifications.models import Notification
from hr_evalify.users.models import User


@pytest.fixture
def notices(user):
    other = User.objects.create_user(
        username="other", email="other@example.com", password="x"  # noqa: S106
    )
    Notification.objects.create(recipient=other, title="Not mine", message="-")
    return [
        Notification.objects.create(recipient=user, title=f"N{i}", message="-")
        for i in range(3)
    ]


def test_list_only_returns_own(api_client, user, notices):
    api_client.force_authenticate(user)
    res = api_client.get(reverse("api_v1:notifications-list"))
    assert res.status_code == 200
    assert {row["title"] for row in res.data["results"]} == {"N0", "N1", "N2"}


def test_mark_read_and_mark_all_read(api_client, user, notices):
    api_client.force_authenticate(user)
    res = api_client.post(
        reverse("api_v1:notifications-mark-read", kwargs={"pk": notices[0].pk})
    )
    assert res.status_code == 204
    notices[0].refresh_from_db()
    assert notices[0].is_read is True

    unread = api_client.get(reverse("api_v1:notifications-list"), {"unread": "true"})
    assert len(unread.data["results"]) == 2

    res = api_client.post(reverse("api_v1:notifications-mark-all-read"))
    assert res.status_code == 204
    assert not Notification.objects.filter(recipient=user, is_read=False).exists()
    assert Notification.objects.filter(is_read=False).count() == 1
