from hr_evalify.users.models import User


def test_full_name_is_built_on_save(db):
    user = User.objects.create_user(
        username="jdoe",
        email="jdoe@example.com",
        password="x",  # noqa: S106
        first_name="Jane",
        last_name="Doe",
    )
    assert user.name == "Jane Doe"
    assert user.display_name == "Jane Doe"


def test_display_name_falls_back_to_username(user: User):
    assert user.display_name == "user"


def test_new_users_join_employee_group(user: User):
    assert list(user.groups.values_list("name", flat=True)) == ["Employee"]
