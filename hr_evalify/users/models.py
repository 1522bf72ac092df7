from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for hr_evalify.
    Evaluation roles are carried by auth groups, see employees.api.permissions.
    """

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    first_name = CharField(_("First Name"), max_length=150, blank=True)
    last_name = CharField(_("Last Name"), max_length=150, blank=True)
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        # Automatically build the full name
        full_name = f"{self.first_name} {self.last_name}".strip()
        self.name = full_name
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return self.name or self.username
