from django.conf import settings
from django.db import models


class Employee(models.Model):
    """A person who can be evaluated or act as an approver."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="employee"
    )
    employee_id = models.CharField(max_length=50, unique=True, blank=True, null=True)
    position = models.CharField(max_length=150, blank=True)
    department = models.ForeignKey(
        "org.Department",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="employees",
    )
    is_active = models.BooleanField(default=True)
    # Exempt employees are never included in an evaluation cycle.
    is_exempt = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["user__username"]

    def __str__(self):  # pragma: no cover - trivial
        return f"Employee({self.user.username})"

    @property
    def display_name(self) -> str:
        return self.user.display_name

    @property
    def is_evaluable(self) -> bool:
        return self.is_active and not self.is_exempt
