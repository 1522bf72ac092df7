from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    class Type(models.TextChoices):
        EVALUATION_REQUESTED = "evaluation_requested", _("Evaluation Requested")
        SELF_EVALUATION_REQUESTED = (
            "self_evaluation_requested",
            _("Self Evaluation Requested"),
        )
        REVIEW_REQUESTED = "review_requested", _("Review Requested")
        REJECTED_RETURNED = "rejected_returned", _("Rejected And Returned")
        RESULT_READY = "result_ready", _("Result Ready")
        EVALUATION_COMPLETED = "evaluation_completed", _("Evaluation Completed")
        NEW_CYCLE_CREATED = "new_cycle_created", _("New Cycle Created")
        OTHER = "other", _("Other")

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    notification_type = models.CharField(
        max_length=50, choices=Type.choices, default=Type.OTHER
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    related_link = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} - {self.recipient}"
