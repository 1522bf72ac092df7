import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("notification_type", models.CharField(choices=[("evaluation_requested", "Evaluation Requested"), ("self_evaluation_requested", "Self Evaluation Requested"), ("review_requested", "Review Requested"), ("rejected_returned", "Rejected And Returned"), ("result_ready", "Result Ready"), ("evaluation_completed", "Evaluation Completed"), ("new_cycle_created", "New Cycle Created"), ("other", "Other")], default="other", max_length=50)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("related_link", models.CharField(blank=True, default="", max_length=500)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
