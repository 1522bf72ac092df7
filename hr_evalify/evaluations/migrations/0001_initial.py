import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


def _band_fields():
    fields = []
    for band in ("a", "b", "c", "d", "e"):
        fields += [
            (f"grade_{band}_desc", models.TextField(blank=True)),
            (f"grade_{band}_min", models.DecimalField(decimal_places=2, default=0, max_digits=6)),
            (f"grade_{band}_max", models.DecimalField(decimal_places=2, default=0, max_digits=6)),
        ]
    return fields


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("employees", "0001_initial"),
        ("org", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("position", models.CharField(blank=True, max_length=150)),
                ("order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["order", "id"],
                "verbose_name_plural": "categories",
            },
        ),
        migrations.CreateModel(
            name="EvaluationTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("position", models.CharField(blank=True, max_length=150)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="EvaluationItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("max_score", models.DecimalField(decimal_places=2, default=Decimal("5"), max_digits=6)),
                ("weight", models.DecimalField(decimal_places=2, default=Decimal("1"), max_digits=6)),
                ("order", models.PositiveIntegerField(default=0)),
                *_band_fields(),
                ("template", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="evaluations.evaluationtemplate")),
            ],
            options={
                "ordering": ["template_id", "order", "id"],
            },
        ),
        migrations.CreateModel(
            name="Question",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("text", models.TextField()),
                ("description", models.TextField(blank=True)),
                ("weight", models.DecimalField(decimal_places=2, default=Decimal("1"), max_digits=6)),
                ("min_score", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6)),
                ("max_score", models.DecimalField(decimal_places=2, default=Decimal("5"), max_digits=6)),
                ("order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="questions", to="evaluations.category")),
            ],
            options={
                "ordering": ["category__order", "order", "id"],
            },
        ),
        migrations.CreateModel(
            name="EvaluatorSetup",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="evaluator_setups", to="org.department")),
                ("evaluator", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="employees.employee")),
                ("manager", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="employees.employee")),
                ("reviewer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="employees.employee")),
            ],
            options={
                "ordering": ["department__name"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("department",), name="uniq_active_evaluator_setup_per_department"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Evaluation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(2000), django.core.validators.MaxValueValidator(2100)])),
                ("period", models.CharField(choices=[("Q1", "Quarter 1"), ("Q2", "Quarter 2"), ("Q3", "Quarter 3"), ("Q4", "Quarter 4"), ("H1", "First half"), ("H2", "Second half"), ("ANNUAL", "Annual")], max_length=10)),
                ("allow_self_evaluation", models.BooleanField(default=False)),
                ("evaluator_approved", models.BooleanField(blank=True, null=True)),
                ("reviewer_approved", models.BooleanField(blank=True, null=True)),
                ("manager_approved", models.BooleanField(blank=True, null=True)),
                ("reviewer_rejected_reason", models.TextField(blank=True)),
                ("manager_rejected_reason", models.TextField(blank=True)),
                ("evaluator_comment", models.TextField(blank=True)),
                ("reviewer_comment", models.TextField(blank=True)),
                ("manager_comment", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("SELF_EVALUATING", "Self evaluating"), ("EVALUATOR_EVALUATING", "Evaluator evaluating"), ("REVIEWER_REVIEWING", "Reviewer reviewing"), ("MANAGER_REVIEWING", "Manager reviewing"), ("COMPLETED", "Completed"), ("REJECTED", "Rejected")], db_index=True, default="PENDING", max_length=30)),
                ("final_score", models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ("final_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("final_grade", models.CharField(blank=True, max_length=2)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to="employees.employee")),
                ("evaluee", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="evaluations", to="employees.employee")),
                ("evaluator", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="evaluations_as_evaluator", to="employees.employee")),
                ("manager", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="evaluations_as_manager", to="employees.employee")),
                ("reviewer", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="evaluations_as_reviewer", to="employees.employee")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["year", "period"], name="evaluation_year_period_idx")],
            },
        ),
        migrations.CreateModel(
            name="Answer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("score", models.DecimalField(decimal_places=2, max_digits=6)),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("evaluation", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="answers", to="evaluations.evaluation")),
                ("question", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="answers", to="evaluations.question")),
            ],
            options={
                "ordering": ["question__category__order", "question__order", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("evaluation", "question"), name="uniq_answer_per_question"),
                ],
            },
        ),
    ]
