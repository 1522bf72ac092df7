from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

MIN_YEAR = 2000
MAX_YEAR = 2100
GRADE_BANDS = ("a", "b", "c", "d", "e")


class EvaluationTemplate(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    position = models.CharField(max_length=150, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class EvaluationItem(models.Model):
    """One scored criterion of a template with five named grade bands A-E."""

    template = models.ForeignKey(
        EvaluationTemplate, on_delete=models.CASCADE, related_name="items"
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    max_score = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal(5))
    weight = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal(1))
    order = models.PositiveIntegerField(default=0)

    grade_a_desc = models.TextField(blank=True)
    grade_a_min = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_a_max = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_b_desc = models.TextField(blank=True)
    grade_b_min = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_b_max = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_c_desc = models.TextField(blank=True)
    grade_c_min = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_c_max = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_d_desc = models.TextField(blank=True)
    grade_d_min = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_d_max = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_e_desc = models.TextField(blank=True)
    grade_e_min = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    grade_e_max = models.DecimalField(max_digits=6, decimal_places=2, default=0)

    class Meta:
        ordering = ["template_id", "order", "id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.title

    def bands(self) -> list[tuple[str, Decimal, Decimal]]:
        return [
            (
                band.upper(),
                getattr(self, f"grade_{band}_min"),
                getattr(self, f"grade_{band}_max"),
            )
            for band in GRADE_BANDS
        ]

    def band_for(self, score) -> str | None:
        value = Decimal(str(score))
        for letter, low, high in self.bands():
            if low <= value <= high:
                return letter
        return None

    def clean(self):
        errors = {}
        for letter, low, high in self.bands():
            band = letter.lower()
            if low > high:
                errors[f"grade_{band}_min"] = _("Band minimum exceeds its maximum.")
            elif low < 0 or high > self.max_score:
                errors[f"grade_{band}_max"] = _("Band must lie within 0 and max score.")
        if errors:
            raise ValidationError(errors)


class Category(models.Model):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    position = models.CharField(max_length=150, blank=True)
    order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["order", "id"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class Question(models.Model):
    category = models.ForeignKey(
        Category, on_delete=models.CASCADE, related_name="questions"
    )
    text = models.TextField()
    description = models.TextField(blank=True)
    weight = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal(1))
    min_score = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal(0))
    max_score = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal(5))
    order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["category__order", "order", "id"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.text[:60]

    def clean(self):
        if self.min_score >= self.max_score:
            raise ValidationError({"min_score": _("Minimum must be below maximum.")})


class EvaluatorSetup(models.Model):
    """Routing row: who evaluates, reviews and approves for a department."""

    department = models.ForeignKey(
        "org.Department", on_delete=models.CASCADE, related_name="evaluator_setups"
    )
    evaluator = models.ForeignKey(
        "employees.Employee", on_delete=models.PROTECT, related_name="+"
    )
    reviewer = models.ForeignKey(
        "employees.Employee", on_delete=models.PROTECT, related_name="+"
    )
    manager = models.ForeignKey(
        "employees.Employee", on_delete=models.PROTECT, related_name="+"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["department__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["department"],
                condition=models.Q(is_active=True),
                name="uniq_active_evaluator_setup_per_department",
            )
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"EvaluatorSetup({self.department_id})"


class Evaluation(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        SELF_EVALUATING = "SELF_EVALUATING", _("Self evaluating")
        EVALUATOR_EVALUATING = "EVALUATOR_EVALUATING", _("Evaluator evaluating")
        REVIEWER_REVIEWING = "REVIEWER_REVIEWING", _("Reviewer reviewing")
        MANAGER_REVIEWING = "MANAGER_REVIEWING", _("Manager reviewing")
        COMPLETED = "COMPLETED", _("Completed")
        REJECTED = "REJECTED", _("Rejected")

    class Period(models.TextChoices):
        Q1 = "Q1", _("Quarter 1")
        Q2 = "Q2", _("Quarter 2")
        Q3 = "Q3", _("Quarter 3")
        Q4 = "Q4", _("Quarter 4")
        H1 = "H1", _("First half")
        H2 = "H2", _("Second half")
        ANNUAL = "ANNUAL", _("Annual")

    year = models.PositiveIntegerField(
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )
    period = models.CharField(max_length=10, choices=Period.choices)

    # Participants are copied from the routing table when the cycle starts.
    evaluee = models.ForeignKey(
        "employees.Employee", on_delete=models.CASCADE, related_name="evaluations"
    )
    evaluator = models.ForeignKey(
        "employees.Employee",
        on_delete=models.PROTECT,
        related_name="evaluations_as_evaluator",
    )
    reviewer = models.ForeignKey(
        "employees.Employee",
        on_delete=models.PROTECT,
        related_name="evaluations_as_reviewer",
    )
    manager = models.ForeignKey(
        "employees.Employee",
        on_delete=models.PROTECT,
        related_name="evaluations_as_manager",
    )

    allow_self_evaluation = models.BooleanField(default=False)
    evaluator_approved = models.BooleanField(null=True, blank=True)
    reviewer_approved = models.BooleanField(null=True, blank=True)
    manager_approved = models.BooleanField(null=True, blank=True)
    reviewer_rejected_reason = models.TextField(blank=True)
    manager_rejected_reason = models.TextField(blank=True)
    evaluator_comment = models.TextField(blank=True)
    reviewer_comment = models.TextField(blank=True)
    manager_comment = models.TextField(blank=True)

    status = models.CharField(
        max_length=30, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    final_score = models.DecimalField(
        max_digits=6, decimal_places=2, null=True, blank=True
    )
    final_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    final_grade = models.CharField(max_length=2, blank=True)

    created_by = models.ForeignKey(
        "employees.Employee",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["year", "period"], name="evaluation_year_period_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Evaluation({self.evaluee_id}, {self.period} {self.year})"

    @property
    def participant_ids(self) -> set[int]:
        return {
            self.evaluee_id,
            self.evaluator_id,
            self.reviewer_id,
            self.manager_id,
        }


class Answer(models.Model):
    evaluation = models.ForeignKey(
        Evaluation, on_delete=models.CASCADE, related_name="answers"
    )
    question = models.ForeignKey(
        Question, on_delete=models.PROTECT, related_name="answers"
    )
    score = models.DecimalField(max_digits=6, decimal_places=2)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["question__category__order", "question__order", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["evaluation", "question"],
                name="uniq_answer_per_question",
            )
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Answer({self.evaluation_id}, {self.question_id}={self.score})"
