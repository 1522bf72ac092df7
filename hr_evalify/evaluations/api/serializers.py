from __future__ import annotations

from typing import Any

from rest_framework import serializers

from hr_evalify.employees.models import Employee
from hr_evalify.evaluations.models import MAX_YEAR
from hr_evalify.evaluations.models import MIN_YEAR
from hr_evalify.evaluations.models import Answer
from hr_evalify.evaluations.models import Evaluation
from hr_evalify.evaluations.models import EvaluatorSetup
from hr_evalify.evaluations.selectors import group_by_category

_CREATE_ALIASES = {
    "evalueeIds": "evaluee_ids",
    "allowSelfEvaluation": "allow_self_evaluation",
}


class ParticipantSerializer(serializers.ModelSerializer):
    """Compact person summary embedded in evaluations."""

    name = serializers.CharField(source="display_name", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    department = serializers.CharField(
        source="department.name", read_only=True, default=None
    )

    class Meta:
        model = Employee
        fields = ("id", "employee_id", "name", "email", "position", "department")
        read_only_fields = fields


class AnswerSerializer(serializers.ModelSerializer):
    question_text = serializers.CharField(source="question.text", read_only=True)
    category = serializers.IntegerField(source="question.category_id", read_only=True)

    class Meta:
        model = Answer
        fields = ("id", "question", "question_text", "category", "score", "comment")
        read_only_fields = fields


class CategoryAnswersSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    answers = AnswerSerializer(many=True)


class EvaluationListSerializer(serializers.ModelSerializer):
    evaluee = ParticipantSerializer(read_only=True)
    evaluator = ParticipantSerializer(read_only=True)
    reviewer = ParticipantSerializer(read_only=True)
    manager = ParticipantSerializer(read_only=True)

    class Meta:
        model = Evaluation
        fields = (
            "id",
            "year",
            "period",
            "status",
            "evaluee",
            "evaluator",
            "reviewer",
            "manager",
            "allow_self_evaluation",
            "evaluator_approved",
            "reviewer_approved",
            "manager_approved",
            "final_score",
            "final_percentage",
            "final_grade",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class EvaluationDetailSerializer(EvaluationListSerializer):
    answers = AnswerSerializer(many=True, read_only=True)
    categories = serializers.SerializerMethodField()

    class Meta(EvaluationListSerializer.Meta):
        fields = (
            *EvaluationListSerializer.Meta.fields,
            "reviewer_rejected_reason",
            "manager_rejected_reason",
            "evaluator_comment",
            "reviewer_comment",
            "manager_comment",
            "answers",
            "categories",
        )
        read_only_fields = fields

    def get_categories(self, obj: Evaluation) -> list[dict[str, Any]]:
        return CategoryAnswersSerializer(
            group_by_category(obj.answers.all()), many=True
        ).data


class EvaluationCreateSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=MIN_YEAR, max_value=MAX_YEAR)
    period = serializers.ChoiceField(choices=Evaluation.Period.choices)
    evaluee_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=False
    )
    allow_self_evaluation = serializers.BooleanField(required=False, default=False)

    def to_internal_value(self, data):
        if hasattr(data, "items"):
            data = {_CREATE_ALIASES.get(k, k): v for k, v in data.items()}
        return super().to_internal_value(data)


class CreationFailureSerializer(serializers.Serializer):
    evaluee_id = serializers.IntegerField()
    code = serializers.CharField()
    error = serializers.CharField()


class CreationReportSerializer(serializers.Serializer):
    message = serializers.CharField()
    created = EvaluationListSerializer(many=True)
    failed = CreationFailureSerializer(many=True)


class TransitionResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    evaluation = EvaluationDetailSerializer()


class AnswerInputSerializer(serializers.Serializer):
    """Request shape for answer submission; validation happens in the service."""

    questionId = serializers.IntegerField()  # noqa: N815
    score = serializers.DecimalField(max_digits=6, decimal_places=2)
    comment = serializers.CharField(required=False, allow_blank=True)


class AnswerSubmitSerializer(serializers.Serializer):
    answers = AnswerInputSerializer(many=True)


class EvaluationAnswersSerializer(serializers.Serializer):
    evaluation = EvaluationListSerializer()
    categories = CategoryAnswersSerializer(many=True)


class EvaluatorSetupSerializer(serializers.ModelSerializer):
    department_name = serializers.CharField(source="department.name", read_only=True)
    evaluator_detail = ParticipantSerializer(source="evaluator", read_only=True)
    reviewer_detail = ParticipantSerializer(source="reviewer", read_only=True)
    manager_detail = ParticipantSerializer(source="manager", read_only=True)

    class Meta:
        model = EvaluatorSetup
        fields = (
            "id",
            "department",
            "department_name",
            "evaluator",
            "evaluator_detail",
            "reviewer",
            "reviewer_detail",
            "manager",
            "manager_detail",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        instance = self.instance
        department = attrs.get("department", getattr(instance, "department", None))
        is_active = attrs.get("is_active", getattr(instance, "is_active", True))
        if department is not None and is_active:
            clash = EvaluatorSetup.objects.filter(department=department, is_active=True)
            if instance is not None:
                clash = clash.exclude(pk=instance.pk)
            if clash.exists():
                msg = "This department already has an active evaluator setup."
                raise serializers.ValidationError({"department": msg})
        errors = {}
        for name in ("evaluator", "reviewer", "manager"):
            employee = attrs.get(name)
            if employee is not None and not employee.is_active:
                errors[name] = "Employee is inactive."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
