from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hr_evalify.audit.utils import client_ip
from hr_evalify.audit.utils import log_action
from hr_evalify.employees.api.permissions import IsAdminOrHR
from hr_evalify.employees.api.permissions import resolve_caller
from hr_evalify.evaluations import answers as answer_service
from hr_evalify.evaluations import selectors
from hr_evalify.evaluations import services
from hr_evalify.evaluations.api.filters import EvaluationFilter
from hr_evalify.evaluations.api.pagination import EvaluationPagination
from hr_evalify.evaluations.api.serializers import AnswerSerializer
from hr_evalify.evaluations.api.serializers import AnswerSubmitSerializer
from hr_evalify.evaluations.api.serializers import CreationReportSerializer
from hr_evalify.evaluations.api.serializers import EvaluationAnswersSerializer
from hr_evalify.evaluations.api.serializers import EvaluationCreateSerializer
from hr_evalify.evaluations.api.serializers import EvaluationDetailSerializer
from hr_evalify.evaluations.api.serializers import EvaluationListSerializer
from hr_evalify.evaluations.api.serializers import EvaluatorSetupSerializer
from hr_evalify.evaluations.api.serializers import TransitionResponseSerializer
from hr_evalify.evaluations.models import EvaluatorSetup

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(summary="List evaluations visible to the caller"),
    retrieve=extend_schema(summary="Get an evaluation with its answers"),
    create=extend_schema(
        summary="Open evaluations for a batch of employees",
        request=EvaluationCreateSerializer,
        responses={201: CreationReportSerializer},
    ),
    partial_update=extend_schema(
        summary="Act on the current stage or edit fields (Admin/HR)",
        request=None,
        responses={
            200: TransitionResponseSerializer,
            409: OpenApiResponse(description="Evaluation state changed"),
        },
    ),
    destroy=extend_schema(summary="Delete an evaluation and its answers"),
)
class EvaluationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Evaluation workflow endpoints.

    Every read is scoped to the caller; every write goes through
    ``hr_evalify.evaluations.services``.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = EvaluationPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = EvaluationFilter
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):
        if self.action == "list":
            return EvaluationListSerializer
        if self.action == "create":
            return EvaluationCreateSerializer
        return EvaluationDetailSerializer

    def get_queryset(self):
        caller = resolve_caller(self.request.user)
        return selectors.scope_for(caller, selectors.evaluation_queryset())

    def retrieve(self, request, *args, **kwargs):
        caller = resolve_caller(request.user)
        evaluation = selectors.get_evaluation(self._pk(), caller)
        return Response(EvaluationDetailSerializer(evaluation).data)

    def create(self, request, *args, **kwargs):
        caller = resolve_caller(request.user)
        serializer = EvaluationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        report = services.create_evaluations(
            caller,
            year=data["year"],
            period=data["period"],
            evaluee_ids=data["evaluee_ids"],
            allow_self_evaluation=data["allow_self_evaluation"],
        )
        body = CreationReportSerializer(
            {
                "message": (
                    f"Created {len(report.created)} evaluation(s), "
                    f"{len(report.failed)} failed."
                ),
                "created": report.created,
                "failed": report.failed,
            }
        ).data
        return Response(body, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        caller = resolve_caller(request.user)
        evaluation = services.transition(self._pk(), caller, request.data)
        evaluation = selectors.get_evaluation(evaluation.pk, caller)
        body = TransitionResponseSerializer(
            {"message": "Evaluation updated.", "evaluation": evaluation}
        ).data
        return Response(body)

    def destroy(self, request, *args, **kwargs):
        caller = resolve_caller(request.user)
        services.delete_evaluation(self._pk(), caller)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        methods=["GET"],
        summary="Answers of an evaluation grouped by category",
        responses={200: EvaluationAnswersSerializer},
    )
    @extend_schema(
        methods=["POST"],
        summary="Replace all answers of an evaluation",
        request=AnswerSubmitSerializer,
        responses={201: AnswerSerializer(many=True)},
    )
    @action(detail=True, methods=["get", "post"], url_path="answers")
    def answers(self, request, pk=None):
        caller = resolve_caller(request.user)
        if request.method == "GET":
            evaluation = selectors.get_evaluation_answers(self._pk(), caller)
            body = EvaluationAnswersSerializer(
                {
                    "evaluation": evaluation,
                    "categories": selectors.group_by_category(
                        evaluation.answers.all()
                    ),
                }
            ).data
            return Response(body)
        raw = request.data.get("answers") if hasattr(request.data, "get") else None
        saved = answer_service.replace_answers(self._pk(), caller, raw)
        return Response(
            {
                "message": f"Saved {len(saved)} answer(s).",
                "answers": AnswerSerializer(saved, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def _pk(self) -> int:
        lookup = self.kwargs.get(self.lookup_url_kwarg or self.lookup_field)
        try:
            return int(lookup)
        except (TypeError, ValueError):
            raise NotFound from None


@extend_schema_view(
    list=extend_schema(summary="List evaluator setups"),
    retrieve=extend_schema(summary="Get an evaluator setup"),
    create=extend_schema(summary="Create an evaluator setup"),
    partial_update=extend_schema(summary="Update an evaluator setup"),
    update=extend_schema(summary="Replace an evaluator setup"),
    destroy=extend_schema(summary="Delete an evaluator setup"),
)
class EvaluatorSetupViewSet(viewsets.ModelViewSet):
    """Per-department routing rows (Admin/HR).

    Edits never touch evaluations already in flight; those keep the
    participants copied at creation time.
    """

    queryset = EvaluatorSetup.objects.select_related(
        "department", "evaluator__user", "reviewer__user", "manager__user"
    )
    serializer_class = EvaluatorSetupSerializer
    permission_classes = [IsAuthenticated, IsAdminOrHR]
    filterset_fields = ["department", "is_active"]

    def _snapshot(self, obj):
        return {
            "department": obj.department_id,
            "evaluator": obj.evaluator_id,
            "reviewer": obj.reviewer_id,
            "manager": obj.manager_id,
            "is_active": obj.is_active,
        }

    def perform_create(self, serializer):
        obj = serializer.save()
        log_action(
            "evaluator_setup.create",
            actor=getattr(self.request, "user", None),
            model_name="EvaluatorSetup",
            record_id=obj.id,
            after=self._snapshot(obj),
            ip_address=client_ip(self.request),
        )

    def perform_update(self, serializer):
        before = self._snapshot(serializer.instance)
        obj = serializer.save()
        log_action(
            "evaluator_setup.update",
            actor=getattr(self.request, "user", None),
            model_name="EvaluatorSetup",
            record_id=obj.id,
            before=before,
            after=self._snapshot(obj),
            ip_address=client_ip(self.request),
        )

    def perform_destroy(self, instance):
        log_action(
            "evaluator_setup.delete",
            actor=getattr(self.request, "user", None),
            model_name="EvaluatorSetup",
            record_id=instance.id,
            before=self._snapshot(instance),
            ip_address=client_ip(self.request),
        )
        return super().perform_destroy(instance)
