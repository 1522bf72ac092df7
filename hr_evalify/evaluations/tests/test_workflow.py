from decimal import Decimal

import pytest
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError

from hr_evalify.audit.models import AuditLog
from hr_evalify.evaluations import services
from hr_evalify.evaluations.exceptions import StateConflict
from hr_evalify.evaluations.models import Answer
from hr_evalify.evaluations.models import Evaluation
from hr_evalify.evaluations.services import AdminEdit
from hr_evalify.evaluations.services import EvaluatorStage
from hr_evalify.evaluations.services import ManagerStage
from hr_evalify.evaluations.services import ReviewerStage
from hr_evalify.evaluations.services import parse_stage_payload
from hr_evalify.evaluations.services import transition
from hr_evalify.notifications.models import Notification
from tests.permissions.factories import create_questions

S = Evaluation.Status


class TestParseStagePayload:
    def test_camel_and_snake_keys_map_to_the_same_variant(self):
        camel, _ = parse_stage_payload({"reviewerApproved": True, "reviewerComment": "ok"})
        snake, _ = parse_stage_payload({"reviewer_approved": True, "reviewer_comment": "ok"})
        assert camel == snake == ReviewerStage(approved=True, comment="ok")

    def test_expected_status_is_returned(self):
        payload, expected = parse_stage_payload(
            {"managerApproved": True, "expectedStatus": "MANAGER_REVIEWING"}
        )
        assert payload == ManagerStage(approved=True)
        assert expected == "MANAGER_REVIEWING"

    def test_comment_only_evaluator_payload(self):
        payload, _ = parse_stage_payload({"evaluatorComment": "draft"})
        assert payload == EvaluatorStage(approved=None, comment="draft")

    def test_admin_fields_become_admin_edit(self):
        payload, _ = parse_stage_payload({"status": "COMPLETED", "evaluatorId": 4})
        assert payload == AdminEdit(changes={"status": "COMPLETED", "evaluator_id": 4})

    def test_nothing_to_update(self):
        with pytest.raises(ValidationError, match="Nothing to update"):
            parse_stage_payload({"unrelated": 1})

    def test_mixed_variants_are_rejected(self):
        with pytest.raises(ValidationError, match="Only one stage"):
            parse_stage_payload({"evaluatorApproved": True, "reviewerApproved": True})

    def test_bad_types_are_listed(self):
        with pytest.raises(ValidationError) as exc:
            parse_stage_payload({"managerApproved": "maybe", "managerComment": 3})
        assert set(exc.value.detail) == {"managerApproved", "managerComment"}


def _act(chain, evaluation, who, **data):
    return transition(evaluation.pk, chain.caller(who), data)


def test_full_happy_path_scores_on_manager_approval(chain, questions):
    evaluation = chain.evaluation()
    for question, score in zip(questions, (3, 5, 4), strict=True):
        Answer.objects.create(evaluation=evaluation, question=question, score=score)

    assert _act(chain, evaluation, "evaluator", evaluatorApproved=True).status == S.REVIEWER_REVIEWING
    assert _act(chain, evaluation, "reviewer", reviewerApproved=True).status == S.MANAGER_REVIEWING
    done = _act(chain, evaluation, "manager", managerApproved=True, managerComment="Great")

    assert done.status == S.COMPLETED
    assert done.final_score == Decimal("4.00")
    assert done.final_percentage == Decimal("80.00")
    assert done.final_grade == "B+"
    assert done.manager_comment == "Great"
    assert done.manager_approved is True


def test_evaluator_comment_only_keeps_status(chain):
    evaluation = chain.evaluation()
    updated = _act(chain, evaluation, "evaluator", evaluatorComment="half way")
    assert updated.status == S.EVALUATOR_EVALUATING
    assert updated.evaluator_comment == "half way"


@pytest.mark.parametrize("comment", [None, ""])
def test_stage_payload_without_changes_is_rejected(chain, comment):
    evaluation = chain.evaluation()
    with pytest.raises(ValidationError) as exc:
        _act(chain, evaluation, "evaluator", evaluatorComment=comment)
    assert exc.value.detail["non_field_errors"][0] == "Nothing to update."
    assert not AuditLog.objects.filter(record_id=evaluation.pk).exists()


def test_empty_comment_keeps_stored_comment(chain):
    evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
    Evaluation.objects.filter(pk=evaluation.pk).update(reviewer_comment="Solid work")
    updated = _act(chain, evaluation, "reviewer", reviewerApproved=True, reviewerComment="")
    assert updated.status == S.MANAGER_REVIEWING
    assert updated.reviewer_comment == "Solid work"


def test_evaluator_disapproval_records_flag_only(chain):
    evaluation = chain.evaluation()
    updated = _act(chain, evaluation, "evaluator", evaluatorApproved=False)
    assert updated.status == S.EVALUATOR_EVALUATING
    assert updated.evaluator_approved is False


def test_reviewer_rejection_requires_reason_and_keeps_status(chain):
    evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
    with pytest.raises(ValidationError) as exc:
        _act(chain, evaluation, "reviewer", reviewerApproved=False, reviewerRejectedReason="  ")
    assert "reviewerRejectedReason" in exc.value.detail
    evaluation.refresh_from_db()
    assert evaluation.status == S.REVIEWER_REVIEWING


def test_rejection_loop_always_returns_to_reviewer(chain):
    evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
    for cycle in range(3):
        rejected = _act(
            chain,
            evaluation,
            "reviewer",
            reviewerApproved=False,
            reviewerRejectedReason=f"fix {cycle}",
        )
        assert rejected.status == S.REJECTED
        assert rejected.reviewer_rejected_reason == f"fix {cycle}"
        again = _act(chain, evaluation, "evaluator", evaluatorApproved=True)
        assert again.status == S.REVIEWER_REVIEWING


def test_manager_rejection_returns_to_reviewer(chain):
    evaluation = chain.evaluation(status=S.MANAGER_REVIEWING)
    updated = _act(
        chain, evaluation, "manager", managerApproved=False, managerRejectedReason="thin"
    )
    assert updated.status == S.REVIEWER_REVIEWING
    assert updated.manager_rejected_reason == "thin"
    assert updated.final_score is None


@pytest.mark.parametrize(
    ("status", "who", "data"),
    [
        (S.REVIEWER_REVIEWING, "evaluator", {"evaluatorApproved": True}),
        (S.EVALUATOR_EVALUATING, "reviewer", {"reviewerApproved": True}),
        (S.REJECTED, "reviewer", {"reviewerApproved": True}),
        (S.REVIEWER_REVIEWING, "manager", {"managerApproved": True}),
        (S.COMPLETED, "manager", {"managerApproved": True}),
        (S.SELF_EVALUATING, "evaluator", {"evaluatorApproved": True}),
    ],
)
def test_stage_action_from_wrong_status_conflicts(chain, status, who, data):
    evaluation = chain.evaluation(status=status)
    with pytest.raises(StateConflict) as exc:
        _act(chain, evaluation, who, **data)
    assert exc.value.status_code == 409
    assert exc.value.detail["current_status"] == status
    assert exc.value.detail["retryable"] is True
    evaluation.refresh_from_db()
    assert evaluation.status == status


@pytest.mark.parametrize("who", ["evaluee", "reviewer", "manager", "outsider"])
def test_only_bound_evaluator_or_admin_may_act_on_evaluator_stage(chain, who):
    evaluation = chain.evaluation()
    with pytest.raises(PermissionDenied):
        _act(chain, evaluation, who, evaluatorApproved=True)


@pytest.mark.parametrize("who", ["admin", "hr"])
def test_admin_and_hr_override_stage_actions(chain, who):
    evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
    updated = _act(chain, evaluation, who, reviewerApproved=True)
    assert updated.status == S.MANAGER_REVIEWING


def test_expected_status_mismatch_conflicts(chain):
    evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
    with pytest.raises(StateConflict):
        _act(
            chain,
            evaluation,
            "reviewer",
            reviewerApproved=True,
            expectedStatus=S.EVALUATOR_EVALUATING,
        )


def test_stale_read_loses_compare_and_set(chain, questions, monkeypatch):
    evaluation = chain.evaluation(status=S.MANAGER_REVIEWING)
    Answer.objects.create(evaluation=evaluation, question=questions[0], score=4)
    stale = Evaluation.objects.get(pk=evaluation.pk)

    first = _act(chain, evaluation, "manager", managerApproved=True)
    assert first.status == S.COMPLETED

    # Second caller validated against the status it read before the first commit.
    monkeypatch.setattr(services, "_get_locked", lambda _pk: stale)
    with pytest.raises(StateConflict) as exc:
        _act(chain, evaluation, "manager", managerApproved=True)
    assert exc.value.detail["current_status"] == S.COMPLETED
    assert AuditLog.objects.filter(action="evaluation.manager.approve").count() == 1


def test_unknown_evaluation_is_not_found(chain):
    with pytest.raises(NotFound):
        transition(999999, chain.caller("admin"), {"evaluatorApproved": True})


class TestAdminEdit:
    def test_admin_can_set_fields_directly(self, chain):
        evaluation = chain.evaluation()
        updated = _act(
            chain,
            evaluation,
            "hr",
            status=S.MANAGER_REVIEWING,
            year=2026,
            period="H1",
            reviewerId=chain.outsider.employee.pk,
            allowSelfEvaluation=True,
        )
        assert updated.status == S.MANAGER_REVIEWING
        assert (updated.year, updated.period) == (2026, "H1")
        assert updated.reviewer_id == chain.outsider.employee.pk
        assert updated.allow_self_evaluation is True
        assert updated.final_score is None

    def test_non_admin_cannot_edit_fields(self, chain):
        evaluation = chain.evaluation()
        with pytest.raises(PermissionDenied):
            _act(chain, evaluation, "evaluator", status=S.COMPLETED)

    def test_every_invalid_field_is_reported(self, chain):
        evaluation = chain.evaluation()
        with pytest.raises(ValidationError) as exc:
            _act(
                chain,
                evaluation,
                "admin",
                status="DONE",
                year=1999,
                period="Q9",
                managerId=999999,
            )
        assert set(exc.value.detail) == {"status", "year", "period", "managerId"}


class TestTransitionNotifications:
    def test_reviewer_is_notified_when_evaluator_approves(
        self, chain, django_capture_on_commit_callbacks
    ):
        evaluation = chain.evaluation()
        with django_capture_on_commit_callbacks(execute=True):
            _act(chain, evaluation, "evaluator", evaluatorApproved=True)
        notice = Notification.objects.get(recipient=chain.reviewer.user)
        assert notice.notification_type == Notification.Type.REVIEW_REQUESTED

    def test_rejection_carries_reason_to_evaluator(
        self, chain, django_capture_on_commit_callbacks, mailoutbox
    ):
        evaluation = chain.evaluation(status=S.REVIEWER_REVIEWING)
        with django_capture_on_commit_callbacks(execute=True):
            _act(
                chain,
                evaluation,
                "reviewer",
                reviewerApproved=False,
                reviewerRejectedReason="Missing goals",
            )
        notice = Notification.objects.get(recipient=chain.evaluator.user)
        assert notice.notification_type == Notification.Type.REJECTED_RETURNED
        assert "Missing goals" in notice.message
        assert "Missing goals" in mailoutbox[0].body

    def test_completion_notifies_evaluee_and_admin_channel(
        self, chain, questions, django_capture_on_commit_callbacks, monkeypatch
    ):
        sent = []
        monkeypatch.setattr(
            "hr_evalify.notifications.services.notify_admin_channel",
            lambda kind, payload: sent.append((kind, payload)),
        )
        evaluation = chain.evaluation(status=S.MANAGER_REVIEWING)
        Answer.objects.create(evaluation=evaluation, question=questions[0], score=5)
        with django_capture_on_commit_callbacks(execute=True):
            _act(chain, evaluation, "manager", managerApproved=True)
        notice = Notification.objects.get(recipient=chain.evaluee.user)
        assert notice.notification_type == Notification.Type.RESULT_READY
        assert "grade A" in notice.message
        assert [kind for kind, _ in sent] == [Notification.Type.EVALUATION_COMPLETED]

    def test_notification_failure_does_not_undo_transition(
        self, chain, django_capture_on_commit_callbacks, monkeypatch
    ):
        def boom(*args, **kwargs):
            msg = "smtp down"
            raise ConnectionError(msg)

        monkeypatch.setattr("hr_evalify.notifications.services.send_mail", boom)
        evaluation = chain.evaluation()
        with django_capture_on_commit_callbacks(execute=True):
            updated = _act(chain, evaluation, "evaluator", evaluatorApproved=True)
        assert updated.status == S.REVIEWER_REVIEWING
        evaluation.refresh_from_db()
        assert evaluation.status == S.REVIEWER_REVIEWING


def test_delete_removes_answers_and_is_admin_only(chain, questions):
    evaluation = chain.evaluation()
    Answer.objects.create(evaluation=evaluation, question=questions[0], score=2)
    with pytest.raises(PermissionDenied):
        services.delete_evaluation(evaluation.pk, chain.caller("manager"))
    services.delete_evaluation(evaluation.pk, chain.caller("hr"))
    assert not Evaluation.objects.filter(pk=evaluation.pk).exists()
    assert not Answer.objects.filter(evaluation_id=evaluation.pk).exists()
    assert AuditLog.objects.filter(action="evaluation.delete", record_id=evaluation.pk).exists()


def test_completion_normalises_wide_question_ranges(chain):
    (question,) = create_questions(1, category_name="Impact", max_score=Decimal(10))
    evaluation = chain.evaluation(status=S.MANAGER_REVIEWING)
    Answer.objects.create(evaluation=evaluation, question=question, score=10)

    done = _act(chain, evaluation, "manager", managerApproved=True)

    assert done.final_score == Decimal("10.00")
    assert done.final_percentage == Decimal("100.00")
    assert done.final_grade == "A"
