from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.core.exceptions import ImproperlyConfigured

from hr_evalify.evaluations.scoring import answer_percentage
from hr_evalify.evaluations.scoring import average_score
from hr_evalify.evaluations.scoring import compute_result
from hr_evalify.evaluations.scoring import grade_of
from hr_evalify.evaluations.scoring import to_percentage
from hr_evalify.evaluations.scoring import weighted_score


def test_average_score_empty_is_zero():
    assert average_score([]) == Decimal("0.00")


def test_average_score_plain_mean():
    assert average_score([{"score": 3}, {"score": 5}]) == Decimal("4.00")


def test_average_score_rounds_half_up():
    # (1 + 2 + 2) / 3 = 1.6666...
    assert average_score([{"score": 1}, {"score": 2}, {"score": 2}]) == Decimal("1.67")
    assert average_score([{"score": "2.125"}, {"score": "2.125"}]) == Decimal("2.13")


def test_average_score_accepts_answer_like_objects():
    answers = [SimpleNamespace(score=Decimal("4.5")), SimpleNamespace(score=Decimal(3))]
    assert average_score(answers) == Decimal("3.75")


@pytest.mark.parametrize(
    ("percentage", "grade"),
    [
        (100, "A"),
        (90, "A"),
        (Decimal("89.99"), "B+"),
        (80, "B+"),
        (Decimal("79.99"), "B"),
        (70, "B"),
        (60, "C+"),
        (50, "C"),
        (40, "D+"),
        (30, "D"),
        (Decimal("29.99"), "F"),
        (0, "F"),
    ],
)
def test_grade_of_thresholds_are_inclusive(percentage, grade):
    assert grade_of(percentage) == grade


def test_to_percentage_converts_five_point_scale():
    assert to_percentage(Decimal("4.00"), 5) == Decimal("80.00")
    assert to_percentage(Decimal("4.50"), 5) == Decimal("90.00")
    assert to_percentage(0, 5) == Decimal("0.00")


def test_to_percentage_rejects_non_positive_scale():
    with pytest.raises(ValueError, match="positive"):
        to_percentage(3, 0)


def test_compute_result_grades_on_percentage_not_raw_score():
    result = compute_result([{"score": 3}, {"score": 5}], scale_max=5)
    assert result.score == Decimal("4.00")
    assert result.percentage == Decimal("80.00")
    assert result.grade == "B+"


def test_compute_result_without_answers_is_fail():
    result = compute_result([], scale_max=5)
    assert (result.score, result.percentage, result.grade) == (
        Decimal("0.00"),
        Decimal("0.00"),
        "F",
    )


def test_weighted_score_uses_question_weight():
    answers = [
        SimpleNamespace(score=Decimal(5), question=SimpleNamespace(weight=Decimal(3))),
        SimpleNamespace(score=Decimal(1), question=SimpleNamespace(weight=Decimal(1))),
    ]
    assert weighted_score(answers) == Decimal("4.00")
    assert average_score(answers) == Decimal("3.00")


def test_compute_result_aggregator_from_settings(settings):
    settings.EVALIFY_SCORE_AGGREGATOR = "weighted"
    answers = [{"score": 5, "weight": 3}, {"score": 1, "weight": 1}]
    assert compute_result(answers, scale_max=5).score == Decimal("4.00")


def test_unknown_aggregator_is_a_configuration_error(settings):
    settings.EVALIFY_SCORE_AGGREGATOR = "median"
    with pytest.raises(ImproperlyConfigured):
        compute_result([{"score": 1}])


def test_weighted_score_with_zero_weights_is_plain_mean():
    answers = [{"score": 4, "weight": 0}, {"score": 4, "weight": 0}]
    assert weighted_score(answers) == Decimal("4.00")
    result = compute_result(answers, aggregator="weighted", scale_max=5)
    assert (result.percentage, result.grade) == (Decimal("80.00"), "B+")


def test_percentage_uses_each_question_range():
    answers = [
        SimpleNamespace(
            score=Decimal(10),
            question=SimpleNamespace(min_score=Decimal(0), max_score=Decimal(10), weight=1),
        ),
        SimpleNamespace(
            score=Decimal(3),
            question=SimpleNamespace(min_score=Decimal(1), max_score=Decimal(5), weight=1),
        ),
    ]
    result = compute_result(answers, scale_max=5)
    # 10 of [0, 10] is 100%, 3 of [1, 5] is 50%.
    assert result.percentage == Decimal("75.00")
    assert result.score == Decimal("6.50")
    assert result.grade == "B"


def test_percentage_never_exceeds_hundred_for_wide_questions():
    answers = [{"score": 50, "min_score": 0, "max_score": 50}]
    result = compute_result(answers, scale_max=5)
    assert result.percentage == Decimal("100.00")
    assert result.grade == "A"


def test_grade_uses_unrounded_aggregate():
    # Mean 4.4966... shows as 4.50, but is 89.93% and grades B+.
    answers = [{"score": "4.5"}, {"score": "4.5"}, {"score": "4.49"}]
    result = compute_result(answers, scale_max=5)
    assert result.score == Decimal("4.50")
    assert result.percentage == Decimal("89.93")
    assert result.grade == "B+"


def test_answer_percentage_rejects_empty_range():
    with pytest.raises(ValueError, match="max above min"):
        answer_percentage({"score": 3, "min_score": 3, "max_score": 3})
