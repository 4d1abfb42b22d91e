"""
Unit tests for the core data model.
"""

import pytest

from certprep.core.models import DomainTally, QuestionStat, percent, round_half_up


@pytest.mark.parametrize(
    "correct,total,expected",
    [(1, 8, 13), (3, 8, 38), (1, 3, 33), (2, 3, 67), (0, 0, 0), (7, 7, 100)],
)
def test_percent_rounds_half_up(correct, total, expected):
    assert percent(correct, total) == expected


@pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


class TestQuestion:
    def test_lettered_options_follow_present_options(self, question_factory):
        question = question_factory(1, options=("yes", "no"), correct=1)

        assert question.lettered_options == [("A", "yes"), ("B", "no")]
        assert question.correct_letter == "B"
        assert question.is_correct(1)

    @pytest.mark.parametrize("option,valid", [(0, True), (3, True), (4, False), (-1, False), (False, False), ("1", False)])
    def test_has_option(self, question_factory, option, valid):
        assert question_factory(1).has_option(option) is valid

    def test_is_immutable(self, question_factory):
        question = question_factory(1)
        with pytest.raises(AttributeError):
            question.domain = "Other"


class TestCounters:
    def test_domain_tally_accuracy(self):
        assert DomainTally().accuracy is None
        assert DomainTally(3, 4).accuracy == 0.75

    def test_question_stat_record(self):
        stat = QuestionStat()
        stat.record(False)
        stat.record(True)

        assert (stat.correct_count, stat.total_count) == (1, 2)
        assert stat.accuracy == 0.5
        assert stat.last_outcome_correct is True

    def test_question_stat_serialized_keys(self):
        assert QuestionStat(2, 5, False).to_dict() == {
            "correctCount": 2,
            "totalCount": 5,
            "lastOutcomeCorrect": False,
        }
