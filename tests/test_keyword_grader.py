"""Tests for keyword fallback grading."""

import pytest

from examgrade.tools.answer_grading.keyword_grader import KeywordFallbackGrader, round_half_up
from examgrade.tools.answer_grading.models import GradingMethod


@pytest.fixture
def grader():
    return KeywordFallbackGrader()


class TestRoundHalfUp:

    def test_halves_round_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_regular_rounding(self):
        assert round_half_up(1.4) == 1
        assert round_half_up(1.6) == 2
        assert round_half_up(0) == 0


class TestKeywordFallbackGrader:

    @pytest.mark.parametrize("student_answer", ["", "anything at all", "x" * 500])
    def test_empty_model_answer_gives_default(self, grader, student_answer):
        """Without a model answer the score is always 70% of the points."""
        result = grader.grade(student_answer, "", 10)
        assert result.score == 7
        assert result.grading_method == GradingMethod.DEFAULT_FALLBACK
        assert result.corrected_answer == "Model answer not available"

    def test_none_model_answer_gives_default(self, grader):
        result = grader.grade("some answer", None, 5)
        assert result.score == round_half_up(5 * 0.7)
        assert result.grading_method == GradingMethod.DEFAULT_FALLBACK

    def test_keywords_ignore_short_words(self, grader):
        assert grader.extract_keywords("The CPU is a processor") == ["the", "cpu", "processor"]

    def test_keyword_min_length_is_configurable(self):
        grader = KeywordFallbackGrader(keyword_min_length=4)
        assert grader.extract_keywords("The CPU is a processor") == ["processor"]

    def test_all_keywords_matched(self, grader):
        result = grader.grade("Deadlock needs mutual exclusion and circular wait",
                              "mutual exclusion circular wait", 4)
        assert result.score == 4
        assert result.grading_method == GradingMethod.KEYWORD_MATCHING
        assert "4/4" in result.feedback
        assert result.feedback.startswith("Excellent!")
        assert result.corrected_answer == "mutual exclusion circular wait"

    def test_matching_is_substring_and_case_insensitive(self, grader):
        result = grader.grade("PAGING and segmentation", "pages segment", 2)
        # "segment" is contained in "segmentation", "pages" is not in the answer
        assert "1/2" in result.feedback
        assert result.score == 1

    @pytest.mark.parametrize("student_answer,expected_score,prefix", [
        ("alpha bravo charlie delta echo", 10, "Excellent!"),
        ("alpha bravo charlie", 6, "Good work!"),
        ("alpha bravo", 4, "Your answer touches on"),
        ("alpha", 2, "Your answer includes"),
        ("nothing relevant", 0, "Your answer includes"),
    ])
    def test_feedback_tiers(self, grader, student_answer, expected_score, prefix):
        result = grader.grade(student_answer, "alpha bravo charlie delta echo", 10)
        assert result.score == expected_score
        assert result.feedback.startswith(prefix)

    def test_feedback_reports_match_count(self, grader):
        result = grader.grade("alpha bravo", "alpha bravo charlie delta echo", 10)
        assert "2/5 key concepts" in result.feedback

    def test_model_answer_without_keywords(self, grader):
        result = grader.grade("an answer", "a b c", 3)
        assert result.score == 0
        assert "0/0" in result.feedback
        assert result.grading_method == GradingMethod.KEYWORD_MATCHING
