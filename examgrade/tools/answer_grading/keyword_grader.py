"""Keyword coverage grading used when no AI grade is available."""

import logging
import math

from .models import GradingMethod, GradingOutcome

LOG = logging.getLogger(__name__)

DEFAULT_KEYWORD_MIN_LENGTH = 3
NO_MODEL_ANSWER_CREDIT = 0.7


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (0.5 -> 1)."""
    return int(math.floor(value + 0.5))


class KeywordFallbackGrader:
    """Score a free-text answer by how many model-answer keywords it mentions."""

    def __init__(self, keyword_min_length: int = DEFAULT_KEYWORD_MIN_LENGTH):
        self.keyword_min_length = keyword_min_length

    def extract_keywords(self, model_answer: str) -> list[str]:
        return [word for word in model_answer.lower().split() if len(word) >= self.keyword_min_length]

    def grade(self, student_answer: str, model_answer: str, max_points: float) -> GradingOutcome:
        """
        Grade by keyword coverage.

        Args:
            student_answer: The student's answer
            model_answer: Reference answer the keywords are taken from
            max_points: Maximum points for the question

        Returns:
            GradingOutcome tagged keyword_matching, or default_fallback when
            there is no model answer to compare against
        """
        student = (student_answer or "").lower()
        model = (model_answer or "").lower()

        if not model:
            return GradingOutcome(
                score=min(round_half_up(max_points * NO_MODEL_ANSWER_CREDIT), max_points),
                feedback=("Answer recorded. Your response shows understanding. "
                          "Manual review may provide additional feedback."),
                corrected_answer="Model answer not available",
                grading_method=GradingMethod.DEFAULT_FALLBACK,
            )

        keywords = self.extract_keywords(model)
        matches = sum(1 for keyword in keywords if keyword in student)
        match_ratio = matches / len(keywords) if keywords else 0
        score = min(round_half_up(match_ratio * max_points), max_points)

        found = f"{matches}/{len(keywords)}"
        if score >= max_points * 0.8:
            feedback = f"Excellent! Your answer includes {found} key concepts. Well done!"
        elif score >= max_points * 0.6:
            feedback = (f"Good work! Your answer covers {found} key concepts. "
                        "Consider expanding on missing points.")
        elif score >= max_points * 0.4:
            feedback = (f"Your answer touches on {found} key concepts. "
                        "Review the model answer to see what you might have missed.")
        else:
            feedback = (f"Your answer includes {found} key concepts. "
                        "Compare with the model answer to understand the expected response better.")

        LOG.debug(f"Keyword grading matched {found} keywords, score {score}/{max_points}")
        return GradingOutcome(
            score=score,
            feedback=feedback,
            corrected_answer=model_answer,
            grading_method=GradingMethod.KEYWORD_MATCHING,
        )
