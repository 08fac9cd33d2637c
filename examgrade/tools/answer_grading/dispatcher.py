"""Route a question/answer pair to the grader for its question type."""

import logging
from typing import Optional

from .exceptions import GradingError
from .keyword_grader import round_half_up
from .models import Answer, GradingMethod, GradingOutcome, Question, QuestionType
from .type_graders import MultipleChoiceGrader, OpenEndedGrader, ShortAnswerGrader

LOG = logging.getLogger(__name__)

SHORT_ANSWER_TYPES = (QuestionType.TRUE_FALSE, QuestionType.FILL_IN_BLANK)


class GradingDispatcher:
    """Pick the type grader for a question and run it."""

    def __init__(self, open_ended: OpenEndedGrader,
                 multiple_choice: Optional[MultipleChoiceGrader] = None,
                 short_answer: Optional[ShortAnswerGrader] = None):
        self.open_ended = open_ended
        self.multiple_choice = multiple_choice or MultipleChoiceGrader()
        self.short_answer = short_answer or ShortAnswerGrader()

    async def dispatch(self, question: Question, answer: Answer,
                       model_answer: Optional[str] = None) -> GradingOutcome:
        """
        Grade one answer with the grader registered for its question type.

        Unsupported types get a zero score instead of an exception. A
        GradingError raised by a grader becomes half credit flagged for manual
        review; anything else propagates to the caller.

        Args:
            question: The question being answered
            answer: The student's answer
            model_answer: Reference answer (defaults to question.correct_answer)

        Returns:
            GradingOutcome for the answer
        """
        if model_answer is None:
            model_answer = question.correct_answer

        LOG.debug(f"Grading {question.type.value} question {question.id}")
        try:
            if question.type == QuestionType.MULTIPLE_CHOICE:
                return self.multiple_choice.grade(question, answer, model_answer)
            if question.type == QuestionType.OPEN_ENDED:
                return await self.open_ended.grade(question, answer, model_answer)
            if question.type in SHORT_ANSWER_TYPES:
                return self.short_answer.grade(question, answer, model_answer)
        except GradingError as e:
            LOG.error(f"Grading failed for question {question.id}: {e}")
            return GradingOutcome(
                score=min(round_half_up(question.points * 0.5), question.points),
                feedback="Unable to grade automatically. Manual review may be needed.",
                corrected_answer=model_answer or "Not available",
                grading_method=GradingMethod.FALLBACK_ERROR,
            )

        return GradingOutcome(
            score=0,
            feedback="Question type not supported for automated grading",
            corrected_answer=model_answer or "Not available",
            grading_method=GradingMethod.ERROR_FALLBACK,
        )
