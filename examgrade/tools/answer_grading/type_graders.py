"""Per-question-type grading strategies."""

import logging
from dataclasses import dataclass
from typing import Optional

from .ai_client import CompletionClient, complete_with_timeout, parse_grading_response
from .exceptions import GradingError
from .keyword_grader import KeywordFallbackGrader, round_half_up
from .models import AIAnalysis, Answer, GradingMethod, GradingOutcome, Question, QuestionOption
from .similarity import SimilarityScorer

LOG = logging.getLogger(__name__)

DEFAULT_AI_TIMEOUT_SECONDS = 3.0
DEFAULT_SHORT_ANSWER_MIN_LENGTH = 10
DEFAULT_SECTION = "A"


@dataclass(frozen=True)
class GradingThresholds:
    """Similarity cutoffs for short answers: above full, most or half credit."""
    full: float = 0.8
    most: float = 0.6
    half: float = 0.4
    most_credit: float = 0.8
    half_credit: float = 0.5


def _no_answer(feedback: str, model_answer: Optional[str]) -> GradingOutcome:
    return GradingOutcome(
        score=0,
        feedback=feedback,
        corrected_answer=model_answer,
        grading_method=GradingMethod.NO_ANSWER,
    )


class MultipleChoiceGrader:
    """All-or-nothing grading of a selected option."""

    @staticmethod
    def _find_selected(question: Question, selection: str) -> Optional[QuestionOption]:
        for matches in (
            lambda opt: opt.letter == selection,
            lambda opt: opt.text == selection,
            lambda opt: opt.id is not None and opt.id == selection,
        ):
            for option in question.options:
                if matches(option):
                    return option
        return None

    def grade(self, question: Question, answer: Answer, model_answer: Optional[str]) -> GradingOutcome:
        selection = answer.selected_option or answer.selected_option_letter
        if not selection:
            return _no_answer("No option selected", model_answer)

        if not question.options and not model_answer:
            raise GradingError(f"Question {question.id} has neither options nor a model answer")

        correct_option = next((opt for opt in question.options if opt.is_correct), None)
        selected_option = self._find_selected(question, selection) if question.options else None

        if correct_option and selected_option:
            is_correct = (
                (correct_option.id is not None and correct_option.id == selected_option.id)
                or correct_option.letter == selected_option.letter
            )
        else:
            reference = model_answer or ""
            is_correct = selection == reference or selection.lower() == reference.lower()

        corrected = correct_option.text if correct_option and correct_option.text else model_answer
        return GradingOutcome(
            score=question.points if is_correct else 0,
            feedback="Correct answer!" if is_correct else f"Incorrect. The correct answer is: {corrected}",
            corrected_answer=corrected,
            grading_method=GradingMethod.ENHANCED_GRADING,
            is_correct=is_correct,
        )


class ShortAnswerGrader:
    """Exact match, then a similarity ladder, for true-false and fill-in-blank."""

    def __init__(self, similarity: Optional[SimilarityScorer] = None,
                 thresholds: Optional[GradingThresholds] = None):
        self.similarity = similarity or SimilarityScorer()
        self.thresholds = thresholds or GradingThresholds()

    def _ladder_score(self, similarity: float, points: float) -> float:
        t = self.thresholds
        if similarity > t.full:
            return points
        if similarity > t.most:
            return round_half_up(points * t.most_credit)
        if similarity > t.half:
            return round_half_up(points * t.half_credit)
        return 0

    def grade(self, question: Question, answer: Answer, model_answer: Optional[str]) -> GradingOutcome:
        student_answer = (answer.text_answer or "").strip().lower()
        correct_answer = (model_answer or "").strip().lower()

        if not student_answer:
            return _no_answer("No answer provided", model_answer)

        if student_answer == correct_answer:
            return GradingOutcome(
                score=question.points,
                feedback="Correct!",
                corrected_answer=model_answer,
                grading_method=GradingMethod.ENHANCED_GRADING,
                is_correct=True,
            )

        similarity = self.similarity.score(student_answer, correct_answer)
        score = min(self._ladder_score(similarity, question.points), question.points)
        if score == question.points:
            feedback = "Correct!"
        elif score > 0:
            feedback = "Partially correct"
        else:
            feedback = "Incorrect"

        LOG.debug(f"Short answer similarity {similarity:.2f} for question {question.id}, score {score}")
        return GradingOutcome(
            score=score,
            feedback=feedback,
            corrected_answer=model_answer,
            grading_method=GradingMethod.ENHANCED_GRADING,
            is_correct=score >= question.points,
        )


class OpenEndedGrader:
    """AI grading of free text with a keyword fallback."""

    def __init__(self, client: CompletionClient,
                 keyword_grader: Optional[KeywordFallbackGrader] = None,
                 timeout: float = DEFAULT_AI_TIMEOUT_SECONDS,
                 short_answer_min_length: int = DEFAULT_SHORT_ANSWER_MIN_LENGTH,
                 default_section: str = DEFAULT_SECTION):
        """
        Initialize the grader.

        Args:
            client: Completion client the AI grade is requested from
            keyword_grader: Fallback grader for short answers and AI failures
            timeout: Seconds the AI call may take before falling back
            short_answer_min_length: Answers shorter than this skip the AI call
            default_section: Section that gets brief feedback; every other
                section is treated as an essay section
        """
        self.client = client
        self.keyword_grader = keyword_grader or KeywordFallbackGrader()
        self.timeout = timeout
        self.short_answer_min_length = short_answer_min_length
        self.default_section = default_section

    def is_essay_section(self, question: Question) -> bool:
        return question.section != self.default_section

    def build_prompt(self, question: Question, student_answer: str, model_answer: Optional[str]) -> str:
        """Build the grading prompt sent to the completion service."""
        essay = self.is_essay_section(question)
        instruction = ('Provide detailed feedback for this essay/open-ended question.'
                       if essay else 'Provide brief feedback.')
        feedback_hint = ('[Detailed feedback explaining score, strengths, and areas for improvement]'
                         if essay else '[Brief feedback]')

        return f"""Grade this answer quickly and provide feedback:

QUESTION: {question.text}
STUDENT ANSWER: {student_answer}
MODEL ANSWER: {model_answer or 'Evaluate based on question content'}
MAX POINTS: {question.points:g}
SECTION: {question.section}

{instruction}

Return ONLY valid JSON:
{{
  "score": [0-{question.points:g}],
  "feedback": "{feedback_hint}",
  "correctedAnswer": "[Model answer or key points expected]"
}}"""

    async def grade(self, question: Question, answer: Answer, model_answer: Optional[str]) -> GradingOutcome:
        student_answer = (answer.text_answer or "").strip()
        if not student_answer:
            return _no_answer("No answer provided", model_answer)

        if len(student_answer) < self.short_answer_min_length:
            LOG.debug(f"Using keyword matching for short answer to question {question.id}")
            return self.keyword_grader.grade(student_answer, model_answer, question.points)

        prompt = self.build_prompt(question, student_answer, model_answer)
        try:
            text = await complete_with_timeout(self.client, prompt, self.timeout)
            result = parse_grading_response(text)
            raw_score = float(result.get('score') or 0)
        except Exception as e:
            LOG.warning(f"AI grading failed for question {question.id}: {e}")
            fallback = self.keyword_grader.grade(student_answer, model_answer, question.points)
            LOG.info(f"Using keyword fallback for question {question.id}, score: {fallback.score}")
            return fallback

        essay = self.is_essay_section(question)
        score = min(max(0.0, raw_score), question.points)
        feedback = str(result.get('feedback') or ('AI graded your essay answer' if essay else 'AI graded answer'))
        corrected_answer = result.get('correctedAnswer') or model_answer
        if corrected_answer is not None:
            corrected_answer = str(corrected_answer)

        ai_analysis = None
        if essay:
            ai_analysis = AIAnalysis(
                detailed_feedback=str(result.get('feedback') or 'AI provided detailed analysis'),
                model_answer=corrected_answer,
                score=score,
                max_points=question.points,
            )

        return GradingOutcome(
            score=score,
            feedback=feedback,
            corrected_answer=corrected_answer,
            grading_method=GradingMethod.ENHANCED_AI_GRADING,
            is_correct=score >= question.points,
            ai_analysis=ai_analysis,
        )
