"""Grade an exam attempt in small concurrent batches."""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from tqdm import tqdm

from examgrade.libs.config_loader import ConfigType, get_config
from .ai_client import CompletionClient
from .dispatcher import GradingDispatcher
from .keyword_grader import DEFAULT_KEYWORD_MIN_LENGTH, KeywordFallbackGrader
from .models import Answer, Exam, ExamAttempt, GradingMethod, GradingOutcome, GradingSummary
from .type_graders import (
    DEFAULT_AI_TIMEOUT_SECONDS,
    DEFAULT_SECTION,
    DEFAULT_SHORT_ANSWER_MIN_LENGTH,
    GradingThresholds,
    OpenEndedGrader,
    ShortAnswerGrader,
)

LOG = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2
DEFAULT_INTER_BATCH_DELAY_SECONDS = 0.05


def build_dispatcher(configs: ConfigType, client: CompletionClient) -> GradingDispatcher:
    """
    Build a dispatcher with graders configured from the grading.* keys.

    Args:
        configs: Configuration dictionary
        client: Completion client for open-ended answers

    Returns:
        GradingDispatcher ready to use
    """
    thresholds = get_config("grading.similarity_thresholds", configs, default={}) or {}
    keyword_grader = KeywordFallbackGrader(
        keyword_min_length=get_config("grading.keyword_min_length", configs,
                                      default=DEFAULT_KEYWORD_MIN_LENGTH)
    )
    open_ended = OpenEndedGrader(
        client=client,
        keyword_grader=keyword_grader,
        timeout=get_config("grading.ai_timeout_seconds", configs, default=DEFAULT_AI_TIMEOUT_SECONDS),
        short_answer_min_length=get_config("grading.short_answer_min_length", configs,
                                           default=DEFAULT_SHORT_ANSWER_MIN_LENGTH),
        default_section=get_config("grading.default_section", configs, default=DEFAULT_SECTION),
    )
    short_answer = ShortAnswerGrader(thresholds=GradingThresholds(**thresholds))
    return GradingDispatcher(open_ended=open_ended, short_answer=short_answer)


class ChunkedGradingOrchestrator:
    """Grade every answer of an attempt, a few at a time."""

    def __init__(self, dispatcher: GradingDispatcher,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY_SECONDS,
                 show_progress: bool = False):
        """
        Initialize the orchestrator.

        Args:
            dispatcher: Routes each answer to its type grader
            batch_size: Answers graded concurrently before moving on
            inter_batch_delay: Seconds to pause between batches
            show_progress: Show a progress bar while grading
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.dispatcher = dispatcher
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.show_progress = show_progress

    @classmethod
    def from_config(cls, configs: ConfigType, client: CompletionClient,
                    show_progress: bool = False) -> "ChunkedGradingOrchestrator":
        return cls(
            dispatcher=build_dispatcher(configs, client),
            batch_size=get_config("grading.batch_size", configs, default=DEFAULT_BATCH_SIZE),
            inter_batch_delay=get_config("grading.inter_batch_delay_seconds", configs,
                                         default=DEFAULT_INTER_BATCH_DELAY_SECONDS),
            show_progress=show_progress,
        )

    async def _grade_answer(self, answer: Answer) -> Tuple[GradingOutcome, bool]:
        """Grade one answer; the flag says whether it was dispatched."""
        question = answer.question

        if answer.is_selected is False:
            return GradingOutcome(
                score=0,
                feedback="Question not selected",
                corrected_answer=question.correct_answer or "Not available",
                grading_method=GradingMethod.NOT_SELECTED,
            ), False

        if not answer.has_answer():
            return GradingOutcome(
                score=0,
                feedback="No answer provided",
                corrected_answer=question.correct_answer or "Not available",
                grading_method=GradingMethod.NO_ANSWER,
            ), True

        try:
            return await self.dispatcher.dispatch(question, answer, question.correct_answer), True
        except Exception as e:
            LOG.error(f"Error grading question {question.id}: {e}", exc_info=True)
            return GradingOutcome(
                score=0,
                feedback="Grading error occurred",
                corrected_answer=question.correct_answer,
                grading_method=GradingMethod.ERROR,
            ), True

    @staticmethod
    def _apply_outcome(answer: Answer, outcome: GradingOutcome) -> None:
        points = answer.question.points
        score = min(max(0, outcome.score or 0), points)

        answer.score = score
        answer.feedback = outcome.feedback or "No feedback"
        answer.is_correct = outcome.is_correct if outcome.is_correct is not None else score >= points
        answer.corrected_answer = outcome.corrected_answer or answer.question.correct_answer
        answer.grading_method = outcome.grading_method

        if outcome.ai_analysis:
            answer.ai_analysis = outcome.ai_analysis
            answer.detailed_feedback = outcome.ai_analysis.detailed_feedback
            answer.ai_model_answer = outcome.ai_analysis.model_answer

    def batches(self, answers: List[Answer]) -> List[List[Answer]]:
        return [answers[i:i + self.batch_size] for i in range(0, len(answers), self.batch_size)]

    async def grade(self, attempt: ExamAttempt, exam: Optional[Exam] = None) -> GradingSummary:
        """
        Grade all answers of an attempt in place.

        Batches run one after another; answers inside a batch are graded
        concurrently. A failure while grading one answer never affects the
        others.

        Args:
            attempt: The attempt whose answers are graded and updated
            exam: The exam definition, used for logging

        Returns:
            GradingSummary with totals and pipeline metrics
        """
        start_time = time.perf_counter()
        answers = attempt.answers
        label = (exam.title or exam.id) if exam else attempt.id
        LOG.info(f"Starting chunked grading of {len(answers)} answers for {label!r}")

        processed_count = 0
        ai_graded_count = 0
        batches = self.batches(answers)

        with tqdm(total=len(answers), desc="Grading answers", disable=not self.show_progress) as progress:
            for batch_index, batch in enumerate(batches):
                LOG.debug(f"Grading batch {batch_index + 1}/{len(batches)} ({len(batch)} answers)")
                results = await asyncio.gather(*(self._grade_answer(answer) for answer in batch))

                for answer, (outcome, dispatched) in zip(batch, results):
                    self._apply_outcome(answer, outcome)
                    if dispatched:
                        processed_count += 1
                    if outcome.grading_method.is_ai:
                        ai_graded_count += 1
                progress.update(len(batch))

                if batch_index + 1 < len(batches):
                    await asyncio.sleep(self.inter_batch_delay)

        total_score = sum(answer.score or 0 for answer in answers)
        max_possible_score = sum(answer.question.points or 1 for answer in answers) or 1
        attempt.total_score = total_score
        attempt.max_possible_score = max_possible_score

        total_time_ms = (time.perf_counter() - start_time) * 1000
        LOG.info(f"Grading completed in {total_time_ms:.0f}ms: processed {processed_count}, "
                 f"AI graded {ai_graded_count}, score {total_score:g}/{max_possible_score:g}")

        return GradingSummary(
            total_score=total_score,
            max_possible_score=max_possible_score,
            processed_count=processed_count,
            ai_graded_count=ai_graded_count,
            total_time_ms=total_time_ms,
        )

    def grade_sync(self, attempt: ExamAttempt, exam: Optional[Exam] = None) -> GradingSummary:
        """Synchronous wrapper for grade."""
        return asyncio.run(self.grade(attempt, exam))
