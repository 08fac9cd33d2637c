"""AI grading status tracking and the regrade decision for graded attempts."""

import logging
from typing import Optional

from .models import AIGradingStatus, Exam, ExamAttempt, GradingSummary
from .orchestrator import ChunkedGradingOrchestrator

LOG = logging.getLogger(__name__)


def needs_regrade(attempt: ExamAttempt) -> bool:
    """
    Decide whether an attempt should be offered for regrading.

    An attempt needs a regrade when AI grading failed for it, or when any
    free-text answer ended up without feedback.
    """
    if attempt.ai_grading_status == AIGradingStatus.FAILED:
        return True
    return any(answer.text_answer and not answer.feedback for answer in attempt.answers)


async def grade_attempt_with_status(orchestrator: ChunkedGradingOrchestrator,
                                    attempt: ExamAttempt,
                                    exam: Optional[Exam] = None) -> GradingSummary:
    """
    Grade an attempt and keep its ai_grading_status up to date.

    The status moves to in-progress before grading and to completed after.
    If the orchestrator itself raises, the status is set to failed and the
    exception is re-raised.

    Args:
        orchestrator: Orchestrator used to grade the attempt
        attempt: Attempt to grade in place
        exam: Exam definition

    Returns:
        GradingSummary from the orchestrator
    """
    attempt.ai_grading_status = AIGradingStatus.IN_PROGRESS
    try:
        summary = await orchestrator.grade(attempt, exam)
    except Exception:
        LOG.exception(f"AI grading failed for attempt {attempt.id}")
        attempt.ai_grading_status = AIGradingStatus.FAILED
        raise
    attempt.ai_grading_status = AIGradingStatus.COMPLETED
    return summary
