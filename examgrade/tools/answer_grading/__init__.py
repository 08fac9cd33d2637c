"""Automated answer grading for completed exam attempts."""

from .ai_client import AgentCompletionClient, CompletionClient, create_grading_client
from .dispatcher import GradingDispatcher
from .exceptions import AIResponseError, AttemptLoadError, GradingError
from .keyword_grader import KeywordFallbackGrader
from .models import (
    AIAnalysis, AIGradingStatus, Answer, Exam, ExamAttempt, GradingMethod,
    GradingOutcome, GradingSummary, Question, QuestionOption, QuestionType
)
from .orchestrator import ChunkedGradingOrchestrator, build_dispatcher
from .review import grade_attempt_with_status, needs_regrade
from .similarity import SimilarityScorer
from .type_graders import GradingThresholds, MultipleChoiceGrader, OpenEndedGrader, ShortAnswerGrader

__all__ = [
    'AgentCompletionClient',
    'CompletionClient',
    'create_grading_client',
    'GradingDispatcher',
    'AIResponseError',
    'AttemptLoadError',
    'GradingError',
    'KeywordFallbackGrader',
    'AIAnalysis',
    'AIGradingStatus',
    'Answer',
    'Exam',
    'ExamAttempt',
    'GradingMethod',
    'GradingOutcome',
    'GradingSummary',
    'Question',
    'QuestionOption',
    'QuestionType',
    'ChunkedGradingOrchestrator',
    'build_dispatcher',
    'grade_attempt_with_status',
    'needs_regrade',
    'SimilarityScorer',
    'GradingThresholds',
    'MultipleChoiceGrader',
    'OpenEndedGrader',
    'ShortAnswerGrader',
]
