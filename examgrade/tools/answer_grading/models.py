"""Pydantic models for exams, attempts and grading outcomes."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """Question types an exam can contain."""
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    FILL_IN_BLANK = "fill-in-blank"
    OPEN_ENDED = "open-ended"
    MATCHING = "matching"
    ORDERING = "ordering"
    DRAG_DROP = "drag-drop"


class GradingMethod(str, Enum):
    """Which strategy produced an answer's score.

    The values are read by reporting and by the regrade decision, so they
    must stay exactly as written here.
    """
    ENHANCED_GRADING = "enhanced_grading"
    ENHANCED_AI_GRADING = "enhanced_ai_grading"
    KEYWORD_MATCHING = "keyword_matching"
    DEFAULT_FALLBACK = "default_fallback"
    NO_ANSWER = "no_answer"
    NOT_SELECTED = "not_selected"
    ERROR = "error"
    ERROR_FALLBACK = "error_fallback"
    FALLBACK_ERROR = "fallback_error"

    @property
    def is_ai(self) -> bool:
        """True when the score came from the AI completion service."""
        return "ai" in self.value


class AIGradingStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class _Record(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True,
                              coerce_numbers_to_str=True, protected_namespaces=())


def _bool_to_text(value: Any) -> Any:
    """YAML reads unquoted true/false as booleans; keep them as answer text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class QuestionOption(_Record):
    """One choice of a multiple-choice question."""
    text: str = Field(default="", description="Option text shown to the student")
    letter: Optional[str] = Field(default=None, description="Option letter (A, B, C, ...)")
    is_correct: bool = Field(default=False, description="Whether this option is the right one")
    id: Optional[str] = Field(default=None, description="Identity of the option in the store")

    text_from_bool = field_validator("text", mode="before")(_bool_to_text)


class Question(_Record):
    """A question as authored in the exam."""
    id: str = Field(description="Question identity")
    text: str = Field(default="", description="Question prompt")
    type: QuestionType = Field(description="Question type, selects the grader")
    points: float = Field(default=1, ge=0, description="Maximum score for this question")
    section: str = Field(default="A", description="Exam section, controls feedback verbosity")
    correct_answer: Optional[str] = Field(default=None, description="Model answer")
    options: List[QuestionOption] = Field(default_factory=list)

    correct_answer_from_bool = field_validator("correct_answer", mode="before")(_bool_to_text)

    def ensure_option_letters(self) -> "Question":
        """Assign A, B, C, ... to options that lack a usable letter.

        Letters that are already a single character are upper-cased in place.
        """
        for index, option in enumerate(self.options):
            letter = (option.letter or "").strip()
            if len(letter) == 1 and letter.isalpha():
                option.letter = letter.upper()
            else:
                option.letter = chr(ord("A") + index)
        return self


class AIAnalysis(_Record):
    """Detailed AI feedback kept for essay sections."""
    detailed_feedback: str
    model_answer: Optional[str] = None
    score: float
    max_points: float


class GradingOutcome(_Record):
    """Result of grading a single answer."""
    score: float = Field(description="Points awarded")
    feedback: str = Field(default="", description="Feedback shown to the student")
    corrected_answer: Optional[str] = Field(default=None, description="Model or corrected answer")
    grading_method: GradingMethod = Field(description="Strategy that produced the score")
    is_correct: Optional[bool] = Field(default=None)
    ai_analysis: Optional[AIAnalysis] = Field(default=None)


class Answer(_Record):
    """A student's answer to one question; grading fields are filled in place."""
    question: Question
    selected_option: Optional[str] = None
    selected_option_letter: Optional[str] = None
    text_answer: Optional[str] = None
    matching_answers: Optional[List[Dict[str, Any]]] = None
    ordering_answer: Optional[List[int]] = None
    drag_drop_answer: Optional[List[Dict[str, Any]]] = None
    is_selected: bool = True

    answers_from_bool = field_validator("selected_option", "text_answer", mode="before")(_bool_to_text)

    score: float = 0
    is_correct: Optional[bool] = None
    feedback: Optional[str] = None
    corrected_answer: Optional[str] = None
    grading_method: Optional[GradingMethod] = None
    ai_analysis: Optional[AIAnalysis] = None
    detailed_feedback: Optional[str] = None
    ai_model_answer: Optional[str] = None

    def has_answer(self) -> bool:
        """Whether the student supplied any content for this question."""
        return bool(
            self.text_answer
            or self.selected_option
            or self.selected_option_letter
            or self.matching_answers
            or self.ordering_answer
            or self.drag_drop_answer
        )

    def to_yaml_dict(self) -> dict:
        """Convert the graded fields to a dictionary suitable for YAML."""
        data = {
            'question': self.question.id,
            'score': self.score,
            'is_correct': self.is_correct,
            'feedback': self.feedback,
            'corrected_answer': self.corrected_answer,
            'grading_method': self.grading_method.value if self.grading_method else None,
        }
        if self.ai_analysis:
            data['ai_analysis'] = {
                'detailed_feedback': self.ai_analysis.detailed_feedback,
                'model_answer': self.ai_analysis.model_answer,
                'score': self.ai_analysis.score,
                'max_points': self.ai_analysis.max_points,
            }
        return data


class Exam(_Record):
    id: str
    title: str = ""
    questions: List[Question] = Field(default_factory=list)

    def question_by_id(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


class ExamAttempt(_Record):
    """One student's submission for one exam."""
    id: str = ""
    student_id: str = ""
    answers: List[Answer] = Field(default_factory=list)
    total_score: float = 0
    max_possible_score: float = 1
    ai_grading_status: AIGradingStatus = AIGradingStatus.PENDING


@dataclass
class GradingSummary:
    """Pipeline metrics returned by the orchestrator."""
    total_score: float
    max_possible_score: float
    processed_count: int
    ai_graded_count: int
    total_time_ms: float

    @property
    def percentage(self) -> float:
        if not self.max_possible_score:
            return 0.0
        return self.total_score / self.max_possible_score * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for YAML serialization."""
        return {
            'total_score': self.total_score,
            'max_possible_score': self.max_possible_score,
            'percentage': round(self.percentage, 2),
            'processed_count': self.processed_count,
            'ai_graded_count': self.ai_graded_count,
            'total_time_ms': round(self.total_time_ms, 1),
        }
