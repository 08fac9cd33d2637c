"""Build Exam and ExamAttempt records from YAML or JSON documents."""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .exceptions import AttemptLoadError
from .models import Answer, Exam, ExamAttempt

LOG = logging.getLogger(__name__)


def _read_document(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise AttemptLoadError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise AttemptLoadError(f"{path} must contain a mapping at the top level")
    return data


def build_exam(data: Dict[str, Any]) -> Exam:
    """
    Build an Exam from a plain dictionary.

    Options without a usable letter get A, B, C, ... by position.

    Raises:
        AttemptLoadError: If the document does not describe a valid exam
    """
    try:
        exam = Exam.model_validate(data)
    except ValidationError as e:
        raise AttemptLoadError(f"Invalid exam document: {e}") from e
    for question in exam.questions:
        question.ensure_option_letters()
    return exam


def build_attempt(data: Dict[str, Any], exam: Exam) -> ExamAttempt:
    """
    Build an ExamAttempt whose answers reference the exam's questions by id.

    Args:
        data: Attempt document; each answer has a "question" id
        exam: Exam the attempt belongs to

    Returns:
        ExamAttempt with resolved questions

    Raises:
        AttemptLoadError: If an answer references an unknown question or is invalid
    """
    answers = []
    for index, raw_answer in enumerate(data.get('answers') or []):
        if not isinstance(raw_answer, dict):
            raise AttemptLoadError(f"Answer {index} must be a mapping")
        question_id = str(raw_answer.get('question', ''))
        question = exam.question_by_id(question_id)
        if question is None:
            raise AttemptLoadError(f"Answer {index} references unknown question {question_id!r}")
        try:
            answers.append(Answer.model_validate({**raw_answer, 'question': question}))
        except ValidationError as e:
            raise AttemptLoadError(f"Invalid answer {index}: {e}") from e

    try:
        return ExamAttempt(
            id=str(data.get('id', '')),
            student_id=str(data.get('student_id', data.get('studentId', ''))),
            answers=answers,
        )
    except ValidationError as e:
        raise AttemptLoadError(f"Invalid attempt document: {e}") from e


def load_exam_and_attempt(exam_path: Path, attempt_path: Path) -> tuple[Exam, ExamAttempt]:
    """Load an exam file and an attempt file."""
    exam = build_exam(_read_document(exam_path))
    attempt = build_attempt(_read_document(attempt_path), exam)
    LOG.info(f"Loaded exam {exam.id} with {len(exam.questions)} questions "
             f"and attempt with {len(attempt.answers)} answers")
    return exam, attempt
