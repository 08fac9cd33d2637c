"""Tests for routing answers to type graders."""

import pytest
from unittest.mock import AsyncMock, Mock

from examgrade.tools.answer_grading.dispatcher import GradingDispatcher
from examgrade.tools.answer_grading.exceptions import AIResponseError, GradingError
from examgrade.tools.answer_grading.models import (
    Answer, GradingMethod, GradingOutcome, Question, QuestionOption, QuestionType
)
from examgrade.tools.answer_grading.type_graders import OpenEndedGrader


@pytest.fixture
def client():
    client = AsyncMock()
    client.complete.return_value = '{"score": 2, "feedback": "ok", "correctedAnswer": "x"}'
    return client


@pytest.fixture
def dispatcher(client):
    return GradingDispatcher(open_ended=OpenEndedGrader(client))


@pytest.mark.asyncio
async def test_multiple_choice_route(dispatcher):
    question = Question(
        id="q1", type=QuestionType.MULTIPLE_CHOICE, points=2,
        options=[QuestionOption(letter="A", text="No"), QuestionOption(letter="B", text="Yes", is_correct=True)],
    )
    result = await dispatcher.dispatch(question, Answer(question=question, selected_option_letter="B"))

    assert result.score == 2
    assert result.grading_method == GradingMethod.ENHANCED_GRADING


@pytest.mark.asyncio
@pytest.mark.parametrize("qtype", [QuestionType.TRUE_FALSE, QuestionType.FILL_IN_BLANK])
async def test_short_answer_routes(dispatcher, client, qtype):
    question = Question(id="q2", type=qtype, points=1, correct_answer="false")
    result = await dispatcher.dispatch(question, Answer(question=question, text_answer="False"))

    assert result.score == 1
    client.complete.assert_not_called()


@pytest.mark.asyncio
async def test_open_ended_route_uses_ai(dispatcher, client):
    question = Question(id="q3", type=QuestionType.OPEN_ENDED, points=4, correct_answer="model")
    answer = Answer(question=question, text_answer="A sufficiently long free-text answer")

    result = await dispatcher.dispatch(question, answer)

    client.complete.assert_awaited_once()
    assert result.grading_method == GradingMethod.ENHANCED_AI_GRADING


@pytest.mark.asyncio
async def test_model_answer_defaults_to_question(dispatcher):
    question = Question(id="q4", type=QuestionType.FILL_IN_BLANK, points=2, correct_answer="kernel")
    result = await dispatcher.dispatch(question, Answer(question=question, text_answer="kernel"))

    assert result.corrected_answer == "kernel"
    assert result.score == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("qtype", [QuestionType.MATCHING, QuestionType.ORDERING, QuestionType.DRAG_DROP])
async def test_unsupported_types(dispatcher, qtype):
    question = Question(id="q5", type=qtype, points=3)
    answer = Answer(question=question, ordering_answer=[2, 1, 0])

    result = await dispatcher.dispatch(question, answer)

    assert result.score == 0
    assert result.grading_method == GradingMethod.ERROR_FALLBACK
    assert result.feedback == "Question type not supported for automated grading"
    assert result.corrected_answer == "Not available"


@pytest.mark.asyncio
async def test_grading_error_gives_half_credit(client):
    short_answer = Mock()
    short_answer.grade.side_effect = GradingError("cannot compare")
    dispatcher = GradingDispatcher(open_ended=OpenEndedGrader(client), short_answer=short_answer)
    question = Question(id="q6", type=QuestionType.FILL_IN_BLANK, points=4, correct_answer="x")

    result = await dispatcher.dispatch(question, Answer(question=question, text_answer="y"))

    assert result.score == 2
    assert result.grading_method == GradingMethod.FALLBACK_ERROR
    assert "Manual review" in result.feedback


@pytest.mark.asyncio
async def test_multiple_choice_without_reference_gives_half_credit(dispatcher):
    question = Question(id="q7", type=QuestionType.MULTIPLE_CHOICE, points=3)

    result = await dispatcher.dispatch(question, Answer(question=question, selected_option="A"))

    assert result.score == 2
    assert result.grading_method == GradingMethod.FALLBACK_ERROR
    assert result.corrected_answer == "Not available"


@pytest.mark.asyncio
async def test_unexpected_error_propagates(client):
    multiple_choice = Mock()
    multiple_choice.grade.side_effect = RuntimeError("boom")
    dispatcher = GradingDispatcher(open_ended=OpenEndedGrader(client), multiple_choice=multiple_choice)
    question = Question(id="q7", type=QuestionType.MULTIPLE_CHOICE, points=1)

    with pytest.raises(RuntimeError, match="boom"):
        await dispatcher.dispatch(question, Answer(question=question, selected_option="A"))


@pytest.mark.asyncio
async def test_open_ended_ai_errors_never_reach_dispatcher(client):
    client.complete.side_effect = AIResponseError("bad response")
    dispatcher = GradingDispatcher(open_ended=OpenEndedGrader(client))
    question = Question(id="q8", type=QuestionType.OPEN_ENDED, points=2, correct_answer="memory paging")

    result = await dispatcher.dispatch(
        question, Answer(question=question, text_answer="paging moves memory to disk")
    )

    assert result.grading_method == GradingMethod.KEYWORD_MATCHING
    assert isinstance(result, GradingOutcome)
