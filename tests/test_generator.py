"""AnswerGenerator: prompt rendering, fallback and failure mapping."""

import pytest

from helpdesk.config.prompt_templates import FALLBACK_RESPONSE, NO_CONTEXT_PLACEHOLDER
from helpdesk.src.core.exceptions import ConfigurationError, GenerationError, PromptRenderError
from helpdesk.src.core.generator import AnswerGenerator
from helpdesk.src.core.models import Passage, RetrievedPassage

from fakes import failing_model, recording_model, slow_model


def _hit(text: str, score: float = 0.9) -> RetrievedPassage:
    return RetrievedPassage(passage=Passage(text=text, source_document_id="doc.txt#0", ordinal=0), score=score)


@pytest.mark.asyncio
async def test_prompt_carries_context_question_and_history():
    model, prompts = recording_model(["Your refund will arrive in 5 business days."])
    generator = AnswerGenerator(model)

    answer = await generator.generate([_hit("Refunds take 5 business days.")], "When is my refund?", "Customer: Hi")

    assert answer == "Your refund will arrive in 5 business days."
    prompt = prompts[0]
    assert "CONTEXT: Refunds take 5 business days." in prompt
    assert "CUSTOMER INQUIRY: When is my refund?" in prompt
    assert "CHAT HISTORY: Customer: Hi" in prompt


@pytest.mark.asyncio
async def test_no_passages_still_renders_context():
    model, prompts = recording_model()
    await AnswerGenerator(model).generate([], "Hello?", "(No previous conversation.)")
    assert NO_CONTEXT_PLACEHOLDER in prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   \n  "])
async def test_blank_output_falls_back(reply):
    model, _ = recording_model([reply])
    answer = await AnswerGenerator(model).generate([_hit("x")], "q", "h")
    assert answer == FALLBACK_RESPONSE


@pytest.mark.asyncio
async def test_answer_is_trimmed():
    model, _ = recording_model(["  Sure thing.\n"])
    assert await AnswerGenerator(model).generate([], "q", "h") == "Sure thing."


@pytest.mark.asyncio
async def test_model_failure_raises_generation_error():
    generator = AnswerGenerator(failing_model("quota exceeded"))

    with pytest.raises(GenerationError) as excinfo:
        await generator.generate([_hit("x")], "q", "h")
    assert excinfo.value.detail == "quota exceeded"


@pytest.mark.asyncio
async def test_model_timeout_raises_generation_error():
    generator = AnswerGenerator(slow_model(1.0), timeout=0.05)

    with pytest.raises(GenerationError) as excinfo:
        await generator.generate([], "q", "h")
    assert "timed out" in excinfo.value.detail


@pytest.mark.asyncio
async def test_missing_field_is_rejected_before_calling_model():
    model, prompts = recording_model()
    generator = AnswerGenerator(model)

    with pytest.raises(PromptRenderError) as excinfo:
        await generator.generate_from_fields({"context": "c", "question": "q"})
    assert excinfo.value.missing == frozenset({"chatHistory"})
    assert prompts == []


def test_render_without_model_call():
    model, prompts = recording_model()
    rendered = AnswerGenerator(model).render({"context": "c", "question": "q", "chatHistory": "h"})
    assert "CUSTOMER INQUIRY: q" in rendered.to_string()
    assert prompts == []


def test_template_missing_placeholder_is_rejected():
    model, _ = recording_model()
    with pytest.raises(ConfigurationError):
        AnswerGenerator(model, template="Answer {question} from {context}.")


def test_blank_fallback_is_rejected():
    model, _ = recording_model()
    with pytest.raises(ConfigurationError):
        AnswerGenerator(model, fallback="  ")
