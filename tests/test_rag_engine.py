"""RAGEngine: the whole pipeline on offline fakes."""

import pytest

from helpdesk.src.core.exceptions import EmbeddingError, GenerationError

from fakes import REFUND_TEXT, OutageEmbeddings, failing_model, recording_model


@pytest.mark.asyncio
async def test_answer_grounded_in_documents(help_docs, make_engine):
    engine = make_engine()

    answer = await engine.answer("How long do refunds take?", [])

    assert "5 business days" in answer


@pytest.mark.asyncio
async def test_history_reaches_the_prompt(help_docs, make_engine):
    model, prompts = recording_model()
    engine = make_engine(chat_model=model)

    await engine.answer("And for refunds?", [{"role": "user", "content": "How long is shipping?"}, {"role": "assistant", "content": "3 to 7 days."}])

    assert "Customer: How long is shipping?\nAssistant: 3 to 7 days." in prompts[0]
    assert REFUND_TEXT in prompts[0]


@pytest.mark.asyncio
async def test_empty_folder_still_answers(make_engine):
    model, prompts = recording_model(["I could not find anything about that."])
    engine = make_engine(chat_model=model)

    assert await engine.answer("Where is my order?", []) == "I could not find anything about that."
    assert "(No relevant documents found.)" in prompts[0]


@pytest.mark.asyncio
async def test_engine_recovers_after_embedding_outage(help_docs, make_engine):
    fake = OutageEmbeddings(down=True)
    engine = make_engine(embeddings=fake)

    with pytest.raises(EmbeddingError):
        await engine.answer("How long do refunds take?", [])

    fake.down = False
    assert "5 business days" in await engine.answer("How long do refunds take?", [])


@pytest.mark.asyncio
async def test_generation_failure_propagates(help_docs, make_engine):
    engine = make_engine(chat_model=failing_model())

    with pytest.raises(GenerationError):
        await engine.answer("How long do refunds take?", [])


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", ["memory", "lancedb"])
async def test_per_request_mode(help_docs, make_engine, backend):
    engine = make_engine(INDEX_MODE="per_request", INDEX_BACKEND=backend)

    assert "5 business days" in await engine.answer("How long do refunds take?", [])
    assert engine.index_manager.snapshot is None


@pytest.mark.asyncio
async def test_warm_up_builds_shared_index(help_docs, make_engine):
    engine = make_engine()

    await engine.warm_up()

    assert engine.index_manager.snapshot.passages == 2
    engine.close()
    assert engine.index_manager.snapshot is None
