"""
Helpdesk - AnswerGenerator
===========================
Renders the answer prompt from retrieved passages, the customer's
question and the serialised chat history, then calls the hosted chat
model through a LangChain runnable chain::

    ChatPromptTemplate | chat model | StrOutputParser

Guarantees:
    • The template's named fields are checked before every call; a
      missing field raises ``PromptRenderError`` instead of sending a
      half-rendered prompt.
    • Output is never empty: blank / whitespace-only model output is
      replaced with ``FALLBACK_RESPONSE``.
    • Model failures (network, quota, safety rejection, timeout) raise
      ``GenerationError``; nothing is swallowed.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompt_values import PromptValue
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_google_genai import ChatGoogleGenerativeAI, HarmBlockThreshold, HarmCategory

from helpdesk.config.prompt_templates import ANSWER_PROMPT_FIELDS, ANSWER_PROMPT_TEMPLATE, FALLBACK_RESPONSE
from helpdesk.config.settings import Settings, settings
from helpdesk.src.core.exceptions import ConfigurationError, GenerationError, PromptRenderError
from helpdesk.src.core.models import RetrievedPassage
from helpdesk.src.utils.logger import get_logger
from helpdesk.src.utils.text_utils import format_context

logger = get_logger(__name__)


def build_chat_model(config: Settings | None = None) -> BaseChatModel:
    """
    Initialise the Gemini chat model via LangChain.

    Output length is capped at ``MAX_OUTPUT_TOKENS`` and harassment
    content is blocked at ``HARASSMENT_BLOCK_THRESHOLD``.
    """
    config = config or settings
    llm = ChatGoogleGenerativeAI(
        model=config.LLM_MODEL,
        temperature=config.LLM_TEMPERATURE,
        max_output_tokens=config.MAX_OUTPUT_TOKENS,
        safety_settings={HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold[config.HARASSMENT_BLOCK_THRESHOLD]},
        timeout=config.GENERATION_TIMEOUT_SECONDS,
        google_api_key=config.GOOGLE_API_KEY.get_secret_value(),
    )
    logger.info("LLM initialised: %s (temperature=%.1f, max_output_tokens=%d, harassment=%s)", config.LLM_MODEL, config.LLM_TEMPERATURE, config.MAX_OUTPUT_TOKENS, config.HARASSMENT_BLOCK_THRESHOLD)
    return llm


class AnswerGenerator:
    """
    Parameters
    ----------
    chat_model
        A LangChain chat model, or any runnable accepting a prompt value.
    template
        Prompt text with ``{field}`` placeholders.
    required_fields
        Placeholders that must be present in *template* and supplied on
        every call.
    timeout
        Seconds allowed for the model call.  Defaults to
        ``settings.GENERATION_TIMEOUT_SECONDS``.
    fallback
        Text returned when the model answers with nothing.
    """

    __slots__ = ("_prompt", "_chain", "_required", "_timeout", "_fallback")

    def __init__(self, chat_model: Runnable, template: str = ANSWER_PROMPT_TEMPLATE, required_fields: Iterable[str] = ANSWER_PROMPT_FIELDS, timeout: float | None = None, fallback: str = FALLBACK_RESPONSE) -> None:
        self._prompt = ChatPromptTemplate.from_template(template)
        self._required = frozenset(required_fields)

        undeclared = self._required - set(self._prompt.input_variables)
        if undeclared:
            raise ConfigurationError(f"Prompt template lacks placeholder(s): {', '.join(sorted(undeclared))}")
        if not fallback.strip():
            raise ConfigurationError("Fallback response must not be blank")

        self._chain = self._prompt | chat_model | StrOutputParser()
        self._timeout = timeout or settings.GENERATION_TIMEOUT_SECONDS
        self._fallback = fallback


    def render(self, fields: Mapping[str, str]) -> PromptValue:
        """Render the prompt without calling the model."""
        return self._prompt.invoke(self._checked(fields))


    async def generate(self, passages: Iterable[RetrievedPassage], question: str, chat_history: str) -> str:
        """Answer *question* from the retrieved *passages* and prior conversation."""
        fields = {"context": format_context(p.text for p in passages), "question": question, "chatHistory": chat_history}
        return await self.generate_from_fields(fields)


    async def generate_from_fields(self, fields: Mapping[str, str]) -> str:
        checked = self._checked(fields)

        t_start = time.perf_counter()
        try:
            answer = await asyncio.wait_for(self._chain.ainvoke(checked), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Chat model timed out after %.1fs.", self._timeout)
            raise GenerationError("Answer generation failed", detail=f"timed out after {self._timeout}s") from exc
        except Exception as exc:
            logger.error("Chat model call failed: %s", exc)
            raise GenerationError("Answer generation failed", detail=str(exc) or type(exc).__name__) from exc

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        answer = (answer or "").strip()
        if not answer:
            logger.warning("Chat model returned an empty answer after %.1fms — using fallback.", elapsed_ms)
            return self._fallback

        logger.info("LLM response: %.1fms (%d chars).", elapsed_ms, len(answer))
        return answer


    def _checked(self, fields: Mapping[str, str]) -> dict[str, str]:
        missing = {name for name in self._required if fields.get(name) is None}
        if missing:
            raise PromptRenderError(missing)
        return {name: str(fields[name]) for name in self._required}
