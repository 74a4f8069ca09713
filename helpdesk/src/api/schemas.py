"""Request / response bodies for the chat API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ChatTurn(BaseModel):
    role: str = Field(..., description="Speaker of the turn, e.g. 'user' or 'assistant'.")
    content: str


class ChatRequest(BaseModel):
    input_question: str = Field(..., description="The customer's question.")
    history: list[ChatTurn] = Field(..., description="Prior conversation turns, oldest first.")

    @field_validator("input_question")
    @classmethod
    def _question_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("input_question must not be empty")
        return v


class ChatResponse(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ErrorResponse(BaseModel):
    message: str
    error: str | None = None


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    index_mode: str
    passages: int
