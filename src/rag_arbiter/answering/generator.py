"""Generative answer service contract and LangChain chat-model adapter."""

from __future__ import annotations

import os
from typing import Any, Protocol

from langchain_core.prompts import ChatPromptTemplate

from rag_arbiter.config import GenerationConfig

_SYSTEM_PROMPT = """
You are a helpful information assistant. Provide accurate, concise answers
based only on the provided context. {language_instruction}

Guidelines:
- Use only the provided context to answer questions.
- Be confident and direct; give specific details when available.
- If the context does not fully answer the question, say what you know.
- Keep a friendly, professional tone.
""".strip()

_USER_PROMPT = """
Context: {context}

Question: {question}

Answer the question based on the provided context. If the context does not
contain enough information, be honest about the limitations.
""".strip()


class AnswerGenerator(Protocol):
    """External generative service used on the ANSWER path."""

    def generate(self, question: str, context: str, language: str) -> str:
        """Return free-text answer for `question` grounded in `context`."""


class ChatModelAnswerGenerator:
    """Adapts any LangChain chat model to the `AnswerGenerator` contract."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm
        self.prompt = ChatPromptTemplate.from_messages(
            [("system", _SYSTEM_PROMPT), ("human", _USER_PROMPT)]
        )

    def generate(self, question: str, context: str, language: str) -> str:
        language_instruction = (
            f"Always respond in {language}." if language.lower() != "english" else ""
        )
        messages = self.prompt.format_messages(
            language_instruction=language_instruction,
            context=context,
            question=question,
        )
        response = self.llm.invoke(messages)
        return str(getattr(response, "content", response)).strip()


def create_chat_model(config: GenerationConfig | None = None) -> Any | None:
    """Create the default OpenAI chat model, or None without an API key."""

    if not os.getenv("OPENAI_API_KEY"):
        return None

    from langchain_openai import ChatOpenAI

    config = config or GenerationConfig()
    return ChatOpenAI(
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_response_tokens,
        timeout=config.timeout_seconds,
    )
