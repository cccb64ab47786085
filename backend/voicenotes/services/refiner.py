"""
Optional clean-up of raw transcripts via a chat-completion model.

Fixes punctuation and paragraphing and drops filler words without changing
meaning or language.
"""

from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from .openai_provider import chat_model, get_openai_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You clean up voice-note transcripts. Fix punctuation, capitalization and "
    "paragraph breaks, and remove filler words and false starts. Keep the "
    "speaker's meaning, wording and language. Do not summarize, translate or "
    "add anything. Reply with the cleaned transcript only."
)


class TextRefiner:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: OpenAI | None = None,
    ):
        self._client = client or (OpenAI(api_key=api_key) if api_key else None)
        self.model = model or chat_model()

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    def refine(self, text: str, language: Optional[str] = None) -> str:
        if not text or not text.strip():
            return text

        prompt = text
        if language:
            prompt = f"Transcript language: {language}\n\n{text}"

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.2,
            )
        except OpenAIError as e:
            logger.error("OpenAI API error during refinement: %s", e)
            raise

        refined = completion.choices[0].message.content
        if not refined:
            raise ValueError("OpenAI returned empty refinement")
        return refined.strip()
