"""
Centralized OpenAI client + model configuration.

The base URL is configurable so any OpenAI-compatible endpoint can be used
for transcription and refinement.
"""

from __future__ import annotations

from functools import lru_cache

from openai import OpenAI

from ..config import Config


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    if not Config.OPENAI_API_KEY:
        raise ValueError("OPENAI_API_KEY is required for OpenAI-backed features")
    return OpenAI(api_key=Config.OPENAI_API_KEY, base_url=Config.OPENAI_BASE_URL)


def chat_model() -> str:
    return Config.OPENAI_MODEL


def transcribe_model() -> str:
    return Config.TRANSCRIBE_MODEL
