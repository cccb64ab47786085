"""
Audio transcription through an OpenAI-compatible ``audio/transcriptions`` endpoint.

Model: gpt-4o-mini-transcribe by default (TRANSCRIBE_MODEL overrides it).
The endpoint is treated as unreliable: connection failures become
RemoteUnavailable, error responses and bodies without text become
TranscriptionRequestFailed.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError

from .errors import RemoteUnavailable, TranscriptionRequestFailed
from .services.openai_provider import get_openai_client, transcribe_model

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024

_MIME_TO_EXT = {
    "audio/webm": ".webm",
    "audio/mp4": ".mp4",
    "audio/m4a": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
}


# Containers the API accepts that libsndfile cannot decode; sent as one request
_SINGLE_REQUEST_MIMES = frozenset(
    {"audio/webm", "video/webm", "audio/mp4", "audio/m4a", "audio/x-m4a", "audio/mpeg", "audio/mp3"}
)


def base_mime(mime_type: Optional[str]) -> str:
    """Normalize a MIME type (drops parameters such as codecs, lowercases)."""
    return (mime_type or "").split(";")[0].strip().lower()


def filename_for(content_type: Optional[str], stem: str = "recording") -> str:
    # Browser recordings are webm unless told otherwise
    return stem + _MIME_TO_EXT.get(base_mime(content_type), ".webm")


def supports_single_request(content_type: Optional[str], size: int) -> bool:
    """Whether an upload can skip local decoding and go to the API whole."""
    return base_mime(content_type) in _SINGLE_REQUEST_MIMES and 0 < size <= MAX_AUDIO_BYTES


def _error_detail(error: APIStatusError) -> str:
    body = error.body
    if isinstance(body, dict):
        detail = body.get("error", body)
        if isinstance(detail, dict) and detail.get("message"):
            return str(detail["message"])
    return error.message or str(error)


class OpenAITranscriber:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or transcribe_model()

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    def transcribe(
        self,
        audio_bytes: bytes,
        *,
        filename: str = "recording.webm",
        content_type: Optional[str] = None,
        language: Optional[str] = None,
    ) -> str:
        """
        Transcribe one audio payload.

        Args:
            audio_bytes: Encoded audio (mp3, mp4, m4a, wav, webm, ogg, flac; up to 25MB)
            filename: Name sent with the upload; the API infers the format from its extension
            content_type: MIME type of the payload
            language: ISO-639-1 language hint

        Returns:
            The recognized text
        """
        if not audio_bytes:
            raise ValueError("Audio data is empty")
        if len(audio_bytes) > MAX_AUDIO_BYTES:
            raise ValueError(
                f"Audio file too large: {len(audio_bytes)} bytes (max {MAX_AUDIO_BYTES})"
            )

        kwargs = {
            "model": self.model,
            "file": (filename, io.BytesIO(audio_bytes), content_type or "application/octet-stream"),
            "response_format": "json",
        }
        if language:
            kwargs["language"] = language

        try:
            response = self.client.audio.transcriptions.create(**kwargs)
        except APIConnectionError as e:
            logger.error("Transcription endpoint unreachable: %s", e)
            raise RemoteUnavailable(f"Transcription endpoint unreachable: {e}") from e
        except APIStatusError as e:
            detail = _error_detail(e)
            logger.error("Transcription API error %s: %s", e.status_code, detail)
            raise TranscriptionRequestFailed(
                f"API Error: {e.status_code} - {detail}", status_code=e.status_code
            ) from e
        except OpenAIError as e:
            logger.error("Transcription failed: %s", e)
            raise TranscriptionRequestFailed(f"Transcription failed: {e}") from e

        text = getattr(response, "text", None)
        if not isinstance(text, str):
            logger.warning("Transcription API returned success but no text field")
            raise TranscriptionRequestFailed("Transcription failed: No text returned from API.")
        return text


def transcribe_bytes(
    audio_bytes: bytes,
    content_type: Optional[str] = None,
    language: Optional[str] = None,
    transcriber: Optional[OpenAITranscriber] = None,
) -> str:
    """Single-request transcription for short recordings."""
    transcriber = transcriber or OpenAITranscriber()
    text = transcriber.transcribe(
        audio_bytes,
        filename=filename_for(content_type),
        content_type=content_type,
        language=language,
    )
    if not text.strip():
        raise TranscriptionRequestFailed("Transcription failed: No text returned from API.")
    return text
