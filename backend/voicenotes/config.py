"""
Configuration management for the application.

Loads environment variables and provides centralized config access.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # OpenAI-compatible API settings
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1/")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    TRANSCRIBE_MODEL: str = os.getenv("TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")
    TRANSCRIBE_LANGUAGE: str = os.getenv("TRANSCRIBE_LANGUAGE", "en")

    # Long audio is split into overlapping windows before transcription
    CHUNK_WINDOW_SECONDS: float = float(os.getenv("CHUNK_WINDOW_SECONDS", "600"))
    CHUNK_OVERLAP_SECONDS: float = float(os.getenv("CHUNK_OVERLAP_SECONDS", "5"))

    # Local key-value store
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # S3 sync settings
    S3_BUCKET: Optional[str] = os.getenv("S3_BUCKET")
    AWS_REGION: Optional[str] = os.getenv("AWS_REGION")
    AWS_ACCESS_KEY_ID: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = os.getenv("AWS_SECRET_ACCESS_KEY")
    S3_ENDPOINT_URL: Optional[str] = os.getenv("S3_ENDPOINT_URL")
    S3_INDEX_KEY: str = os.getenv("S3_INDEX_KEY", "voice-notes.json")
    INITIAL_SYNC_DELAY_SECONDS: float = float(os.getenv("INITIAL_SYNC_DELAY_SECONDS", "3"))

    @classmethod
    def validate(cls):
        """Validate required configuration"""
        errors = []

        if not cls.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is not set")
        if cls.CHUNK_WINDOW_SECONDS <= cls.CHUNK_OVERLAP_SECONDS:
            errors.append("CHUNK_WINDOW_SECONDS must be greater than CHUNK_OVERLAP_SECONDS")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @classmethod
    def s3_configured(cls) -> bool:
        """Sync needs credentials, a region and a bucket, like the settings form asked for."""
        return all(
            [cls.S3_BUCKET, cls.AWS_REGION, cls.AWS_ACCESS_KEY_ID, cls.AWS_SECRET_ACCESS_KEY]
        )
