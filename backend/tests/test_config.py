from __future__ import annotations

import logging

import pytest

from voicenotes import logging_setup
from voicenotes.config import Config


def test_validate_requires_api_key(monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", None)

    with pytest.raises(ValueError, match="OPENAI_API_KEY is not set"):
        Config.validate()


def test_validate_rejects_overlap_not_shorter_than_window(monkeypatch):
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(Config, "CHUNK_WINDOW_SECONDS", 5.0)
    monkeypatch.setattr(Config, "CHUNK_OVERLAP_SECONDS", 5.0)

    with pytest.raises(ValueError, match="CHUNK_WINDOW_SECONDS"):
        Config.validate()


def test_s3_configured_needs_all_settings(monkeypatch):
    monkeypatch.setattr(Config, "S3_BUCKET", "bucket")
    monkeypatch.setattr(Config, "AWS_REGION", "us-east-1")
    monkeypatch.setattr(Config, "AWS_ACCESS_KEY_ID", "AKIA...")
    monkeypatch.setattr(Config, "AWS_SECRET_ACCESS_KEY", None)
    assert Config.s3_configured() is False

    monkeypatch.setattr(Config, "AWS_SECRET_ACCESS_KEY", "secret")
    assert Config.s3_configured() is True


@pytest.mark.parametrize(
    "value,expected",
    [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("15", 15), ("bogus", logging.INFO), ("", logging.INFO)],
)
def test_resolve_log_level(monkeypatch, value, expected):
    monkeypatch.setattr(Config, "LOG_LEVEL", value)

    assert logging_setup._resolve_level() == expected
