"""
Error types shared by the sync engine, the transcription client and the pipeline.

Routes map these to JSON error responses; services raise them and never
retry on their own.
"""

from __future__ import annotations


class VoiceNotesError(Exception):
    """Base class for all application errors."""


class RemoteUnavailable(VoiceNotesError):
    """Transport-level failure talking to the object store or the transcription API."""


class CorruptRemoteData(VoiceNotesError):
    """A remote index or response body could not be parsed."""


class CorruptLocalData(VoiceNotesError):
    """A locally stored index or tombstone list could not be parsed."""


class NotFound(VoiceNotesError):
    """An expected remote object is absent."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class SyncNotConfigured(VoiceNotesError):
    """Remote storage settings are missing."""


class TranscriptionRequestFailed(VoiceNotesError):
    """Non-success response, or a success response without text."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PipelineError(VoiceNotesError):
    """Failure of a chunked transcription run."""


class InvalidChunkConfig(PipelineError):
    """Window/overlap settings that would give a non-positive stride."""


class AudioDecodeError(PipelineError):
    """Uploaded audio could not be decoded into samples."""


class PipelineBusy(PipelineError):
    """A transcription run is already in progress."""


class SegmentTranscriptionFailed(PipelineError):
    """
    A segment request failed; the run was aborted.

    ``segment_index`` is 1-based, matching the ``Transcribing(i/n)`` progress
    events. The underlying error is chained as ``__cause__``.
    """

    def __init__(self, segment_index: int, segment_count: int, error: Exception):
        super().__init__(
            f"Transcription failed for segment {segment_index} of {segment_count}: {error}"
        )
        self.segment_index = segment_index
        self.segment_count = segment_count
        self.error = error
