"""
Chunked transcription for audio longer than one request allows.

The buffer is cut into fixed windows that overlap by a fixed amount, each
window is encoded and transcribed one after another in order, and the texts
are joined with blank lines. The overlapping audio is transcribed twice and
repeated words at the seams are left as they are.

A run moves through ``Decoding -> Splitting -> Transcribing(i/n) -> Merging
-> Done``; any failure moves it to ``Failed`` and stops it. There is no retry
and no partial result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from ..errors import (
    InvalidChunkConfig,
    PipelineBusy,
    SegmentTranscriptionFailed,
    VoiceNotesError,
)
from . import events as ev
from .audio import WAV_CONTENT_TYPE, AudioBuffer, AudioSegment, decode_audio, encode_wav
from .events import EventBus

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    def transcribe(
        self,
        audio_bytes: bytes,
        *,
        filename: str = ...,
        content_type: Optional[str] = ...,
        language: Optional[str] = ...,
    ) -> str: ...


class PipelineState(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    SPLITTING = "splitting"
    TRANSCRIBING = "transcribing"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineProgress:
    state: PipelineState
    current: int = 0
    total: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "current": self.current,
            "total": self.total,
            "error": self.error,
        }


ProgressObserver = Callable[[PipelineProgress], None]


def split_into_segments(
    buffer: AudioBuffer, window_seconds: float, overlap_seconds: float
) -> List[AudioSegment]:
    """
    Cut ``buffer`` into windows of ``window_seconds`` that start every
    ``window_seconds - overlap_seconds``.

    A buffer no longer than one window comes back as a single segment. The
    last window is clipped to the end of the buffer and ends exactly there.
    """
    if window_seconds <= 0:
        raise InvalidChunkConfig(f"Window must be positive, got {window_seconds}")
    if overlap_seconds < 0:
        raise InvalidChunkConfig(f"Overlap cannot be negative, got {overlap_seconds}")
    if window_seconds <= overlap_seconds:
        raise InvalidChunkConfig(
            f"Window ({window_seconds}s) must be longer than overlap ({overlap_seconds}s)"
        )

    rate = buffer.sample_rate
    total = buffer.frames
    window_frames = int(round(window_seconds * rate))
    stride_frames = int(round((window_seconds - overlap_seconds) * rate))
    if window_frames <= 0 or stride_frames <= 0:
        raise InvalidChunkConfig(
            f"Window/overlap of {window_seconds}s/{overlap_seconds}s is below one sample at {rate} Hz"
        )

    if total <= window_frames:
        return [_segment(buffer, 0, total)]

    segments = []
    start = 0
    while True:
        end = min(start + window_frames, total)
        segments.append(_segment(buffer, start, end))
        if end >= total:
            break
        start += stride_frames
    return segments


def _segment(buffer: AudioBuffer, start: int, end: int) -> AudioSegment:
    rate = float(buffer.sample_rate)
    return AudioSegment(
        samples=buffer.samples[start:end],
        sample_rate=buffer.sample_rate,
        start_seconds=start / rate,
        end_seconds=end / rate,
    )


def merge_transcripts(texts: Sequence[str]) -> str:
    return "\n\n".join(t.strip() for t in texts if t and t.strip())


class ChunkedTranscriptionPipeline:
    def __init__(
        self,
        transcriber: Transcriber,
        *,
        window_seconds: float = 600.0,
        overlap_seconds: float = 5.0,
        events: Optional[EventBus] = None,
    ):
        self.transcriber = transcriber
        self.window_seconds = window_seconds
        self.overlap_seconds = overlap_seconds
        self.events = events
        self.state = PipelineState.IDLE
        self._observers: List[ProgressObserver] = []
        self._busy = False

    @property
    def is_transcribing(self) -> bool:
        return self._busy

    def add_observer(self, observer: ProgressObserver) -> Callable[[], None]:
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def split_into_segments(
        self,
        buffer: AudioBuffer,
        window_seconds: Optional[float] = None,
        overlap_seconds: Optional[float] = None,
    ) -> List[AudioSegment]:
        return split_into_segments(
            buffer,
            self.window_seconds if window_seconds is None else window_seconds,
            self.overlap_seconds if overlap_seconds is None else overlap_seconds,
        )

    def transcribe(self, segments: Sequence[AudioSegment], language: Optional[str] = None) -> str:
        """Transcribe ``segments`` strictly in order; the first failure aborts the run."""
        total = len(segments)
        texts = []
        for position, segment in enumerate(segments, start=1):
            self._transition(PipelineState.TRANSCRIBING, current=position, total=total)
            logger.info(
                "Transcribing segment %d/%d (%.1fs-%.1fs)",
                position,
                total,
                segment.start_seconds,
                segment.end_seconds,
            )
            try:
                text = self.transcriber.transcribe(
                    encode_wav(segment),
                    filename=f"segment_{position:03d}.wav",
                    content_type=WAV_CONTENT_TYPE,
                    language=language,
                )
            except (VoiceNotesError, ValueError) as e:
                failure = SegmentTranscriptionFailed(position, total, e)
                self._transition(
                    PipelineState.FAILED, current=position, total=total, error=str(failure)
                )
                raise failure from e
            texts.append(text)

        self._transition(PipelineState.MERGING, current=total, total=total)
        return merge_transcripts(texts)

    def run(self, audio_bytes: bytes, language: Optional[str] = None) -> str:
        """Decode, split, transcribe and merge one uploaded file."""
        if self._busy:
            raise PipelineBusy("A transcription is already in progress")
        self._busy = True
        try:
            self._transition(PipelineState.DECODING)
            buffer = decode_audio(audio_bytes)

            self._transition(PipelineState.SPLITTING)
            segments = self.split_into_segments(buffer)
            logger.info(
                "Split %.1fs of audio into %d segment(s)", buffer.duration_seconds, len(segments)
            )

            text = self.transcribe(segments, language)
            self._transition(PipelineState.DONE, current=len(segments), total=len(segments))
            return text
        except SegmentTranscriptionFailed:
            raise
        except Exception as e:
            self._transition(PipelineState.FAILED, error=str(e))
            raise
        finally:
            self._busy = False

    def _transition(
        self, state: PipelineState, current: int = 0, total: int = 0, error: Optional[str] = None
    ) -> None:
        self.state = state
        progress = PipelineProgress(state=state, current=current, total=total, error=error)
        for observer in list(self._observers):
            observer(progress)
        if self.events is not None:
            self.events.emit(ev.PIPELINE_PROGRESS, **progress.to_dict())
