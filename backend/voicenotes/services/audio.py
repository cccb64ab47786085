"""
Audio decode/encode helpers for the chunked transcription pipeline.

Samples are float32 numpy arrays shaped ``(frames, channels)``. Segments are
sent to the transcription API as mono 16 kHz 16-bit PCM WAV so a full
10-minute window stays well under the 25 MB upload limit.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

import numpy as np

from ..errors import AudioDecodeError

TARGET_SAMPLE_RATE = 16000
WAV_CONTENT_TYPE = "audio/wav"


@dataclass(frozen=True)
class AudioBuffer:
    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frames / float(self.sample_rate)


@dataclass(frozen=True)
class AudioSegment:
    samples: np.ndarray
    sample_rate: int
    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds


def decode_audio(data: bytes) -> AudioBuffer:
    """Decode any container libsndfile understands (wav, flac, ogg, mp3)."""
    if not data:
        raise AudioDecodeError("Audio data is empty")
    import soundfile as sf

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError) as e:
        raise AudioDecodeError(
            f"Audio format not supported or corrupted: {e}"
        ) from e
    return AudioBuffer(samples=samples, sample_rate=int(sample_rate))


def _to_mono(samples: np.ndarray) -> np.ndarray:
    if samples.ndim == 2:
        samples = samples.mean(axis=1)
    return samples.astype(np.float32, copy=False)


def _resample_mono_f32(x: np.ndarray, src_hz: int, dst_hz: int) -> np.ndarray:
    if src_hz == dst_hz or x.size == 0:
        return x.astype(np.float32, copy=False)
    t_src = np.arange(x.shape[0], dtype=np.float64) / float(src_hz)
    n_dst = int(round(x.shape[0] * dst_hz / float(src_hz)))
    if n_dst <= 0:
        return np.zeros(0, dtype=np.float32)
    t_dst = np.arange(n_dst, dtype=np.float64) / float(dst_hz)
    return np.interp(t_dst, t_src, x).astype(np.float32)


def encode_wav(segment: AudioSegment, sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
    """Encode a segment as mono 16-bit PCM WAV at ``sample_rate``."""
    import soundfile as sf

    mono = _resample_mono_f32(_to_mono(segment.samples), segment.sample_rate, sample_rate)
    mono = np.clip(mono, -1.0, 1.0)
    out = io.BytesIO()
    sf.write(out, mono, sample_rate, format="WAV", subtype="PCM_16")
    return out.getvalue()
