"""Shared fixtures: synthetic speech and a scriptable engine."""

import io
import wave

import numpy as np
import pytest

from narration.errors import SynthesisError
from narration.tts import BaseTTSEngine

SAMPLE_RATE = 24000


def _tone_wav(seconds: float = 0.2, freq: float = 440.0) -> bytes:
    t = np.arange(int(SAMPLE_RATE * seconds)) / SAMPLE_RATE
    pcm = (0.3 * np.sin(2 * np.pi * freq * t) * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


class ToneEngine(BaseTTSEngine):
    """Speaks every sentence as a short tone; fails for chosen voices."""

    def __init__(self, voice: str = "af_heart", seconds: float = 0.2, fail_voices=()):
        self._voice = voice
        self.seconds = seconds
        self.fail_voices = set(fail_voices)
        self.calls = []

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    @property
    def voice(self) -> str:
        return self._voice

    @voice.setter
    def voice(self, value: str) -> None:
        self._voice = value

    @property
    def engine_name(self) -> str:
        return "Tone"

    def synthesize(self, text: str, speed_factor: float = 1.0) -> bytes:
        self.calls.append((self._voice, text))
        if self._voice in self.fail_voices:
            raise SynthesisError(f"voice {self._voice} unavailable")
        return _tone_wav(self.seconds)


@pytest.fixture
def tone_wav():
    return _tone_wav


@pytest.fixture
def tone_engine():
    return ToneEngine
