"""
Abstract base class for narration engines.

Engines turn one sentence into a WAV byte string.  The narration player
and the audio export flow only depend on this interface, so a different
speech backend can be dropped in without touching the synchroniser.
"""

import io
import wave
from abc import ABC, abstractmethod


class BaseTTSEngine(ABC):
    """
    Common interface for all speech engines.

    Subclasses implement :meth:`synthesize`, the audio format
    properties, and a settable ``voice``.  Synthesis failures must be
    raised as :class:`~narration.errors.SynthesisError` so they can be
    classified and recovered from.
    """

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Audio sample rate in Hz."""

    @property
    def sample_width(self) -> int:
        """Sample width in bytes (16-bit PCM)."""
        return 2

    @property
    def channels(self) -> int:
        """Number of audio channels (mono)."""
        return 1

    @property
    @abstractmethod
    def voice(self) -> str:
        """Identifier of the voice currently used."""

    @voice.setter
    @abstractmethod
    def voice(self, value: str) -> None:
        """Switch to another voice."""

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine identifier."""

    @abstractmethod
    def synthesize(self, text: str, speed_factor: float = 1.0) -> bytes:
        """
        Synthesise *text* to WAV bytes.

        Args:
            text:         Sentence to speak.
            speed_factor: Speed multiplier (>1 = faster, <1 = slower).

        Returns:
            Complete WAV file as bytes (16-bit mono PCM).

        Raises:
            SynthesisError: If the backend fails.
        """

    def generate_silence(self, duration_seconds: float) -> bytes:
        """Generate a WAV file containing *duration_seconds* of silence."""
        num_samples = int(self.sample_rate * max(0, duration_seconds))
        pcm_data = b"\x00" * self.sample_width * num_samples * self.channels
        return self._wrap_wav(pcm_data)

    def get_audio_duration(self, wav_bytes: bytes) -> float:
        """Return the duration in seconds of a WAV byte string."""
        try:
            with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
                rate = wf.getframerate()
                return wf.getnframes() / rate if rate > 0 else 0.0
        except (wave.Error, EOFError):
            return 0.0

    def _wrap_wav(self, pcm_data: bytes) -> bytes:
        """Wrap raw PCM in a WAV container."""
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(pcm_data)
        return buf.getvalue()
