"""
Kokoro TTS engine wrapper.

Synthesises sentences with the Kokoro neural TTS model.  Runs locally
on CPU or GPU via PyTorch; the model auto-downloads from HuggingFace on
first use and is cached locally.
"""

import logging
from typing import Dict

import numpy as np

from narration.errors import SynthesisError

from .base_engine import BaseTTSEngine

logger = logging.getLogger(__name__)

# Kokoro native sample rate
_KOKORO_SAMPLE_RATE = 24000

# Available Kokoro voices grouped by accent and gender
KOKORO_VOICES: Dict[str, Dict[str, str]] = {
    # American Female
    "af_heart": {"accent": "American", "gender": "Female", "name": "Heart"},
    "af_bella": {"accent": "American", "gender": "Female", "name": "Bella"},
    "af_nicole": {"accent": "American", "gender": "Female", "name": "Nicole"},
    "af_sarah": {"accent": "American", "gender": "Female", "name": "Sarah"},
    "af_sky": {"accent": "American", "gender": "Female", "name": "Sky"},
    # American Male
    "am_adam": {"accent": "American", "gender": "Male", "name": "Adam"},
    "am_michael": {"accent": "American", "gender": "Male", "name": "Michael"},
    # British Female
    "bf_emma": {"accent": "British", "gender": "Female", "name": "Emma"},
    "bf_isabella": {"accent": "British", "gender": "Female", "name": "Isabella"},
    # British Male
    "bm_george": {"accent": "British", "gender": "Male", "name": "George"},
    "bm_lewis": {"accent": "British", "gender": "Male", "name": "Lewis"},
}

DEFAULT_KOKORO_VOICE = "af_heart"


class KokoroEngine(BaseTTSEngine):
    """
    Neural narration engine backed by Kokoro.

    Usage::

        engine = KokoroEngine(voice="af_heart")
        wav_bytes = engine.synthesize("Hello world.", speed_factor=1.0)

    The underlying pipeline is loaded lazily on the first call to
    :meth:`synthesize`.
    """

    def __init__(self, voice: str = DEFAULT_KOKORO_VOICE, lang_code: str = "a"):
        """
        Args:
            voice:     Voice identifier (see :data:`KOKORO_VOICES`).
            lang_code: ``'a'`` American English, ``'b'`` British English.

        Raises:
            ImportError: If ``kokoro`` is not installed.
        """
        self._voice = voice
        self._lang_code = lang_code
        self._pipeline = None

        try:
            import kokoro  # noqa: F401
        except ImportError:
            raise ImportError(
                "kokoro is required for the Kokoro TTS engine. "
                "Install with: pip install kokoro"
            )

    def _ensure_pipeline(self):
        if self._pipeline is not None:
            return

        logger.info(
            "Loading Kokoro TTS pipeline (voice=%s, lang=%s)...",
            self._voice,
            self._lang_code,
        )
        from kokoro import KPipeline

        self._pipeline = KPipeline(lang_code=self._lang_code)
        logger.info("Kokoro pipeline ready")

    @property
    def sample_rate(self) -> int:
        return _KOKORO_SAMPLE_RATE

    @property
    def engine_name(self) -> str:
        return f"Kokoro ({self._voice})"

    @property
    def voice(self) -> str:
        return self._voice

    @voice.setter
    def voice(self, value: str) -> None:
        if value != self._voice:
            logger.info("Kokoro voice: %s → %s", self._voice, value)
        self._voice = value

    def synthesize(self, text: str, speed_factor: float = 1.0) -> bytes:
        """
        Synthesise *text* to WAV bytes (16-bit mono PCM at 24 kHz).

        Raises:
            SynthesisError: If Kokoro fails or yields no audio.
        """
        if not text or not text.strip():
            return self.generate_silence(0.0)

        self._ensure_pipeline()

        audio_chunks = []
        try:
            generator = self._pipeline(
                text,
                voice=self._voice,
                speed=max(0.1, speed_factor),
            )
            for _graphemes, _phonemes, audio_chunk in generator:
                if audio_chunk is not None:
                    audio_chunks.append(np.asarray(audio_chunk, dtype=np.float32))
        except Exception as e:
            raise SynthesisError(
                f"Kokoro synthesis failed: {e}",
                {"voice": self._voice, "textLength": len(text)},
            ) from e

        if not audio_chunks:
            raise SynthesisError(
                "Kokoro produced no audio",
                {"voice": self._voice, "textLength": len(text)},
            )

        # float32 [-1, 1] → int16 PCM
        audio = np.clip(np.concatenate(audio_chunks), -1.0, 1.0)
        pcm_data = (audio * 32767).astype(np.int16).tobytes()
        return self._wrap_wav(pcm_data)

    def __repr__(self) -> str:
        return (
            f"KokoroEngine(voice={self._voice}, lang={self._lang_code}, "
            f"rate={self.sample_rate}Hz)"
        )
