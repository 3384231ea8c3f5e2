"""Speech engines, voice selection, and audio assembly."""

from .audio_builder import AudioBuilder
from .base_engine import BaseTTSEngine
from .kokoro_engine import DEFAULT_KOKORO_VOICE, KOKORO_VOICES, KokoroEngine
from .voice_manager import VoiceInfo, VoiceManager

__all__ = [
    "AudioBuilder",
    "BaseTTSEngine",
    "DEFAULT_KOKORO_VOICE",
    "KOKORO_VOICES",
    "KokoroEngine",
    "VoiceInfo",
    "VoiceManager",
]
