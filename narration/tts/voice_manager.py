"""
Voice selection for narration.

Filters the voices an engine offers down to English ones and ranks
them, so the session can pick a sensible default and fall back to the
next-best voice when synthesis with the current one fails.

A manager is constructed explicitly and handed to whoever needs it;
there is no process-wide instance.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .kokoro_engine import KOKORO_VOICES

logger = logging.getLogger(__name__)

_HIGH_QUALITY_MARKERS = ("neural", "premium", "enhanced", "natural")


@dataclass(frozen=True)
class VoiceInfo:
    """A voice offered by a speech backend."""

    voice_id: str
    name: str
    lang: str  # BCP-47 tag, e.g. "en-US"
    local_service: bool = True
    default: bool = False

    @property
    def is_google(self) -> bool:
        lowered = (self.name + " " + self.voice_id).lower()
        return "google" in lowered or "chrome" in self.name.lower()

    @property
    def is_english(self) -> bool:
        return self.lang == "en" or self.lang.startswith("en-")

    @property
    def quality(self) -> int:
        """Ranking score; higher is better."""
        score = 0
        if self.is_google:
            score += 100
        if self.lang == "en-US":
            score += 50
        elif self.lang.startswith("en-"):
            score += 30
        if self.local_service:
            score += 20
        if self.default:
            score += 10
        if any(m in self.name.lower() for m in _HIGH_QUALITY_MARKERS):
            score += 25
        return score


class VoiceManager:
    """
    Ranked collection of English voices.

    Usage::

        voices = VoiceManager.from_kokoro()
        voice = voices.best_voice()
        fallback = voices.fallback_after(voice.voice_id)
    """

    def __init__(self, voices: Iterable[VoiceInfo]):
        english = [v for v in voices if v.is_english]
        # Stable sort keeps the backend's order for equal scores
        self._voices: List[VoiceInfo] = sorted(english, key=lambda v: -v.quality)
        logger.debug("VoiceManager: %d English voices", len(self._voices))

    @classmethod
    def from_kokoro(cls, default_voice: Optional[str] = None) -> "VoiceManager":
        """Build a manager over the Kokoro voice table."""
        voices = []
        for voice_id, info in KOKORO_VOICES.items():
            lang = "en-US" if info["accent"] == "American" else "en-GB"
            voices.append(
                VoiceInfo(
                    voice_id=voice_id,
                    name=f"{info['name']} ({info['accent']} {info['gender']})",
                    lang=lang,
                    default=voice_id == default_voice,
                )
            )
        return cls(voices)

    @property
    def voices(self) -> List[VoiceInfo]:
        return list(self._voices)

    def google_voices(self) -> List[VoiceInfo]:
        return [v for v in self._voices if v.is_google]

    def best_voice(self, prefer_google: bool = True) -> Optional[VoiceInfo]:
        if not self._voices:
            return None
        if prefer_google:
            google = self.google_voices()
            if google:
                return google[0]
        return self._voices[0]

    def get_voice(self, voice_id: str) -> Optional[VoiceInfo]:
        for v in self._voices:
            if v.voice_id == voice_id:
                return v
        return None

    def fallback_after(self, voice_id: Optional[str]) -> Optional[VoiceInfo]:
        """
        Next-ranked voice after *voice_id*.

        Unknown or missing ids fall back to the best voice; the last
        voice in the ranking has no fallback.
        """
        ids = [v.voice_id for v in self._voices]
        if voice_id not in ids:
            best = self.best_voice()
            if best is not None and best.voice_id != voice_id:
                return best
            return None
        position = ids.index(voice_id)
        if position + 1 < len(self._voices):
            return self._voices[position + 1]
        return None

    def display_name(self, voice_id: str) -> str:
        v = self.get_voice(voice_id)
        if v is None:
            return voice_id
        label = v.name
        if v.is_google:
            label += " (Google)"
        if v.quality > 150:
            label += " *"
        return label

    def __len__(self) -> int:
        return len(self._voices)

    def __repr__(self) -> str:
        best = self.best_voice()
        return (
            f"VoiceManager(voices={len(self._voices)}, "
            f"best={best.voice_id if best else None})"
        )
