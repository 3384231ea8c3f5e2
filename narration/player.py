"""
Narration player: speaks the document sentence by sentence and keeps
the synchroniser's position in step with the speech.

The player never synthesises audio itself.  It drives a
:class:`NarrationSource`, calls
:meth:`~narration.sync.PageAudioSynchronizer.advance_to` after each
sentence completes, and reports synthesis failures to the session's
:class:`~narration.errors.ErrorHandler`.

A page or sentence jump made by the reader while a sentence is spoken
wins: narration carries on from the jumped-to sentence.
"""

import asyncio
import logging
from typing import List, Optional, Protocol, Tuple

from narration.errors import ErrorHandler, SynthesisError
from narration.sync import PageAudioSynchronizer
from narration.tts import AudioBuilder, BaseTTSEngine

logger = logging.getLogger(__name__)


class NarrationSource(Protocol):
    """Anything that can speak a sentence and report when it is done."""

    async def speak(
        self, text: str, voice: Optional[str], rate: float, volume: float
    ) -> None:
        """Speak *text*; raise :class:`SynthesisError` on failure."""


class EngineNarrationSource:
    """
    Narration source backed by a :class:`BaseTTSEngine`.

    Synthesis runs in a worker thread so the event loop (and pending
    page navigation) stays responsive.  When a builder is given, every
    spoken sentence is appended to it and its timeline span recorded.
    """

    def __init__(
        self,
        engine: BaseTTSEngine,
        builder: Optional[AudioBuilder] = None,
        sentence_pause: float = 0.15,
    ):
        self.engine = engine
        self.builder = builder
        self.sentence_pause = sentence_pause
        self.spans: List[Tuple[str, float, float]] = []

    async def speak(
        self, text: str, voice: Optional[str], rate: float, volume: float
    ) -> None:
        if voice and voice != self.engine.voice:
            self.engine.voice = voice
        try:
            wav = await asyncio.to_thread(self.engine.synthesize, text, rate)
        except SynthesisError:
            raise
        except Exception as e:
            raise SynthesisError(f"{self.engine.engine_name} failed: {e}") from e

        if self.builder is not None:
            start, end = self.builder.add_speech(wav, volume=volume)
            self.spans.append((text, start, end))
            self.builder.add_silence(self.sentence_pause)


class NarrationPlayer:
    """
    Plays the loaded document from the current sentence to the end.

    Usage::

        player = NarrationPlayer(sync, source, sync.errors, voice="af_heart")
        finished = await player.play()
    """

    def __init__(
        self,
        synchronizer: PageAudioSynchronizer,
        source: NarrationSource,
        error_handler: ErrorHandler,
        voice: Optional[str] = None,
        rate: float = 1.0,
        volume: float = 1.0,
        max_attempts: int = 2,
    ):
        self.sync = synchronizer
        self.source = source
        self.errors = error_handler
        self.voice = voice
        self.rate = rate
        self.volume = volume
        self.max_attempts = max(1, max_attempts)
        self._stop_requested = False
        self.spoken: List[int] = []
        self.skipped: List[int] = []

    @property
    def is_playing(self) -> bool:
        return self.sync.get_state().is_playing

    def stop(self) -> None:
        """Stop after the sentence currently being spoken."""
        self._stop_requested = True

    def skip_forward(self, count: int = 1) -> bool:
        """Continue *count* sentences ahead once the current one ends."""
        return self.sync.skip_sentences(count)

    def skip_backward(self, count: int = 1) -> bool:
        return self.sync.skip_sentences(-count)

    async def play(self, from_sentence: Optional[int] = None) -> bool:
        """
        Narrate until the end of the document, a stop request, or an
        unrecoverable synthesis failure.

        Returns:
            ``True`` if the last sentence was reached.
        """
        state = self.sync.get_state()
        if state.total_sentences == 0:
            logger.warning("Nothing to narrate: no sentences loaded")
            return False

        index = state.current_sentence_index if from_sentence is None else from_sentence
        if not 0 <= index < state.total_sentences:
            logger.warning("Cannot start narration at sentence %d", index)
            return False

        self._stop_requested = False
        self.spoken = []
        self.skipped = []
        self.sync.advance_to(index)
        self.sync.set_playing(True)
        try:
            while index < state.total_sentences:
                if self._stop_requested:
                    logger.info("Narration stopped at sentence %d", index)
                    return False
                jumps = self.sync.jump_count
                if not await self._speak_sentence(index):
                    return False
                if self.sync.jump_count != jumps:
                    # The reader jumped while this sentence was spoken.
                    index = self.sync.get_state().current_sentence_index
                    logger.info("Narration continues from sentence %d", index)
                    continue
                index += 1
                # The final call is past the end and leaves state alone.
                self.sync.advance_to(index)
                if index < state.total_sentences and not await self._check_sync(index):
                    return False
        finally:
            self.sync.set_playing(False)

        logger.info("Narration finished (%d skipped)", len(self.skipped))
        return True

    async def _speak_sentence(self, index: int) -> bool:
        """Speak one sentence with recovery; ``False`` means stop."""
        text = self.sync.sentence(index)
        if text is None:
            return False

        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.source.speak(text, self.voice, self.rate, self.volume)
                self.spoken.append(index)
                return True
            except SynthesisError as e:
                recovered = await self.errors.handle_audio_synthesis_error(
                    e, voice=self.voice, text=text, sentence_index=index
                )
                if not recovered:
                    logger.error("Narration halted at sentence %d", index)
                    return False
                logger.debug(
                    "Retrying sentence %d (attempt %d/%d)",
                    index,
                    attempt + 1,
                    self.max_attempts,
                )

        logger.warning("Skipping sentence %d after %d attempts", index, self.max_attempts)
        self.skipped.append(index)
        return True

    async def _check_sync(self, index: int) -> bool:
        """Verify the tracker followed narration to *index*."""
        state = self.sync.get_state()
        if state.current_sentence_index == index:
            return True
        recovered = await self.errors.handle_synchronization_error(
            f"Tracker at sentence {state.current_sentence_index}, narration at {index}",
            current_page=state.current_page,
            sentence_index=index,
        )
        if recovered:
            self.sync.advance_to(index)
            return self.sync.get_state().current_sentence_index == index
        return False

    def __repr__(self) -> str:
        return (
            f"NarrationPlayer(voice={self.voice}, rate={self.rate}, "
            f"volume={self.volume}, playing={self.is_playing})"
        )
