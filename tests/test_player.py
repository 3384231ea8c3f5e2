"""Tests for the narration player and the engine-backed source."""

import asyncio
from unittest.mock import MagicMock

import pytest

from narration.errors import ErrorHandler, ErrorType, SynthesisError
from narration.player import EngineNarrationSource, NarrationPlayer
from narration.sync import PageAudioSynchronizer
from narration.tts import AudioBuilder


class FakeSource:
    """Records spoken sentences; fails while the voice is in ``fail_voices``."""

    def __init__(self, fail_voices=(), fail_texts=(), delay=0.0):
        self.fail_voices = set(fail_voices)
        self.fail_texts = set(fail_texts)
        self.delay = delay
        self.spoken = []
        self.on_speak = None

    async def speak(self, text, voice, rate, volume):
        if voice in self.fail_voices or text in self.fail_texts:
            raise SynthesisError(f"cannot speak with {voice}")
        self.spoken.append((text, voice))
        if self.on_speak is not None:
            self.on_speak(text)
        if self.delay:
            await asyncio.sleep(self.delay)


def _sync(n=6, pages=3):
    sync = PageAudioSynchronizer(ErrorHandler(), debounce_seconds=0.01)
    sync.load([f"Sentence number {i}." for i in range(n)], pages)
    return sync


class TestPlay:
    def test_plays_to_the_end_and_follows_pages(self):
        sync = _sync()
        pages = []
        sync.add_listener(lambda s: pages.append(s.current_page))
        source = FakeSource()
        player = NarrationPlayer(sync, source, sync.errors, voice="af_heart")

        assert asyncio.run(player.play())
        assert player.spoken == list(range(6))
        assert [t for t, _ in source.spoken] == sync.sentences
        state = sync.get_state()
        assert state.current_sentence_index == 5
        assert state.current_page == 3
        assert not state.is_playing
        assert 2 in pages

    def test_plays_from_given_sentence(self):
        sync = _sync()
        player = NarrationPlayer(sync, FakeSource(), sync.errors)
        assert asyncio.run(player.play(from_sentence=4))
        assert player.spoken == [4, 5]

    @pytest.mark.parametrize("start", [-1, 6])
    def test_rejects_out_of_range_start(self, start):
        sync = _sync()
        player = NarrationPlayer(sync, FakeSource(), sync.errors)
        assert not asyncio.run(player.play(from_sentence=start))

    def test_nothing_loaded(self):
        sync = PageAudioSynchronizer(ErrorHandler())
        player = NarrationPlayer(sync, FakeSource(), sync.errors)
        assert not asyncio.run(player.play())

    def test_stop_after_current_sentence(self):
        sync = _sync()
        source = FakeSource()
        player = NarrationPlayer(sync, source, sync.errors)
        source.on_speak = lambda text: player.stop() if text == "Sentence number 1." else None
        assert not asyncio.run(player.play())
        assert player.spoken == [0, 1]
        assert not player.is_playing


class TestReaderNavigation:
    def test_page_jump_during_playback_is_followed(self):
        sync = _sync(n=20, pages=10)
        source = FakeSource(delay=0.1)
        player = NarrationPlayer(sync, source, sync.errors)

        async def scenario():
            playing = asyncio.ensure_future(player.play())
            while not source.spoken:
                await asyncio.sleep(0)
            assert await sync.navigate_to_page(8)
            assert sync.get_state().current_page == 8
            return await playing

        assert asyncio.run(scenario())
        assert player.spoken == [0, 14, 15, 16, 17, 18, 19]
        assert sync.get_state().current_page == 10

    def test_sentence_jump_during_playback_is_followed(self):
        sync = _sync()
        source = FakeSource()
        player = NarrationPlayer(sync, source, sync.errors)
        source.on_speak = lambda text: sync.go_to_sentence(4) if text == "Sentence number 1." else None
        assert asyncio.run(player.play())
        assert player.spoken == [0, 1, 4, 5]

    def test_skip_backward_repeats_sentences(self):
        sync = _sync()
        source = FakeSource()
        player = NarrationPlayer(sync, source, sync.errors)
        replayed = []

        def on_speak(text):
            if text == "Sentence number 3." and not replayed:
                replayed.append(text)
                player.skip_backward(2)

        source.on_speak = on_speak
        assert asyncio.run(player.play())
        assert player.spoken == [0, 1, 2, 3, 1, 2, 3, 4, 5]

    def test_skip_forward_is_clamped_to_last_sentence(self):
        sync = _sync()
        source = FakeSource()
        player = NarrationPlayer(sync, source, sync.errors)
        source.on_speak = lambda text: player.skip_forward(10) if text == "Sentence number 0." else None
        assert asyncio.run(player.play())
        assert player.spoken == [0, 5]


class TestRecovery:
    def test_switches_voice_and_retries(self):
        sync = _sync()
        source = FakeSource(fail_voices={"bad"})
        player = NarrationPlayer(sync, source, sync.errors, voice="bad")

        def fallback(info):
            player.voice = "good"
            return True

        sync.errors.register_recovery(ErrorType.AUDIO_SYNTHESIS_ERROR, fallback)
        assert asyncio.run(player.play())
        assert player.spoken == list(range(6))
        assert {voice for _, voice in source.spoken} == {"good"}
        assert len(sync.errors) == 1
        assert sync.errors.entries()[0].details["sentenceIndex"] == 0

    def test_unrecovered_failure_halts(self):
        sync = _sync()
        source = FakeSource(fail_texts={"Sentence number 2."})
        player = NarrationPlayer(sync, source, sync.errors)
        assert not asyncio.run(player.play())
        assert player.spoken == [0, 1]
        assert sync.get_state().current_sentence_index == 2
        assert not sync.get_state().is_playing

    def test_persistent_failure_is_skipped(self):
        sync = _sync()
        source = FakeSource(fail_texts={"Sentence number 3."})
        sync.errors.register_recovery(ErrorType.AUDIO_SYNTHESIS_ERROR, lambda info: True)
        player = NarrationPlayer(sync, source, sync.errors, max_attempts=2)
        assert asyncio.run(player.play())
        assert player.skipped == [3]
        assert player.spoken == [0, 1, 2, 4, 5]
        assert len(sync.errors) == 2

    def test_desync_is_reported_and_repaired(self):
        sync = _sync()
        sync.errors.register_recovery(ErrorType.SYNCHRONIZATION_ERROR, lambda info: sync.rebuild())
        player = NarrationPlayer(sync, FakeSource(), sync.errors)
        assert asyncio.run(player._check_sync(3))
        assert sync.get_state().current_sentence_index == 3
        info = sync.errors.entries()[0]
        assert info.type == ErrorType.SYNCHRONIZATION_ERROR
        assert info.recovered


class TestEngineNarrationSource:
    def test_records_spans_with_pauses(self, tone_engine):
        engine = tone_engine(seconds=0.5)
        source = EngineNarrationSource(engine, AudioBuilder(), sentence_pause=0.25)

        async def speak_two():
            await source.speak("First one.", None, 1.0, 1.0)
            await source.speak("Second one.", None, 1.0, 1.0)

        asyncio.run(speak_two())
        assert source.spans == [("First one.", 0.0, 0.5), ("Second one.", 0.75, 1.25)]

    def test_switches_engine_voice(self, tone_engine):
        engine = tone_engine(voice="af_heart")
        source = EngineNarrationSource(engine)
        asyncio.run(source.speak("Hello there.", "bf_emma", 1.0, 1.0))
        assert engine.voice == "bf_emma"
        assert engine.calls == [("bf_emma", "Hello there.")]

    def test_wraps_engine_failures(self):
        engine = MagicMock()
        engine.voice = "af_heart"
        engine.engine_name = "Broken"
        engine.synthesize.side_effect = RuntimeError("model missing")
        source = EngineNarrationSource(engine)
        with pytest.raises(SynthesisError):
            asyncio.run(source.speak("Hello there.", None, 1.0, 1.0))
