"""
Read-along session: PDF → sentences → page map → narration / export.

Coordinates one open document:

1. **Extraction** — read every page with PyMuPDF, falling back to the
   configured OCR callable for image-only pages.
2. **Segmentation** — split the document text into narration units.
3. **Indexing** — build the page map and reset playback to page 1.
4. **Narration** — drive a :class:`NarrationPlayer` through a narration
   source, keeping the page in step with the sentence being spoken.
5. **Export** — narrate every sentence into an :class:`AudioBuilder`,
   export MP3/WAV, and write a read-along timing map beside it.

Every failure is reported through the session's :class:`ErrorHandler`,
which is wired here with the recovery actions that need session state
(voice fallback, page map rebuild, OCR / text-layer fallbacks).

Usage::

    session = ReadAlongSession(NarrationConfig(voice="af_heart"))
    await session.load_document("book.pdf")
    await session.navigate_to_page(3)
    result = await session.export_audio("book.mp3")
    print(result.summary())
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from core.document import OCRFunction, PageText, PDFDocumentReader
from narration.errors import (
    ErrorHandler,
    ErrorInfo,
    ErrorType,
    NarrationError,
    OCRError,
    PDFLoadError,
    TextExtractionError,
)
from narration.player import EngineNarrationSource, NarrationPlayer, NarrationSource
from narration.script import segment_pages
from narration.sync import PageAudioSynchronizer, PageMap, PlaybackState, TimingMap
from narration.tts import (
    DEFAULT_KOKORO_VOICE,
    AudioBuilder,
    BaseTTSEngine,
    KokoroEngine,
    VoiceManager,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class NarrationConfig:
    """
    All tuneable parameters for a read-along session.

    Attributes:
        voice:                  Kokoro voice identifier.
        lang_code:              Kokoro language code (``a`` / ``b``).
        rate:                   Speech speed multiplier.
        volume:                 Narration volume, 0..1.
        debounce_seconds:       Quiet period before a page jump applies.
        ocr_mixed_pages:        Also OCR pages that have both text and images.
        sentence_pause:         Silence after each exported sentence (seconds).
        max_synthesis_attempts: Tries per sentence before it is skipped.
        mp3_bitrate:            Bitrate string for MP3 export.
        normalize_dBFS:         Target loudness for volume normalisation.
        crossfade_ms:           Fade duration at the track boundaries.
        write_timing_map:       Write ``<output>.timing.json`` after export.
        slow_index_seconds:     Indexing slower than this is reported.
        error_log_size:         Capacity of the error ring buffer.
        disable_tqdm:           Suppress progress bars.
    """

    voice: str = DEFAULT_KOKORO_VOICE
    lang_code: str = "a"
    rate: float = 1.0
    volume: float = 1.0

    debounce_seconds: float = 0.3
    ocr_mixed_pages: bool = False

    sentence_pause: float = 0.15
    max_synthesis_attempts: int = 2

    mp3_bitrate: str = "192k"
    normalize_dBFS: float = -20.0
    crossfade_ms: int = 30
    write_timing_map: bool = True

    slow_index_seconds: float = 5.0
    error_log_size: int = 100
    disable_tqdm: bool = False


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------


@dataclass
class ExportResult:
    """Summary returned after an audio export."""

    output_path: str = ""
    timing_map_path: Optional[str] = None
    total_sentences: int = 0
    sentences_spoken: int = 0
    sentences_skipped: int = 0
    finished: bool = False
    audio_duration: float = 0.0
    file_size_mb: float = 0.0
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        """Format a human-readable summary of the export."""
        return (
            f"{'=' * 60}\n"
            f"EXPORT {'COMPLETE' if self.finished else 'INCOMPLETE'}\n"
            f"{'=' * 60}\n"
            f"  Output:      {self.output_path}\n"
            f"  Timing map:  {self.timing_map_path or '-'}\n"
            f"  Sentences:   {self.sentences_spoken} / {self.total_sentences} spoken, "
            f"{self.sentences_skipped} skipped\n"
            f"  Duration:    {self.audio_duration:.1f}s "
            f"({self.audio_duration / 60:.1f} min)\n"
            f"  File size:   {self.file_size_mb:.1f} MB\n"
            f"  Wall time:   {self.elapsed_seconds:.1f}s\n"
            f"{'=' * 60}"
        )


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------


class ReadAlongSession:
    """
    Owns everything for one open document.

    The speech engine is created lazily, so sessions that only index
    and navigate never load a voice model.
    """

    def __init__(
        self,
        config: Optional[NarrationConfig] = None,
        error_handler: Optional[ErrorHandler] = None,
        engine: Optional[BaseTTSEngine] = None,
        voice_manager: Optional[VoiceManager] = None,
        ocr: Optional[OCRFunction] = None,
    ):
        self.config = config or NarrationConfig()
        self.errors = error_handler or ErrorHandler(
            max_log_size=self.config.error_log_size
        )
        self.sync = PageAudioSynchronizer(
            self.errors, debounce_seconds=self.config.debounce_seconds
        )
        self.voices = voice_manager or VoiceManager.from_kokoro(self.config.voice)
        self.ocr = ocr
        self.pages: List[PageText] = []
        self.player: Optional[NarrationPlayer] = None
        self._engine = engine
        self._reader: Optional[PDFDocumentReader] = None
        self._extracting: Optional[PDFDocumentReader] = None
        self._recovered_pages: Dict[int, PageText] = {}
        self._register_recovery()

    # ------------------------------------------------------------------
    # Lazy component initialisation
    # ------------------------------------------------------------------

    def _ensure_engine(self) -> BaseTTSEngine:
        if self._engine is None:
            logger.info("Loading TTS engine: %s", self.config.voice)
            self._engine = KokoroEngine(
                voice=self.config.voice, lang_code=self.config.lang_code
            )
            logger.info("Engine ready: %s", self._engine)
        return self._engine

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_document(self, pdf_path: str) -> PageMap:
        """
        Extract, segment, and index a PDF.

        Raises:
            PDFLoadError:        If the file cannot be opened.
            TextExtractionError: If no narratable text was found, or a
                                 page failed and could not be recovered.
            OCRError:            If OCR failed and could not be recovered.
        """
        t0 = time.perf_counter()

        reader = PDFDocumentReader(
            ocr=self.ocr, ocr_mixed_pages=self.config.ocr_mixed_pages
        )
        try:
            reader.load_pdf(pdf_path)
        except PDFLoadError as e:
            await self.errors.handle_pdf_load_error(e, pdf_path)
            raise

        # The open document stays in place until the new one is indexed.
        self._extracting = reader
        self._recovered_pages.clear()
        loaded = False
        try:
            pages: List[PageText] = []
            pbar = tqdm(
                range(1, reader.total_pages + 1),
                desc="Extracting text",
                unit="page",
                disable=self.config.disable_tqdm,
            )
            for page_number in pbar:
                pages.append(await self._extract_page(page_number))

            logger.info(
                "Extracted %d pages (%d via OCR)",
                len(pages),
                sum(1 for p in pages if p.extraction_method != "text"),
            )
            page_map = await self._index(pages, t0)
            loaded = True
        finally:
            self._extracting = None
            self._recovered_pages.clear()
            if not loaded:
                reader.close_document()

        self._close_reader()
        self._reader = reader
        return page_map

    async def load_text(self, page_texts: Sequence[str]) -> PageMap:
        """Index text that was already extracted, one string per page."""
        t0 = time.perf_counter()
        pages = [PageText(page_number=i + 1, text=t) for i, t in enumerate(page_texts)]
        page_map = await self._index(pages, t0)
        self._close_reader()
        return page_map

    async def _extract_page(self, page_number: int) -> PageText:
        try:
            return self._extracting.extract_page(page_number)
        except TextExtractionError as e:
            recovered = await self.errors.handle_text_extraction_error(
                e, page_number, "text"
            )
        except OCRError as e:
            recovered = await self.errors.handle_ocr_error(e, page_number)
            if not recovered:
                raise
            return self._recovered_pages.pop(page_number)

        if not recovered:
            raise TextExtractionError(
                f"Could not extract page {page_number}", {"pageNumber": page_number}
            )
        return self._recovered_pages.pop(page_number)

    async def _index(self, pages: List[PageText], t0: float) -> PageMap:
        if not pages:
            raise TextExtractionError("Document has no pages")

        sentences = segment_pages(p.text for p in pages)
        if not sentences:
            error = TextExtractionError(
                "No readable text found in the PDF",
                {"pageCount": len(pages)},
            )
            await self.errors.handle_text_extraction_error(error)
            raise error

        try:
            page_map = self.sync.load(sentences, len(pages), pages)
        except NarrationError as e:
            await self.errors.handle_exception(e, "Page Mapping")
            raise
        self.pages = pages

        elapsed = time.perf_counter() - t0
        if elapsed > self.config.slow_index_seconds:
            await self.errors.handle(
                ErrorType.PERFORMANCE_ERROR,
                f"Indexing took {elapsed:.1f}s",
                "Document Indexing",
                {"pageCount": len(pages), "sentenceCount": len(sentences)},
            )
        logger.info(
            "Document ready: %d pages, %d sentences in %.2fs",
            page_map.total_pages,
            page_map.total_sentences,
            elapsed,
        )
        return page_map

    # ------------------------------------------------------------------
    # Navigation & state
    # ------------------------------------------------------------------

    async def navigate_to_page(
        self, page_number: int, start_playback: bool = False
    ) -> bool:
        return await self.sync.navigate_to_page(page_number, start_playback)

    def go_to_sentence(self, sentence_index: int) -> bool:
        return self.sync.go_to_sentence(sentence_index)

    def skip_sentences(self, delta: int) -> bool:
        return self.sync.skip_sentences(delta)

    def get_state(self) -> PlaybackState:
        return self.sync.get_state()

    @property
    def document_path(self) -> Optional[str]:
        """Path of the open PDF, ``None`` for text-only sessions."""
        if self._reader is None:
            return None
        return self._reader.current_file_path

    # ------------------------------------------------------------------
    # Narration
    # ------------------------------------------------------------------

    async def narrate(
        self, source: NarrationSource, from_sentence: Optional[int] = None
    ) -> bool:
        """Narrate through *source* from the current (or given) sentence."""
        cfg = self.config
        self.player = NarrationPlayer(
            self.sync,
            source,
            self.errors,
            voice=cfg.voice,
            rate=cfg.rate,
            volume=cfg.volume,
            max_attempts=cfg.max_synthesis_attempts,
        )
        return await self.player.play(from_sentence)

    def stop(self) -> None:
        if self.player is not None:
            self.player.stop()

    async def export_audio(self, output_path: str) -> ExportResult:
        """
        Narrate the whole document into an audio file.

        Returns:
            :class:`ExportResult` with output metrics.
        """
        t0 = time.perf_counter()
        cfg = self.config
        state = self.sync.get_state()
        result = ExportResult(
            output_path=output_path, total_sentences=state.total_sentences
        )
        if state.total_sentences == 0:
            logger.warning("No document loaded, nothing to export")
            return result

        engine = self._ensure_engine()
        builder = AudioBuilder(sample_rate=engine.sample_rate)
        source = EngineNarrationSource(
            engine, builder, sentence_pause=cfg.sentence_pause
        )

        pbar = tqdm(
            total=state.total_sentences,
            desc="Narrating",
            unit="sent",
            disable=cfg.disable_tqdm,
        )

        def _progress(s: PlaybackState) -> None:
            pbar.n = s.current_sentence_index
            pbar.set_postfix(page=f"{s.current_page}/{s.total_pages}", refresh=False)
            pbar.refresh()

        self.sync.add_listener(_progress)
        try:
            result.finished = await self.narrate(source, from_sentence=0)
        finally:
            self.sync.remove_listener(_progress)
            pbar.close()

        result.sentences_spoken = len(self.player.spoken)
        result.sentences_skipped = len(self.player.skipped)

        if builder.is_empty:
            logger.warning("No audio produced, nothing to export")
            result.elapsed_seconds = time.perf_counter() - t0
            return result

        builder.normalize(target_dBFS=cfg.normalize_dBFS)
        builder.apply_crossfade(ms=cfg.crossfade_ms)

        if output_path.lower().endswith(".wav"):
            out = builder.export_wav(output_path)
        else:
            out = builder.export_mp3(output_path, bitrate=cfg.mp3_bitrate)

        result.audio_duration = builder.get_duration()
        result.file_size_mb = out.stat().st_size / (1024 * 1024)

        if cfg.write_timing_map:
            timing = self.build_timing_map(source, output_path)
            path = timing.save(Path(output_path).with_suffix(".timing.json"))
            result.timing_map_path = str(path)
            logger.info("Timing map written to %s", path)

        result.elapsed_seconds = time.perf_counter() - t0
        logger.info("\n%s", result.summary())
        return result

    def build_timing_map(
        self, source: EngineNarrationSource, output_path: str
    ) -> TimingMap:
        """Pair the player's spoken sentences with the source's timeline."""
        page_map = self.sync.page_map
        timing = TimingMap(
            source=Path(output_path).name,
            total_pages=page_map.total_pages if page_map else 0,
        )
        for index, (text, start, end) in zip(self.player.spoken, source.spans):
            page = page_map.page_for_sentence(index) if page_map else None
            timing.add(index, page or 0, start, end, text)
        return timing

    # ------------------------------------------------------------------
    # Recovery actions
    # ------------------------------------------------------------------

    def _register_recovery(self) -> None:
        self.errors.register_recovery(
            ErrorType.AUDIO_SYNTHESIS_ERROR, self._recover_with_fallback_voice
        )
        self.errors.register_recovery(
            ErrorType.SYNCHRONIZATION_ERROR, self._recover_by_rebuilding_map
        )
        self.errors.register_recovery(
            ErrorType.TEXT_EXTRACTION_ERROR, self._recover_page_with_ocr
        )
        self.errors.register_recovery(
            ErrorType.OCR_ERROR, self._recover_page_with_text_layer
        )

    def _recover_with_fallback_voice(self, info: ErrorInfo) -> bool:
        if self.player is None:
            return False
        fallback = self.voices.fallback_after(self.player.voice)
        if fallback is None:
            logger.warning("No fallback voice after %s", self.player.voice)
            return False
        logger.info("Switching voice %s → %s", self.player.voice, fallback.voice_id)
        self.player.voice = fallback.voice_id
        return True

    def _recover_by_rebuilding_map(self, info: ErrorInfo) -> bool:
        return self.sync.rebuild()

    def _recover_page_with_ocr(self, info: ErrorInfo) -> bool:
        page_number = info.details.get("pageNumber")
        if page_number is None or self._extracting is None or self.ocr is None:
            return False
        if info.details.get("extractionMethod") == "ocr":
            return False
        text = self._extracting.ocr_page(page_number)
        self._recovered_pages[page_number] = PageText(
            page_number=page_number, text=text, extraction_method="ocr"
        )
        return True

    def _recover_page_with_text_layer(self, info: ErrorInfo) -> bool:
        page_number = info.details.get("pageNumber")
        if page_number is None or self._extracting is None:
            return False
        self._recovered_pages[page_number] = self._extracting.extract_text_layer(
            page_number
        )
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _close_reader(self) -> None:
        if self._reader is not None:
            self._reader.close_document()
            self._reader = None

    def close(self) -> None:
        """End the session: cancel navigation and release the document."""
        self.stop()
        self.sync.destroy()
        self._close_reader()
        self.pages = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"ReadAlongSession({self.sync!r})"
