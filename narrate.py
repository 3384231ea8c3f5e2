#!/usr/bin/env python3
"""
Read-along PDF narration — CLI entry point.

Indexes a PDF into narration sentences and pages, shows the page map,
jumps to a page the way a reader would, and exports the whole document
as narrated MP3 (or WAV) with a read-along timing map.

Usage::

    python narrate.py book.pdf --show-map
    python narrate.py book.pdf --page 7
    python narrate.py book.pdf --export book.mp3 --voice af_heart
    python narrate.py scan.pdf --export scan.wav --ocr -v 2

Verbosity levels::

    -v 0   Quiet — warnings and errors only.
    -v 1   Normal — phase summaries and progress bars (default).
    -v 2   Debug — per-sentence detail, all internal decisions.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from narration.errors import NarrationError
from narration.pipeline import NarrationConfig, ReadAlongSession

logger = logging.getLogger("narration")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _unit_float(value: str) -> float:
    """Parse a float in [0, 1]."""
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'")
    if not 0.0 <= f <= 1.0:
        raise argparse.ArgumentTypeError(f"Value must be between 0 and 1, got {f}")
    return f


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all session options."""
    p = argparse.ArgumentParser(
        description="Index a PDF for read-along narration and export narrated audio.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python narrate.py book.pdf --show-map\n"
            "  python narrate.py book.pdf --page 7\n"
            "  python narrate.py book.pdf --export book.mp3 --speed 1.1\n"
            "  python narrate.py scan.pdf --export scan.wav --ocr -v 2\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument("input", nargs="?", default=None, help="Path to the input PDF file")

    # -- Navigation --------------------------------------------------------
    nav = p.add_argument_group("navigation")
    nav.add_argument(
        "--page",
        type=int,
        default=None,
        metavar="N",
        help="Jump to page N (1-based) and report where narration resumes",
    )
    nav.add_argument(
        "--show-map",
        action="store_true",
        help="Print the page ↔ sentence map",
    )

    # -- Voice -------------------------------------------------------------
    voice = p.add_argument_group("voice")
    voice.add_argument(
        "--voice",
        default="af_heart",
        help="Kokoro voice ID (default: af_heart). Use --list-voices to see all.",
    )
    voice.add_argument(
        "--lang",
        default="a",
        choices=["a", "b"],
        help="Language code: 'a' American English, 'b' British English (default: a)",
    )
    voice.add_argument(
        "--speed",
        type=float,
        default=1.0,
        metavar="FLOAT",
        help="Speech speed multiplier (default: 1.0)",
    )
    voice.add_argument(
        "--volume",
        type=_unit_float,
        default=1.0,
        metavar="FLOAT",
        help="Narration volume, 0..1 (default: 1.0)",
    )
    voice.add_argument(
        "--list-voices",
        action="store_true",
        help="List available voices ranked by quality, then exit",
    )

    # -- Extraction --------------------------------------------------------
    extraction = p.add_argument_group("extraction")
    extraction.add_argument(
        "--ocr",
        action="store_true",
        help="OCR image-only pages with Tesseract (requires pytesseract)",
    )
    extraction.add_argument(
        "--ocr-mixed",
        action="store_true",
        help="Also OCR pages that have both text and images",
    )

    # -- Audio -------------------------------------------------------------
    audio = p.add_argument_group("audio")
    audio.add_argument(
        "--export",
        default=None,
        metavar="PATH",
        help="Narrate the whole document to PATH (.mp3 or .wav)",
    )
    audio.add_argument(
        "--bitrate",
        default="192k",
        help="MP3 bitrate (default: 192k)",
    )
    audio.add_argument(
        "--timing-map",
        dest="timing_map",
        action="store_true",
        default=True,
        help="Write <output>.timing.json beside the audio (default: on)",
    )
    audio.add_argument(
        "--no-timing-map",
        dest="timing_map",
        action="store_false",
        help="Do not write a timing map",
    )

    # -- Output control ----------------------------------------------------
    debug = p.add_argument_group("output control")
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the ``narration`` and ``core`` loggers.

    At verbosity 0 (WARNING), uses a minimal format. At 1+ (INFO /
    DEBUG), includes more context for traceability.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    for name in ("narration", "core"):
        root = logging.getLogger(name)
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("kokoro", "PIL", "pydub"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_list_voices(default_voice: str) -> None:
    """Print available voices, best first, then exit."""
    from narration.tts import VoiceManager

    voices = VoiceManager.from_kokoro(default_voice)
    print("Available voices (best first, auto-download on first use):")
    print()
    print(f"  {'ID':<15} {'LANG':<7} {'SCORE':>5}  NAME")
    print(f"  {'-' * 15} {'-' * 7} {'-' * 5}  {'-' * 10}")
    for v in voices.voices:
        print(f"  {v.voice_id:<15} {v.lang:<7} {v.quality:>5}  {voices.display_name(v.voice_id)}")
    print()
    print("Use --voice ID to select. Default: af_heart")


def _print_page_map(session: ReadAlongSession) -> None:
    print(f"  {'PAGE':>4}  {'SENTENCES':<13} {'CHARS':<15} {'WORDS':>6}  METHOD")
    for m in session.sync.get_all_page_mappings():
        if m.is_empty:
            print(f"  {m.page_number:>4}  {'(empty)':<13} {'':<15} {0:>6}  {m.extraction_method}")
            continue
        sentences = f"{m.start_sentence_index}-{m.end_sentence_index}"
        chars = f"{m.start_char_index}-{m.end_char_index}"
        print(
            f"  {m.page_number:>4}  {sentences:<13} {chars:<15} "
            f"{m.word_count:>6}  {m.extraction_method}"
        )


def _tesseract_ocr():
    """Return an OCR callable backed by Tesseract."""
    import pytesseract

    def _ocr(image) -> str:
        return pytesseract.image_to_string(image)

    return _ocr


# ------------------------------------------------------------------
# Session run
# ------------------------------------------------------------------


async def _run(args: argparse.Namespace, config: NarrationConfig, ocr) -> int:
    """Run the requested actions; returns the process exit code."""
    async with ReadAlongSession(config, ocr=ocr) as session:
        session.sync.add_redirect_listener(
            lambda requested, target: print(
                f"Page {requested} has no readable text, jumped to page {target}"
            )
        )

        try:
            page_map = await session.load_document(args.input)
        except NarrationError as e:
            logger.error("%s", e)
            return 1

        state = session.get_state()
        print(
            f"{Path(args.input).name}: {page_map.total_pages} pages, "
            f"{page_map.total_sentences} sentences"
        )

        if args.show_map:
            _print_page_map(session)

        if args.page is not None:
            if not await session.navigate_to_page(args.page):
                logger.error("Cannot navigate to page %s", args.page)
                return 1
            state = session.get_state()
            print(
                f"Page {state.current_page}: narration resumes at sentence "
                f"{state.current_sentence_index} (char {state.current_char_index})"
            )
            print(f"  {session.sync.sentence(state.current_sentence_index)}")

        if args.export:
            try:
                result = await session.export_audio(args.export)
            except ImportError as e:
                logger.error("%s", e)
                return 1
            if result.sentences_spoken == 0:
                logger.warning("No spoken content was produced")
                return 1

        stats = session.errors.statistics()
        if stats.total_errors:
            logger.info("%d error(s) recorded during this run", stats.total_errors)
            logger.debug("Error log:\n%s", session.errors.export_log())
    return 0


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the session."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)
    disable_tqdm = args.no_progress or args.verbose == 0

    # --list-voices exits early
    if args.list_voices:
        _cmd_list_voices(args.voice)
        return

    if args.input is None:
        parser.error("An input PDF is required")

    # Validate input file
    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input file not found: {input_path}")
    if input_path.suffix.lower() != ".pdf":
        parser.error(f"Input must be a PDF file: {input_path}")

    ocr = None
    if args.ocr or args.ocr_mixed:
        try:
            ocr = _tesseract_ocr()
        except ImportError:
            parser.error("--ocr requires pytesseract (pip install '.[ocr]')")

    config = NarrationConfig(
        voice=args.voice,
        lang_code=args.lang,
        rate=args.speed,
        volume=args.volume,
        ocr_mixed_pages=args.ocr_mixed,
        mp3_bitrate=args.bitrate,
        write_timing_map=args.timing_map,
        disable_tqdm=disable_tqdm,
    )

    # Log run header
    logger.info("Read-along PDF Narration")
    logger.info("  Input:  %s", input_path)
    if args.export:
        logger.info("  Export: %s", args.export)
        logger.info("  Voice:  %s (lang=%s)", config.voice, config.lang_code)
        if config.rate != 1.0:
            logger.info("  Speed:  %.2fx", config.rate)
        if config.volume != 1.0:
            logger.info("  Volume: %.2f", config.volume)
    if ocr is not None:
        logger.info("  OCR:    %s", "mixed pages" if args.ocr_mixed else "image-only pages")

    sys.exit(asyncio.run(_run(args, config, ocr)))


if __name__ == "__main__":
    main()
