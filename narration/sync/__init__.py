"""Page–audio synchronisation: page map, playback tracking, navigation."""

from .models import AudioPosition, PageMap, PageMapping, PlaybackState
from .navigator import DEFAULT_DEBOUNCE_SECONDS, NavigationController
from .page_mapper import build_page_map, sentences_per_page
from .synchronizer import PageAudioSynchronizer
from .timing_map import TimingEntry, TimingMap
from .tracker import PlaybackTracker

__all__ = [
    "AudioPosition",
    "PageMap",
    "PageMapping",
    "PlaybackState",
    "DEFAULT_DEBOUNCE_SECONDS",
    "NavigationController",
    "build_page_map",
    "sentences_per_page",
    "PageAudioSynchronizer",
    "TimingEntry",
    "TimingMap",
    "PlaybackTracker",
]
