"""
Sentence timing map for read-along playback.

Links each narrated sentence to its page and its start/end time in the
exported audio, so a reader can highlight text while the file plays.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass
class TimingEntry:
    """Single timing entry linking audio time to a sentence."""

    sentence_index: int
    page_number: int
    start: float  # seconds
    end: float  # seconds
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentence": self.sentence_index,
            "page": self.page_number,
            "start": round(self.start, 3),
            "end": round(self.end, 3),
            "text": self.text,
        }


@dataclass
class TimingMap:
    """Timing data for a whole narrated document."""

    source: str
    total_pages: int
    entries: List[TimingEntry] = field(default_factory=list)
    version: str = "1.0"

    @property
    def duration(self) -> float:
        return self.entries[-1].end if self.entries else 0.0

    def add(
        self,
        sentence_index: int,
        page_number: int,
        start: float,
        end: float,
        text: str,
    ) -> TimingEntry:
        entry = TimingEntry(sentence_index, page_number, start, end, text)
        self.entries.append(entry)
        return entry

    def entry_at(self, seconds: float) -> Optional[TimingEntry]:
        """Entry being spoken at *seconds*, if any."""
        for entry in self.entries:
            if entry.start <= seconds < entry.end:
                return entry
        return None

    def page_start(self, page_number: int) -> Optional[float]:
        """Time at which narration of *page_number* begins."""
        for entry in self.entries:
            if entry.page_number == page_number:
                return entry.start
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "source": self.source,
            "totalPages": self.total_pages,
            "duration": round(self.duration, 3),
            "entries": [e.to_dict() for e in self.entries],
        }

    def save(self, path: Union[str, Path]) -> Path:
        """Write the map as JSON and return the path."""
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False))
        return out

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TimingMap":
        data = json.loads(Path(path).read_text())
        timing = cls(
            source=data.get("source", ""),
            total_pages=data.get("totalPages", 0),
            version=data.get("version", "1.0"),
        )
        for e in data.get("entries", []):
            timing.add(e["sentence"], e["page"], e["start"], e["end"], e["text"])
        return timing
