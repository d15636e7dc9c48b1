"""Value types exchanged with recognition engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class DecodeParams:
    """Decode options handed to the recognition engine."""

    thread_count: int = 4


@dataclass(frozen=True)
class TranscriptionResult:
    """Segment texts in recognition (chronological) order. May be empty."""

    segments: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(s.strip() for s in self.segments if s.strip())

    def to_file_content(self) -> str:
        """Each segment followed by a newline, empty segments included."""
        return "".join(f"{segment}\n" for segment in self.segments)

    def __len__(self) -> int:
        return len(self.segments)
