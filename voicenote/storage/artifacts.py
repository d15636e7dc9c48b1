"""Persistence of voice notes as ``.wav``/``.txt`` pairs sharing a stem."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

import soundfile as sf

from voicenote.asr.types import TranscriptionResult
from voicenote.audio.types import RawCapture
from voicenote.config.config_loader import config
from voicenote.utils.exceptions import (
    AudioWriteFailed,
    DirectoryCreateFailed,
    TranscriptWriteFailed,
)
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)

BASE_NAME_PREFIX = "note_"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
AUDIO_SUFFIX = ".wav"
TRANSCRIPT_SUFFIX = ".txt"


@dataclass(frozen=True)
class ArtifactPair:
    """Paths of one note's audio and transcript files."""

    base_name: str
    audio_path: Path
    transcript_path: Path

    @classmethod
    def for_stem(cls, directory: Path, base_name: str) -> "ArtifactPair":
        return cls(
            base_name=base_name,
            audio_path=directory / f"{base_name}{AUDIO_SUFFIX}",
            transcript_path=directory / f"{base_name}{TRANSCRIPT_SUFFIX}",
        )

    @property
    def has_audio(self) -> bool:
        return self.audio_path.is_file()

    @property
    def transcript_pending(self) -> bool:
        """A missing transcript means transcription is pending.

        An empty transcript is the record of a run that recognized no
        speech and counts as done.
        """
        return not self.transcript_path.is_file()

    @property
    def audio_frames(self) -> int:
        return sf.info(str(self.audio_path)).frames


def read_audio(path: Union[str, Path]) -> RawCapture:
    """Read a PCM WAV file back into a RawCapture.

    Args:
        path: Audio file path.

    Returns:
        The interleaved int16 samples with their rate and channel count.
    """
    data, sample_rate = sf.read(str(path), dtype="int16", always_2d=True)
    return RawCapture(
        samples=data.reshape(-1), sample_rate=sample_rate, channels=data.shape[1]
    )


class ArtifactWriter:
    """Writes note artifacts into a notes directory.

    Base names are ``note_YYYY-MM-DD_HH-MM-SS``. When a note with the same
    stem already exists, ``_1``, ``_2``, ... is appended.
    """

    def __init__(
        self,
        target_dir: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.target_dir = Path(target_dir or config.get("notes.directory", "voice_notes"))
        self.clock = clock

    def ensure_directory(self) -> None:
        """Create the notes directory and any missing parents."""
        try:
            self.target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"🛑 Failed to create notes directory {self.target_dir}: {e}")
            raise DirectoryCreateFailed(
                f"Failed to create directory {self.target_dir}: {e}"
            ) from e

    def allocate(self) -> ArtifactPair:
        """Pick a base name for a new note that no existing note uses."""
        stem = BASE_NAME_PREFIX + self.clock().strftime(TIMESTAMP_FORMAT)
        pair = ArtifactPair.for_stem(self.target_dir, stem)
        counter = 0
        while pair.audio_path.exists() or pair.transcript_path.exists():
            counter += 1
            pair = ArtifactPair.for_stem(self.target_dir, f"{stem}_{counter}")
        return pair

    def write_audio(self, raw: RawCapture) -> ArtifactPair:
        """Write the capture as 16-bit PCM WAV under a freshly allocated name.

        Raises:
            DirectoryCreateFailed: If the notes directory cannot be created.
            AudioWriteFailed: If the WAV file cannot be written.
        """
        self.ensure_directory()
        pair = self.allocate()
        try:
            sf.write(
                str(pair.audio_path),
                raw.frames(),
                raw.sample_rate,
                format="WAV",
                subtype="PCM_16",
            )
        except Exception as e:
            logger.error(f"🛑 Failed to save audio {pair.audio_path}: {e}")
            raise AudioWriteFailed(f"Failed to write {pair.audio_path}: {e}") from e

        logger.info(f"Saved: {pair.audio_path} ({raw.duration:.2f}s)")
        return pair

    def write_transcript(
        self, pair: ArtifactPair, transcript: TranscriptionResult
    ) -> ArtifactPair:
        """Write one line per segment next to the note's audio.

        Raises:
            TranscriptWriteFailed: If the text file cannot be written.
        """
        try:
            pair.transcript_path.write_text(
                transcript.to_file_content(), encoding="utf-8"
            )
        except OSError as e:
            logger.error(f"🛑 Failed to save transcript {pair.transcript_path}: {e}")
            raise TranscriptWriteFailed(
                f"Failed to write {pair.transcript_path}: {e}"
            ) from e

        logger.info(f"Saved: {pair.transcript_path} ({len(transcript)} segments)")
        return pair

    def persist(
        self, raw: RawCapture, transcript: TranscriptionResult
    ) -> ArtifactPair:
        """Write both the audio and the transcript of one note."""
        pair = self.write_audio(raw)
        return self.write_transcript(pair, transcript)


class NoteStore:
    """Read-side view of the notes directory, paired by filename stem."""

    def __init__(self, directory: Optional[Union[str, Path]] = None) -> None:
        self.directory = Path(directory or config.get("notes.directory", "voice_notes"))

    def voice_notes(self) -> List[ArtifactPair]:
        """Notes that have an audio file, oldest first by name."""
        if not self.directory.is_dir():
            return []
        return [
            ArtifactPair.for_stem(self.directory, path.stem)
            for path in sorted(self.directory.glob(f"{BASE_NAME_PREFIX}*{AUDIO_SUFFIX}"))
            if path.is_file()
        ]

    def pending(self) -> List[ArtifactPair]:
        """Voice notes with audio to recognize and no transcript yet.

        Zero-frame and unreadable audio files are skipped, since they can
        never be transcribed.
        """
        pending = []
        for pair in self.voice_notes():
            if not pair.transcript_pending:
                continue
            try:
                frames = pair.audio_frames
            except Exception as e:
                logger.warning(f"🟡 Skipping unreadable audio {pair.audio_path}: {e}")
                continue
            if frames > 0:
                pending.append(pair)
        return pending

    def get(self, base_name: str) -> ArtifactPair:
        return ArtifactPair.for_stem(self.directory, base_name)

