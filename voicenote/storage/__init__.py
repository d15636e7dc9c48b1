"""Note artifact storage."""

from voicenote.storage.artifacts import ArtifactPair, ArtifactWriter, NoteStore, read_audio

__all__ = ["ArtifactPair", "ArtifactWriter", "NoteStore", "read_audio"]
