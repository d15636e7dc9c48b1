"""Custom exception definitions for the voice note pipeline."""


class VoiceNoteError(Exception):
    """Base exception class for voice note pipeline errors."""

    pass


class ConfigurationError(VoiceNoteError):
    """Raised when configuration is invalid or cannot be loaded/saved."""

    pass


class RecordingError(VoiceNoteError):
    """Raised when audio capture cannot be started or stopped."""

    pass


class DeviceUnavailable(RecordingError):
    """Raised when the host has no audio capture device."""

    pass


class CaptureStartFailed(RecordingError):
    """Raised when the capture device refuses to start."""

    pass


class SessionStateError(RecordingError):
    """Raised on start() while capturing or stop() while idle."""

    pass


class InvalidChannelCount(VoiceNoteError):
    """Raised when a capture reports zero channels."""

    pass


class ResampleError(VoiceNoteError):
    """Raised when resampling cannot be performed."""

    pass


class EmptyInput(ResampleError):
    """Raised when there are no audio frames to resample."""

    pass


class TranscriptionError(VoiceNoteError):
    """Raised when transcription processing fails."""

    pass


class ModelLoadFailed(TranscriptionError):
    """Raised when the recognition model cannot be loaded."""

    pass


class InferenceFailed(TranscriptionError):
    """Raised when the recognition engine fails during inference."""

    pass


class WriteError(VoiceNoteError):
    """Raised when note artifacts cannot be written."""

    pass


class DirectoryCreateFailed(WriteError):
    """Raised when the notes directory cannot be created."""

    pass


class AudioWriteFailed(WriteError):
    """Raised when the audio artifact cannot be written."""

    pass


class TranscriptWriteFailed(WriteError):
    """Raised when the transcript artifact cannot be written."""

    pass
