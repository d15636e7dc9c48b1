"""Configuration validation schemas using Pydantic."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class AudioConfig(BaseModel):
    """Audio capture configuration validation."""

    input_device_name: Optional[str] = Field(
        default=None, description="Preferred input device name (None for default)"
    )
    sample_rate: Optional[int] = Field(
        default=None, description="Capture sample rate (None for device default)"
    )
    channels: int = Field(default=2, description="Maximum channels to capture")
    blocksize: int = Field(default=1024, description="Frames per capture callback")

    # Memory management settings
    max_recording_duration: int = Field(
        default=600, description="Maximum recording duration in seconds, 0 to disable"
    )
    buffer_size_limit: int = Field(
        default=200, description="Maximum audio buffer size in MB, 0 to disable"
    )

    @field_validator("input_device_name")
    @classmethod
    def validate_device_name(cls, v: Optional[str]) -> Optional[str]:
        # "default" and blank both mean the system default device
        if v is None:
            return None
        v = str(v).strip()
        if not v or v.lower() == "default":
            return None
        return v

    @field_validator("sample_rate")
    @classmethod
    def validate_sample_rate(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        valid_rates = (8000, 16000, 22050, 32000, 44100, 48000, 96000)
        if v not in valid_rates:
            raise ValueError(f"Sample rate must be one of: {valid_rates}")
        return v

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: int) -> int:
        if v not in (1, 2):
            raise ValueError("Channels must be 1 (mono) or 2 (stereo)")
        return v

    @field_validator("blocksize")
    @classmethod
    def validate_blocksize(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Blocksize must be positive")
        return v

    @field_validator("max_recording_duration")
    @classmethod
    def validate_max_duration(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Max recording duration cannot be negative")
        if v > 3600:
            raise ValueError("Max recording duration cannot exceed 1 hour")
        return v

    @field_validator("buffer_size_limit")
    @classmethod
    def validate_buffer_limit(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Buffer size limit cannot be negative")
        if v > 1000:
            raise ValueError("Buffer size limit cannot exceed 1GB")
        return v


class NotesConfig(BaseModel):
    """Voice note storage configuration validation."""

    directory: str = Field(
        default="voice_notes", description="Directory for .wav/.txt note pairs"
    )

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: Any) -> str:
        if not v or not isinstance(v, str):
            raise ValueError("Notes directory must be a non-empty string")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration validation."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )
    directory: str = Field(
        default="logs", description="Log directory (empty disables file logging)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class ASRConfig(BaseModel):
    """ASR (Automatic Speech Recognition) configuration validation."""

    backend: str = Field(default="parakeet", description="Recognition backend")
    model: str = Field(
        default="mlx-community/parakeet-tdt-0.6b-v3",
        description="Model identifier or local model path",
    )
    target_sample_rate: int = Field(
        default=16000, description="Sample rate required by the recognition model"
    )
    thread_count: int = Field(default=4, description="Decoder thread-count hint")
    keep_model_loaded: bool = Field(
        default=True, description="Share one loaded model context across notes"
    )
    auto_unload_timeout: int = Field(
        default=300,
        description="Unload model after N seconds of inactivity (0 to disable)",
    )
    whisper_device: str = Field(default="cpu", description="faster-whisper device")
    whisper_compute_type: str = Field(
        default="int8", description="faster-whisper compute type"
    )

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid_backends = ("parakeet", "whisper")
        if v not in valid_backends:
            raise ValueError(f"ASR backend must be one of: {valid_backends}")
        return v

    @field_validator("target_sample_rate")
    @classmethod
    def validate_target_rate(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Target sample rate must be positive")
        return v

    @field_validator("thread_count")
    @classmethod
    def validate_thread_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Thread count must be at least 1")
        return v

    @field_validator("auto_unload_timeout")
    @classmethod
    def validate_auto_unload(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Auto-unload timeout cannot be negative")
        return v


class VoiceNoteConfig(BaseModel):
    """Main voicenote configuration validation."""

    app: Dict[str, Any] = Field(default_factory=dict)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    notes: NotesConfig = Field(default_factory=NotesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    asr: ASRConfig = Field(default_factory=ASRConfig)

    model_config = {
        "extra": "allow",
        "validate_assignment": True,
    }


def validate_config(config_dict: Dict[str, Any]) -> VoiceNoteConfig:
    """Validate configuration dictionary using Pydantic schemas.

    Args:
        config_dict: Configuration dictionary to validate

    Returns:
        Validated VoiceNoteConfig instance

    Raises:
        ValueError: If configuration validation fails
    """
    try:
        return VoiceNoteConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
