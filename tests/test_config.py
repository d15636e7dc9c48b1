import pytest

from voicenote.config.config_loader import ConfigLoader
from voicenote.config.validators import AudioConfig, validate_config
from voicenote.utils.exceptions import ConfigurationError


def test_missing_file_uses_defaults(tmp_path):
    loader = ConfigLoader(str(tmp_path / "absent.yml"))

    assert loader.get("notes.directory") == "voice_notes"
    assert loader.get("asr.target_sample_rate") == 16000
    assert loader.get("asr.thread_count") == 4
    assert loader.get("audio.input_device_name") is None
    assert loader.get("does.not.exist", "fallback") == "fallback"


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "audio:\n"
        "  input_device_name: USB Mic\n"
        "notes:\n"
        "  directory: /tmp/notes\n"
        "asr:\n"
        "  thread_count: 8\n"
    )

    loader = ConfigLoader(str(path))

    assert loader.get("audio.input_device_name") == "USB Mic"
    assert loader.get("notes.directory") == "/tmp/notes"
    assert loader.get("asr.thread_count") == 8
    assert loader.get("asr.keep_model_loaded") is True
    assert loader.validated_config.asr.thread_count == 8


def test_invalid_values_are_logged_not_fatal(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("audio:\n  channels: 5\n")

    loader = ConfigLoader(str(path))

    assert loader.validated_config is None
    assert loader.get("audio.channels") == 5


def test_save_and_restore_from_backup(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("# my settings\nnotes:\n  directory: first\n")
    loader = ConfigLoader(str(path))

    loader.set("notes.directory", "second")
    loader.set("audio.input_device_name", "Desk Mic")
    loader.save()

    reloaded = ConfigLoader(str(path))
    assert reloaded.get("notes.directory") == "second"
    assert reloaded.get("audio.input_device_name") == "Desk Mic"
    assert "# my settings" in path.read_text()

    assert reloaded.restore_from_backup()
    assert reloaded.get("notes.directory") == "first"


def test_restore_without_backup(tmp_path):
    loader = ConfigLoader(str(tmp_path / "config.yml"))

    assert not loader.restore_from_backup()


def test_save_rejects_unwritable_location(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    loader = ConfigLoader(str(blocker / "config.yml"))

    with pytest.raises(ConfigurationError):
        loader.save()


@pytest.mark.parametrize("name", [None, "", "  ", "default", "Default"])
def test_default_device_names_normalize_to_none(name):
    assert AudioConfig(input_device_name=name).input_device_name is None


def test_validate_config_rejects_unknown_backend():
    with pytest.raises(ValueError):
        validate_config({"asr": {"backend": "sphinx"}})


def test_zero_capture_limits_mean_disabled():
    audio = AudioConfig(max_recording_duration=0, buffer_size_limit=0)

    assert audio.max_recording_duration == 0
    assert audio.buffer_size_limit == 0


@pytest.mark.parametrize(
    "field", ["max_recording_duration", "buffer_size_limit"]
)
def test_negative_capture_limits_are_rejected(field):
    with pytest.raises(ValueError):
        AudioConfig(**{field: -1})
