"""voicenote: record microphone notes and transcribe them to text."""

__version__ = "0.1.0"
