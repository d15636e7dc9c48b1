"""Main entry point for voicenote."""

import argparse
import signal
import sys
from typing import Optional

from voicenote.config.config_loader import config
from voicenote.session import NoteResult, NoteStatus, RecordingSession, default_device_name
from voicenote.storage.artifacts import NoteStore
from voicenote.utils.exceptions import RecordingError
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)

# Global session instance for signal handler
session_instance: Optional[RecordingSession] = None


def signal_handler(sig, frame):
    """Handle interrupt signals gracefully."""
    logger.info("Received interrupt signal, shutting down...")
    if session_instance:
        try:
            session_instance.close(wait=False)
        except Exception as e:
            logger.error(f"🛑 Error during session cleanup: {e}")
    sys.exit(0)


def _report(result: NoteResult) -> int:
    if result.artifacts is not None:
        print(f"Audio:      {result.artifacts.audio_path}")
    if result.status is NoteStatus.TRANSCRIBED:
        print(f"Transcript: {result.artifacts.transcript_path}")
        print(result.transcript.text)
        return 0
    if result.status is NoteStatus.TRANSCRIPTION_PENDING:
        print(f"Transcription pending: {result.error}")
        return 2
    print(f"Failed: {result.error}")
    return 1


def cmd_record(args: argparse.Namespace) -> int:
    """Record one note; Enter stops the recording."""
    global session_instance

    session_instance = RecordingSession.from_config(args.notes_dir)
    with session_instance as session:
        try:
            session.start(args.device or default_device_name())
        except RecordingError as e:
            print(f"Could not start recording: {e}")
            return 1

        input("Recording... press Enter to stop.")
        try:
            result = session.stop()
        except RecordingError as e:
            print(f"Could not stop recording: {e}")
            return 1
        return _report(result)


def cmd_transcribe(args: argparse.Namespace) -> int:
    """Transcribe existing note audio files."""
    global session_instance

    session_instance = RecordingSession.from_config(args.notes_dir)
    exit_code = 0
    with session_instance as session:
        for path in args.paths:
            exit_code = max(exit_code, _report(session.transcribe_file(path)))
    return exit_code


def cmd_pending(args: argparse.Namespace) -> int:
    """List, and optionally process, notes awaiting transcription."""
    global session_instance

    store = NoteStore(args.notes_dir)
    pending = store.pending()
    for pair in pending:
        print(pair.audio_path)
    if not args.process or not pending:
        return 0

    session_instance = RecordingSession.from_config(store.directory)
    with session_instance as session:
        results = session.retranscribe_pending(store)
    return max(_report(result) for result in results)


def cmd_devices(args: argparse.Namespace) -> int:
    """List input devices."""
    from voicenote.audio.device_manager import list_input_devices

    for device in list_input_devices():
        print(
            f"{device['index']:>3}  {device['name']} "
            f"({device['channels']}ch, {int(device['default_samplerate'])}Hz)"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voicenote", description="Record voice notes and transcribe them."
    )
    parser.add_argument(
        "--notes-dir",
        default=None,
        help=f"Notes directory (default: {config.get('notes.directory')})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Record a voice note")
    record.add_argument("--device", default=None, help="Input device name")
    record.set_defaults(func=cmd_record)

    transcribe = subparsers.add_parser("transcribe", help="Transcribe note audio files")
    transcribe.add_argument("paths", nargs="+", help="WAV files to transcribe")
    transcribe.set_defaults(func=cmd_transcribe)

    pending = subparsers.add_parser("pending", help="List notes without transcripts")
    pending.add_argument(
        "--process", action="store_true", help="Transcribe the pending notes"
    )
    pending.set_defaults(func=cmd_pending)

    devices = subparsers.add_parser("devices", help="List audio input devices")
    devices.set_defaults(func=cmd_devices)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main function to run voicenote."""
    args = build_parser().parse_args(argv)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C)")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
