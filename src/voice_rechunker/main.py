import argparse
import logging
import sys
from pathlib import Path

from .config.settings import create_example_env_file, load_config, setup_logging
from .core.events import TranscriptionData, TranscriptionEvent
from .core.shutdown import GracefulShutdown
from .transcription.session import TranscriptionSession

logger = logging.getLogger("voice_rechunker")


def print_event(event: TranscriptionEvent) -> None:
    if isinstance(event, TranscriptionData):
        print(f"[device {event.device_id}] ({event.duration_s:.1f}s) {event.text}")
    else:
        print(f"-- {event.event}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Voice-activity-gated live transcription")
    parser.add_argument("--config", type=str, help="Path to config file", default=".env")
    parser.add_argument("--create-config", action="store_true", help="Create example config file")
    parser.add_argument("--list-devices", action="store_true", help="List audio input devices")
    parser.add_argument("--device", type=int, action="append", dest="devices",
                        help="Input device id (repeatable, -1 for the default input)")
    parser.add_argument("--flush-on-stop", action="store_true", help="Transcribe the unfinished utterance on exit")

    args = parser.parse_args(argv)

    if args.create_config:
        create_example_env_file()
        print("Example configuration file created at .env.example")
        print("Please copy it to .env and adjust the settings.")
        return 0

    if args.list_devices:
        from .audio.mic import list_input_devices
        for device_id, name in list_input_devices():
            print(f"  {device_id}: {name}")
        return 0

    try:
        settings = load_config(Path(args.config) if args.config else None)
        if args.flush_on_stop:
            settings = settings.model_copy(update={"flush_on_stop": True})
        session_cfg = settings.to_session_config()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("Please check your configuration file.")
        return 1

    setup_logging(settings.log_level)

    shutdown = GracefulShutdown()
    session = TranscriptionSession(session_cfg)
    session.subscribe("console", print_event)

    try:
        session.start(args.devices or [-1])
        print("Listening... press Ctrl+C to stop.")
        while not shutdown.is_set():
            shutdown.wait(0.5)
    except KeyboardInterrupt:
        print("\nStopping...")
    except Exception as e:
        logger.error(f"Transcription failed: {e}", exc_info=True)
        return 1
    finally:
        session.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
