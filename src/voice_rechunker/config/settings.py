import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from dotenv import load_dotenv
import logging

from ..audio.types import AudioFormat, FrameConfig, SegmenterConfig, TranscriberConfig
from ..rechunker.types import RechunkerConfig
from ..transcription.session import SessionConfig

logger = logging.getLogger(__name__)

class RechunkerSettings(BaseModel):
    start_threshold: float = Field(default=0.6, ge=0.0, le=1.0, description="Rolling average probability required to start a voice run")
    start_window_ms: float = Field(default=250, gt=0, description="Rolling window horizon while idle (ms)")
    end_threshold: float = Field(default=0.3, gt=0.0, le=1.0, description="Base end-of-run threshold before decay adjustment")
    end_window_ms: float = Field(default=100, gt=0, description="Rolling window horizon during a voice run (ms)")
    time_before_speech_ms: float = Field(default=750, gt=0, description="Pre-roll kept before detected speech (ms)")
    max_duration_ms: float = Field(default=10000, gt=0, description="Hard cap on one voice run (ms)")
    decay_factor: float = Field(default=3.0, gt=0, description="How fast the end threshold moves toward the run average")
    sample_rate: int = Field(default=16000, gt=0, description="Capture sample rate (Hz)")
    channels: int = Field(default=1, ge=1, description="Capture channel count")
    frame_ms: int = Field(default=32, gt=0, description="Capture frame length (ms)")
    whisper_model_size: str = Field(default="base", description="Whisper model size (tiny, base, small, medium, large-v3)")
    whisper_device: str = Field(default="cpu", description="Device for Whisper inference (cpu, cuda, auto)")
    language: Optional[str] = Field(default=None, description="Transcription language; unset for auto-detect")
    flush_on_stop: bool = Field(default=False, description="Emit the in-progress voice run when capture stops")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = ConfigDict(
        frozen=True,
        allow_inf_nan=False,
    )

    def to_rechunker_config(self) -> RechunkerConfig:
        return RechunkerConfig(
            start_threshold=self.start_threshold,
            start_window_ms=self.start_window_ms,
            end_threshold=self.end_threshold,
            end_window_ms=self.end_window_ms,
            time_before_speech_ms=self.time_before_speech_ms,
            max_duration_ms=self.max_duration_ms,
            decay_factor=self.decay_factor,
        )

    def to_session_config(self) -> SessionConfig:
        return SessionConfig(
            audio_format=AudioFormat(sample_rate=self.sample_rate, channels=self.channels),
            frame=FrameConfig(frame_ms=self.frame_ms),
            segmenter=SegmenterConfig(
                rechunker=self.to_rechunker_config(),
                flush_on_stop=self.flush_on_stop,
            ),
            transcriber=TranscriberConfig(
                model_size=self.whisper_model_size,
                device=self.whisper_device,
                language=self.language,
            ),
        )

def load_config(config_path: Optional[Path] = None) -> RechunkerSettings:
    if config_path is None:
        config_path = Path(".env")

    if config_path.exists():
        load_dotenv(config_path)
        logger.info(f"Loaded environment variables from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables only")

    try:
        return RechunkerSettings(
            start_threshold=float(os.getenv("START_THRESHOLD", "0.6")),
            start_window_ms=float(os.getenv("START_WINDOW_MS", "250")),
            end_threshold=float(os.getenv("END_THRESHOLD", "0.3")),
            end_window_ms=float(os.getenv("END_WINDOW_MS", "100")),
            time_before_speech_ms=float(os.getenv("TIME_BEFORE_SPEECH_MS", "750")),
            max_duration_ms=float(os.getenv("MAX_DURATION_MS", "10000")),
            decay_factor=float(os.getenv("DECAY_FACTOR", "3.0")),
            sample_rate=int(os.getenv("SAMPLE_RATE", "16000")),
            channels=int(os.getenv("CHANNELS", "1")),
            frame_ms=int(os.getenv("FRAME_MS", "32")),
            whisper_model_size=os.getenv("WHISPER_MODEL_SIZE", "base"),
            whisper_device=os.getenv("WHISPER_DEVICE", "cpu"),
            language=os.getenv("LANGUAGE") or None,
            flush_on_stop=os.getenv("FLUSH_ON_STOP", "false").lower() in ("true", "1", "yes"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def create_example_env_file(path: Path = Path(".env.example")):
    example_content = """# Voice run start: rolling average probability must exceed START_THRESHOLD
# over at least START_WINDOW_MS of audio
START_THRESHOLD=0.6
START_WINDOW_MS=250

# Voice run end: base threshold and window; the threshold decays toward the
# run's average probability at a rate set by DECAY_FACTOR
END_THRESHOLD=0.3
END_WINDOW_MS=100
DECAY_FACTOR=3.0

# Audio kept before detected speech, and hard cap on one utterance
TIME_BEFORE_SPEECH_MS=750
MAX_DURATION_MS=10000

# Capture format
SAMPLE_RATE=16000
CHANNELS=1
FRAME_MS=32

# Whisper model size: tiny, base, small, medium, large-v3
WHISPER_MODEL_SIZE=base
WHISPER_DEVICE=cpu

# Transcription language; leave empty for auto-detect
LANGUAGE=

# Emit the in-progress utterance when capture stops (true/false)
FLUSH_ON_STOP=false

# Logging level
LOG_LEVEL=INFO
"""

    with open(path, "w") as f:
        f.write(example_content)

    logger.info(f"Created example environment file at {path}")

def setup_logging(log_level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
