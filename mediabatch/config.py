"""
mediabatch Configuration Module

Loads configuration from environment variables with sensible defaults.
Per-run choices (folder, mode, regions, durations) come from the front end;
everything here is about the host: tool paths, temp space, logging.
"""

import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "mediabatch"


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # External tools
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Encoding defaults
    default_encoder_args: str = "-c:v libx264 -b:v 8000k -crf 23 -y"
    segment_encoder_args: str = "-c:v libx264 -preset veryfast -crf 18"  # splice segments
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    # Output
    output_to_ok_dir: bool = False  # Force every mode into the OK/ subfolder

    # Paths
    temp_dir: Path = field(default_factory=_default_temp_dir)

    # Front end
    poll_interval_ms: int = 100  # How often the consumer drains the log channel

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Notifications
    webhook_url: Optional[str] = None

    @property
    def poll_interval(self) -> float:
        """Channel poll interval in seconds."""
        return self.poll_interval_ms / 1000.0


def _parse_bool(value: str) -> bool:
    """Parse boolean from environment variable string."""
    return value.lower() in ("true", "1", "yes", "on")


def load_config() -> Config:
    """Load configuration from environment variables."""
    defaults = Config()
    config = Config(
        # Tools
        ffmpeg_path=os.getenv("MEDIABATCH_FFMPEG", defaults.ffmpeg_path),
        ffprobe_path=os.getenv("MEDIABATCH_FFPROBE", defaults.ffprobe_path),

        # Encoding
        default_encoder_args=os.getenv("DEFAULT_ENCODER_ARGS", defaults.default_encoder_args),
        segment_encoder_args=os.getenv("SEGMENT_ENCODER_ARGS", defaults.segment_encoder_args),
        audio_codec=os.getenv("AUDIO_CODEC", defaults.audio_codec),
        audio_bitrate=os.getenv("AUDIO_BITRATE", defaults.audio_bitrate),

        # Output
        output_to_ok_dir=_parse_bool(os.getenv("OUTPUT_TO_OK_DIR", "false")),

        # Paths
        temp_dir=Path(os.getenv("TEMP_DIR", str(defaults.temp_dir))),

        # Front end
        poll_interval_ms=int(os.getenv("POLL_INTERVAL_MS", str(defaults.poll_interval_ms))),

        # Logging
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE"),

        # Notifications
        webhook_url=os.getenv("WEBHOOK_URL"),
    )

    return config


def validate_config(config: Config) -> bool:
    """
    Validate configuration and check the external tools are installed.
    Returns True if valid, prints the problems to stderr otherwise.
    """
    errors = []

    for name, tool in (("MEDIABATCH_FFMPEG", config.ffmpeg_path), ("MEDIABATCH_FFPROBE", config.ffprobe_path)):
        if not shutil.which(tool):
            errors.append(f"{name}: '{tool}' not found on PATH")

    if config.poll_interval_ms <= 0:
        errors.append(f"POLL_INTERVAL_MS must be positive, got {config.poll_interval_ms}")

    try:
        config.temp_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        errors.append(f"TEMP_DIR cannot be created: {config.temp_dir} ({e})")

    if errors:
        print("Configuration errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return False

    return True
