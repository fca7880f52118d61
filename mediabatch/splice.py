"""
mediabatch Splice Orchestrator

Rebuilds a clip as [original head][clean middle][original tail], taking
the middle from the `_no_sub` companion and re-muxing the original's full
audio track over the assembled video.

Pipeline, strictly sequential:
1. Probe the original's duration and clamp head/tail lengths
2. Extract audio from the original
3. Cut head, middle and tail as silent video segments
4. Stream-copy concatenate the segments
5. Remux merged video with the extracted audio
6. Remove the intermediates

Every intermediate file lives in a TempScope and is deleted on exit,
whatever the outcome.
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .channel import LogChannel
from .commands import Command, tokenize_args
from .errors import IOFailure
from .jobs import JobParameters
from .regions import format_seconds
from .runner import ProbeService, ProcessRunner

logger = logging.getLogger(__name__)

# Intermediate containers; matroska accepts whatever codec the encoder args pick
SEGMENT_SUFFIX = ".mkv"
AUDIO_SUFFIX = ".mka"


# -------------------------------------------------------------------------
# Temp artifacts
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class TempArtifact:
    """An intermediate file and the stage that produced it."""
    path: Path
    stage: str


class TempScope:
    """
    Owns the temp artifacts of one splice job.

    Use as a context manager; every registered artifact is deleted when
    the block exits, on success, error or early return. Deletion failures
    are logged, and put on `channel` when one is given, never raised.
    """

    def __init__(self, temp_dir: Path, label: str, channel: Optional[LogChannel] = None):
        self.temp_dir = temp_dir
        self.channel = channel
        safe_label = re.sub(r"[^\w.-]", "_", label)[:40] or "job"
        self.token = f"{safe_label}_{time.strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"
        self.artifacts: List[TempArtifact] = []

    def __enter__(self) -> "TempScope":
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(self.temp_dir, str(e))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def new(self, stage: str, suffix: str) -> Path:
        """Reserve a unique path for `stage` and register it for cleanup."""
        path = self.temp_dir / f"{stage}_{self.token}{suffix}"
        self.artifacts.append(TempArtifact(path=path, stage=stage))
        return path

    def cleanup(self) -> int:
        """Delete every registered artifact. Returns the number removed."""
        removed = 0
        for artifact in reversed(self.artifacts):
            try:
                if artifact.path.exists():
                    artifact.path.unlink()
                    removed += 1
            except OSError as e:
                failure = IOFailure(artifact.path, str(e))
                message = f"Could not remove {artifact.stage} artifact: {failure}"
                logger.warning(message)
                if self.channel is not None:
                    self.channel.put(message)
        self.artifacts.clear()
        return removed


# -------------------------------------------------------------------------
# Duration math
# -------------------------------------------------------------------------

def renders_nonzero(seconds: float) -> bool:
    """Whether `seconds` is still positive once rendered for ffmpeg (ms precision)."""
    return format_seconds(seconds) != "0" and seconds > 0


@dataclass(frozen=True)
class SpliceTimings:
    """Clamped head/tail lengths for one clip of `duration` seconds."""
    duration: float
    head: float
    tail: float

    @property
    def tail_start(self) -> float:
        return max(0.0, self.duration - self.tail)

    @property
    def has_head(self) -> bool:
        return renders_nonzero(self.head)

    @property
    def has_tail(self) -> bool:
        return renders_nonzero(self.tail)

    @property
    def middle_length(self) -> Optional[float]:
        """Length of the clean middle; None means "to the end of the clip"."""
        if not self.has_tail:
            return None
        return self.tail_start - self.head


def clamp_splice_durations(
    duration: float,
    head_seconds: Optional[float],
    tail_seconds: Optional[float],
    splice_head: bool,
    splice_tail: bool,
    on_adjust: Optional[Callable[[str], None]] = None
) -> SpliceTimings:
    """
    Clamp requested head/tail lengths against the clip duration.

    Each side is capped at half the clip. If the sum still exceeds the
    duration both are scaled down by the same ratio so they add up to it
    exactly. Every adjustment is logged and passed to `on_adjust`.
    """
    def adjusted(message: str) -> None:
        logger.info(message)
        if on_adjust is not None:
            on_adjust(message)

    half = duration / 2
    head = min(head_seconds or 0.0, half) if splice_head else 0.0
    tail = min(tail_seconds or 0.0, half) if splice_tail else 0.0

    if splice_head and (head_seconds or 0.0) > half:
        adjusted(f"Head {head_seconds}s capped to half the clip ({half:.3f}s)")
    if splice_tail and (tail_seconds or 0.0) > half:
        adjusted(f"Tail {tail_seconds}s capped to half the clip ({half:.3f}s)")

    if head + tail > duration:
        ratio = duration / (head + tail)
        adjusted(
            f"Head+tail {head + tail:.3f}s exceeds duration {duration:.3f}s, "
            f"scaling both by {ratio:.4f}"
        )
        head *= ratio
        tail *= ratio

    return SpliceTimings(duration=duration, head=head, tail=tail)


# -------------------------------------------------------------------------
# Stage commands
# -------------------------------------------------------------------------

def audio_extract_command(
    ffmpeg: str, source: Path, output: Path, codec: str, bitrate: str
) -> Command:
    return Command(
        argv=(ffmpeg, "-i", str(source), "-vn", "-c:a", codec, "-b:a", bitrate, "-y", str(output)),
        cwd=source.parent,
        description=f"audio extraction {source.name}",
    )


def segment_command(
    ffmpeg: str,
    source: Path,
    output: Path,
    start: float,
    length: Optional[float],
    encoder_args: Sequence[str],
    stage: str
) -> Command:
    """Silent video segment of `source` from `start`, `length` seconds long (or to the end)."""
    argv = [ffmpeg, "-i", str(source), "-ss", format_seconds(start)]
    if length is not None:
        argv.extend(["-t", format_seconds(length)])
    argv.append("-an")
    argv.extend(encoder_args)
    argv.extend(["-y", str(output)])
    return Command(argv=tuple(argv), cwd=source.parent, description=f"{stage} segment {source.name}")


def concat_manifest_line(path: Path) -> str:
    """One concat-demuxer entry, single quotes escaped the ffmpeg way."""
    quoted = path.resolve().as_posix().replace("'", "'\\''")
    return f"file '{quoted}'"


def write_concat_manifest(manifest: Path, segments: Sequence[Path]) -> None:
    try:
        with open(manifest, "w", encoding="utf-8") as f:
            for segment in segments:
                f.write(concat_manifest_line(segment) + "\n")
    except OSError as e:
        raise IOFailure(manifest, str(e))


def concat_command(ffmpeg: str, manifest: Path, output: Path) -> Command:
    return Command(
        argv=(ffmpeg, "-f", "concat", "-safe", "0", "-i", str(manifest), "-c", "copy", "-y", str(output)),
        cwd=manifest.parent,
        description="segment concatenation",
    )


def remux_command(
    ffmpeg: str, video: Path, audio: Path, output: Path, codec: str, bitrate: str
) -> Command:
    return Command(
        argv=(
            ffmpeg, "-i", str(video), "-i", str(audio),
            "-map", "0:v:0", "-map", "1:a:0",
            "-c:v", "copy", "-c:a", codec, "-b:a", bitrate,
            "-shortest", "-y", str(output),
        ),
        cwd=output.parent,
        description=f"final remux {output.name}",
    )


# -------------------------------------------------------------------------
# Orchestrator
# -------------------------------------------------------------------------

@dataclass
class SpliceResult:
    """What a finished splice produced."""
    output: Path
    timings: SpliceTimings
    segments: List[str] = field(default_factory=list)


class SpliceOrchestrator:
    """Runs the splice pipeline for one original/companion pair at a time."""

    def __init__(
        self,
        runner: ProcessRunner,
        probe: ProbeService,
        temp_dir: Path,
        ffmpeg: str = "ffmpeg",
        audio_codec: str = "aac",
        audio_bitrate: str = "192k",
        segment_args: str = "",
        channel: Optional[LogChannel] = None,
        on_stage: Optional[Callable[[str], None]] = None
    ):
        self.runner = runner
        self.probe = probe
        self.temp_dir = temp_dir
        self.ffmpeg = ffmpeg
        self.audio_codec = audio_codec
        self.audio_bitrate = audio_bitrate
        self.segment_args = segment_args
        self.channel = channel
        self.on_stage = on_stage

    def _note(self, message: str) -> None:
        if self.channel is not None:
            self.channel.put(message)

    def _stage(self, message: str) -> None:
        logger.info(message)
        if self.channel is not None:
            self.channel.put(message)
        if self.on_stage is not None:
            self.on_stage(message)

    def splice(self, original: Path, companion: Path, params: JobParameters, output: Path) -> SpliceResult:
        """
        Produce `output` from `original` and its `companion`.

        Any stage failure propagates after the temp scope has removed every
        intermediate file.
        """
        self._stage(f"Step 1/6: Probing duration of {original.name}")
        duration = self.probe.duration(original)

        timings = clamp_splice_durations(
            duration,
            params.head_seconds,
            params.tail_seconds,
            params.splice_head,
            params.splice_tail,
            on_adjust=self._note,
        )
        if self.channel is not None:
            self.channel.put(
                f"Duration {duration:.3f}s, head {timings.head:.3f}s, tail {timings.tail:.3f}s"
            )

        encoder_args = tokenize_args(params.encoder_args) or tokenize_args(self.segment_args)
        result = SpliceResult(output=output, timings=timings)

        with TempScope(self.temp_dir, original.stem, self.channel) as scope:
            self._stage("Step 2/6: Extracting audio from original")
            audio = scope.new("audio", AUDIO_SUFFIX)
            self.runner.run(audio_extract_command(
                self.ffmpeg, original, audio, self.audio_codec, self.audio_bitrate
            ))

            self._stage("Step 3/6: Cutting video segments")
            segments: List[Path] = []

            if timings.has_head:
                head = scope.new("head", SEGMENT_SUFFIX)
                self.runner.run(segment_command(
                    self.ffmpeg, original, head, 0.0, timings.head, encoder_args, "head"
                ))
                segments.append(head)
                result.segments.append("head")

            middle_length = timings.middle_length
            if middle_length is not None and not renders_nonzero(middle_length):
                self._stage("Middle segment is empty, head and tail cover the whole clip")
            else:
                middle = scope.new("middle", SEGMENT_SUFFIX)
                self.runner.run(segment_command(
                    self.ffmpeg, companion, middle, timings.head, middle_length, encoder_args, "middle"
                ))
                segments.append(middle)
                result.segments.append("middle")

            if timings.has_tail:
                tail = scope.new("tail", SEGMENT_SUFFIX)
                self.runner.run(segment_command(
                    self.ffmpeg, original, tail, timings.tail_start, None, encoder_args, "tail"
                ))
                segments.append(tail)
                result.segments.append("tail")

            self._stage(f"Step 4/6: Concatenating {len(segments)} segment(s)")
            manifest = scope.new("manifest", ".txt")
            write_concat_manifest(manifest, segments)
            merged = scope.new("merged", SEGMENT_SUFFIX)
            self.runner.run(concat_command(self.ffmpeg, manifest, merged))

            self._stage("Step 5/6: Remuxing with original audio")
            self.runner.run(remux_command(
                self.ffmpeg, merged, audio, output, self.audio_codec, self.audio_bitrate
            ))

            self._stage("Step 6/6: Cleaning up temp files")

        return result
