"""
mediabatch Batch Runner

Discovers media files in a folder, validates run preconditions, then
processes the files one at a time. A failure on one file is recorded
against that file and the run moves on to the next.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .channel import BatchProgress, LogChannel
from .commands import build_command, output_path_for
from .config import Config
from .errors import (
    EmptyFolder,
    FileError,
    IOFailure,
    InvalidFolder,
    MediaBatchError,
    MissingCompanionFile,
    NoMediaFiles,
    NoSpliceCandidates,
)
from .jobs import JobParameters, OperationMode, validate_parameters
from .runner import ProbeService, ProcessRunner
from .splice import SpliceOrchestrator

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv", ".webm"})
AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".m4a"})

COMPANION_SUFFIX = "_no_sub"


class MediaFamily(Enum):
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class MediaFile:
    """A discovered input file."""
    path: Path
    family: MediaFamily

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class PairedMediaFile:
    """Splice input: an original and the path its companion must have."""
    media: MediaFile
    companion: Path
    companion_present: bool

    @property
    def name(self) -> str:
        return self.media.name


WorkItem = Union[MediaFile, PairedMediaFile]


def media_family(path: Path) -> Optional[MediaFamily]:
    """Family for a recognized extension, None for anything else."""
    ext = path.suffix.lower()
    if ext in VIDEO_EXTENSIONS:
        return MediaFamily.VIDEO
    if ext in AUDIO_EXTENSIONS:
        return MediaFamily.AUDIO
    return None


def companion_path(path: Path) -> Path:
    """`name.ext` -> `name_no_sub.ext` in the same folder."""
    return path.with_name(f"{path.stem}{COMPANION_SUFFIX}{path.suffix}")


def is_companion(path: Path) -> bool:
    return path.stem.endswith(COMPANION_SUFFIX)


def discover_media_files(folder: Path) -> List[MediaFile]:
    """Recognized media files directly inside `folder`, sorted by name."""
    files = []
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if not entry.is_file():
            continue
        family = media_family(entry)
        if family is not None:
            files.append(MediaFile(path=entry.resolve(), family=family))
    return files


def pair_companions(files: Sequence[MediaFile]) -> List[PairedMediaFile]:
    """Pair every original with its `_no_sub` companion; companions are not candidates."""
    pairs = []
    for media in files:
        if is_companion(media.path):
            continue
        companion = companion_path(media.path)
        pairs.append(PairedMediaFile(
            media=media,
            companion=companion,
            companion_present=companion.is_file(),
        ))
    return pairs


class FileStatus(Enum):
    """Outcome of processing one file."""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class FileResult:
    """Typed per-file result; the runner never lets a file error escape."""
    media: MediaFile
    status: FileStatus
    output: Optional[Path] = None
    error: Optional[MediaBatchError] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class BatchPlan:
    """Validated work list for one run. Nothing has been touched yet."""
    folder: Path
    mode: OperationMode
    params: JobParameters
    items: List[WorkItem]

    @property
    def total(self) -> int:
        return len(self.items)


@dataclass
class BatchReport:
    """Terminal summary of a run."""
    folder: Path
    mode: OperationMode
    results: List[FileResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status is FileStatus.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status is not FileStatus.COMPLETED)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        text = f"Processed {self.total} file(s): {self.succeeded} succeeded, {self.failed} failed"
        if self.duration_seconds is not None:
            text += f" in {self.duration_seconds:.1f}s"
        return text


class BatchRunner:
    """
    Runs one batch at a time, sequentially.

    Owns the log channel and progress record and injects the channel into
    the process runner it creates. `runner` and `probe` can be supplied to
    substitute the external tools.
    """

    def __init__(
        self,
        config: Config,
        channel: Optional[LogChannel] = None,
        progress: Optional[BatchProgress] = None,
        runner: Optional[ProcessRunner] = None,
        probe: Optional[ProbeService] = None
    ):
        self.config = config
        self.channel = channel if channel is not None else LogChannel()
        self.progress = progress if progress is not None else BatchProgress()
        self.runner = runner if runner is not None else ProcessRunner(self.channel)
        self.probe = probe if probe is not None else ProbeService(
            self.runner, config.ffprobe_path, self.channel
        )
        self.splicer = SpliceOrchestrator(
            runner=self.runner,
            probe=self.probe,
            temp_dir=config.temp_dir,
            ffmpeg=config.ffmpeg_path,
            audio_codec=config.audio_codec,
            audio_bitrate=config.audio_bitrate,
            segment_args=config.segment_encoder_args,
            channel=self.channel,
            on_stage=self.progress.set_status,
        )

    def _emit(self, message: str, level: int = logging.INFO) -> None:
        logger.log(level, message)
        self.channel.put(message)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def prepare(self, folder: Path, mode: OperationMode, params: JobParameters) -> BatchPlan:
        """
        Validate run preconditions and discover the work list.

        Raises a PreconditionError before any file is touched.
        """
        folder = Path(folder)
        if not folder.exists() or not folder.is_dir():
            raise InvalidFolder(folder)

        validate_parameters(mode, params)

        if not any(folder.iterdir()):
            raise EmptyFolder(folder)

        files = discover_media_files(folder)
        if not files:
            raise NoMediaFiles(folder)

        if mode.requires_video:
            audio_only = [f for f in files if f.family is not MediaFamily.VIDEO]
            for media in audio_only:
                logger.info(f"Skipping audio-only file for {mode.value}: {media.name}")
            files = [f for f in files if f.family is MediaFamily.VIDEO]
            if not files:
                raise NoMediaFiles(folder, "No video files found")

        items: List[WorkItem]
        if mode is OperationMode.SPLICE_ADVANCED:
            pairs = pair_companions(files)
            if not any(p.companion_present for p in pairs):
                raise NoSpliceCandidates(folder)
            items = list(pairs)
        else:
            items = list(files)

        logger.info(f"Prepared {len(items)} file(s) in {folder} for {mode.value}")
        return BatchPlan(folder=folder, mode=mode, params=params, items=items)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def run(self, folder: Path, mode: OperationMode, params: JobParameters) -> BatchReport:
        """Validate, then process every file."""
        return self.execute(self.prepare(folder, mode, params))

    def execute(self, plan: BatchPlan) -> BatchReport:
        """Process every item of `plan` in order. Never raises for a file error."""
        report = BatchReport(folder=plan.folder, mode=plan.mode)
        self.progress.reset(plan.total)
        self._emit(f"Processing {plan.total} file(s) in {plan.folder} ({plan.mode.value})")

        for index, item in enumerate(plan.items, 1):
            name = item.name
            self.progress.begin_file(name)
            self._emit(f"[{index}/{plan.total}] {name}")

            result = self.process_item(plan, item)
            report.results.append(result)
            self.progress.finish_file(result.status is FileStatus.COMPLETED)

        report.completed_at = datetime.now()
        self.progress.finish_run()
        self._emit(report.summary())
        return report

    def process_item(self, plan: BatchPlan, item: WorkItem) -> FileResult:
        """Process one item and turn whatever happens into a FileResult."""
        media = item.media if isinstance(item, PairedMediaFile) else item
        result = FileResult(media=media, status=FileStatus.FAILED, started_at=datetime.now())

        try:
            result.output = self._process(plan, item)
            result.status = FileStatus.COMPLETED
            self._emit(f"Processed {media.name} -> {result.output.name}")
        except MissingCompanionFile as e:
            result.status = FileStatus.SKIPPED
            result.error = e
            self._emit(f"Skipped {media.name}: {e}", logging.ERROR)
        except FileError as e:
            result.error = e
            self._emit(f"Error processing {media.name}: {e}", logging.ERROR)
        except OSError as e:
            result.error = IOFailure(media.path, str(e))
            self._emit(f"Error processing {media.name}: {result.error}", logging.ERROR)
        except MediaBatchError as e:
            result.error = e
            self._emit(f"Error processing {media.name}: {e}", logging.ERROR)
        except Exception as e:
            logger.exception(f"Unexpected error processing {media.name}")
            result.error = MediaBatchError(f"Unexpected error: {e}")
            self.channel.put(f"Error processing {media.name}: {e}")

        result.completed_at = datetime.now()
        return result

    def _process(self, plan: BatchPlan, item: WorkItem) -> Path:
        if isinstance(item, PairedMediaFile):
            return self._process_splice(plan, item)

        output = output_path_for(item.path, plan.mode, self.config.output_to_ok_dir)
        self._ensure_output_dir(output)

        duration = None
        if plan.mode.needs_duration:
            duration = self.probe.duration(item.path)

        command = build_command(
            self.config.ffmpeg_path,
            plan.mode,
            plan.params,
            item.path,
            output,
            duration=duration,
        )
        self.runner.run(command)
        return output

    def _process_splice(self, plan: BatchPlan, pair: PairedMediaFile) -> Path:
        if not pair.companion_present or not pair.companion.is_file():
            raise MissingCompanionFile(pair.media.path, pair.companion)

        output = output_path_for(pair.media.path, plan.mode, self.config.output_to_ok_dir)
        self._ensure_output_dir(output)
        self.splicer.splice(pair.media.path, pair.companion, plan.params, output)
        return output

    @staticmethod
    def _ensure_output_dir(output: Path) -> None:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure(output.parent, str(e))
