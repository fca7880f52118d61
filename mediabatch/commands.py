"""
mediabatch Command Builder

Turns an operation mode plus job parameters into the exact argument vector
for one ffmpeg invocation. Commands are always argument lists, never shell
strings.
"""

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .jobs import JobParameters, OperationMode
from .regions import build_filter_graph

logger = logging.getLogger(__name__)

OK_DIR_NAME = "OK"


@dataclass(frozen=True)
class Command:
    """An external command: argument vector plus working directory."""
    argv: tuple
    cwd: Optional[Path] = None
    description: str = ""

    @property
    def tool(self) -> str:
        return self.argv[0]

    def display(self) -> str:
        """Shell-quoted rendering for logs only; never executed."""
        return " ".join(shlex.quote(str(a)) for a in self.argv)


def tokenize_args(text: Optional[str]) -> List[str]:
    """Split free-form encoder arguments on whitespace, dropping empties."""
    if not text:
        return []
    return [token for token in text.split() if token]


def window_start(duration: float, window_seconds: float) -> float:
    """Start of the final `window_seconds` of a clip, clamped to 0."""
    return max(0.0, duration - window_seconds)


def output_path_for(input_path: Path, mode: OperationMode, use_ok_dir: bool = False) -> Path:
    """
    Derive the output path for `input_path` under `mode`.

    `name.mp4` becomes `name_c.mp4` for compression; splice output is
    `spliced_name.mp4`. Modes that default to the `OK` subdirectory, or
    any mode when `use_ok_dir` is set, write there instead of beside the
    input. The directory is not created here.
    """
    name = f"{mode.prefix}{input_path.stem}{mode.suffix}{input_path.suffix}"
    folder = input_path.parent
    if use_ok_dir or mode.uses_ok_dir:
        folder = folder / OK_DIR_NAME
    return folder / name


def build_video_filter(
    mode: OperationMode,
    params: JobParameters,
    duration: Optional[float] = None
) -> Optional[str]:
    """Synthesize the `-vf` graph for `params`, or None if nothing to mask."""
    if not params.regions:
        if params.window_seconds is not None:
            logger.debug("Window given without regions, nothing to mask")
        return None

    if (
        mode is OperationMode.REMOVE_TRAILER
        and params.window_seconds is not None
        and duration is not None
    ):
        start = window_start(duration, params.window_seconds)
        return build_filter_graph(params.regions, window=(start, duration))

    return build_filter_graph(params.regions)


def build_command(
    tool: str,
    mode: OperationMode,
    params: JobParameters,
    input_path: Path,
    output_path: Path,
    duration: Optional[float] = None
) -> Command:
    """
    Build `<tool> -i <input> [-vf <graph>] <user args...> <output>`.

    `duration` is the probed clip length; it is only consulted for the
    windowed trailer mask.
    """
    argv = [tool, "-i", str(input_path)]

    video_filter = build_video_filter(mode, params, duration)
    if video_filter:
        argv.extend(["-vf", video_filter])

    argv.extend(tokenize_args(params.encoder_args))
    argv.append(str(output_path))

    return Command(
        argv=tuple(argv),
        cwd=input_path.parent,
        description=f"{mode.value} {input_path.name}"
    )
