"""
mediabatch Process Runner

Executes external commands (ffmpeg, ffprobe) one at a time, streaming
their merged output line by line into the log channel as it is produced.
"""

import logging
import math
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .channel import LogChannel
from .commands import Command
from .errors import ExternalToolFailure, ProbeFailure

logger = logging.getLogger(__name__)


def tool_environment() -> Dict[str, str]:
    """Copy of the environment with UTF-8 forced for the child process."""
    env = dict(os.environ)
    env["LC_ALL"] = "C.UTF-8"
    env["LANG"] = "C.UTF-8"
    env["PYTHONIOENCODING"] = "UTF-8"
    return env


@dataclass
class CommandResult:
    """Outcome of a successful command."""
    exit_code: int
    lines: List[str]

    @property
    def output(self) -> str:
        return "\n".join(self.lines)


class ProcessRunner:
    """Runs one Command at a time and forwards its output to a LogChannel."""

    def __init__(self, channel: Optional[LogChannel] = None):
        self.channel = channel

    def _emit(self, line: str) -> None:
        if self.channel is not None:
            self.channel.put(line)

    def run(self, command: Command, echo: bool = True) -> CommandResult:
        """
        Execute `command`, blocking until it exits.

        Every output line is forwarded in emission order when `echo` is set.
        Raises ExternalToolFailure on a non-zero exit; the output is
        already in the channel by then.
        """
        description = command.description or command.tool
        logger.debug(f"Running: {command.display()}")
        if echo:
            self._emit(f"$ {command.display()}")

        lines: List[str] = []
        try:
            with subprocess.Popen(
                list(command.argv),
                cwd=str(command.cwd) if command.cwd else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                env=tool_environment(),
            ) as proc:
                for raw in proc.stdout:
                    line = raw.rstrip("\n")
                    lines.append(line)
                    logger.debug(f"[{command.tool}] {line}")
                    if echo:
                        self._emit(line)
                exit_code = proc.wait()
        except FileNotFoundError:
            message = f"Executable not found: {command.tool}"
            logger.error(message)
            self._emit(message)
            raise ExternalToolFailure(description, 127)

        if exit_code != 0:
            logger.error(f"{description} failed (exit code {exit_code})")
            raise ExternalToolFailure(description, exit_code, lines)

        return CommandResult(exit_code=exit_code, lines=lines)


class ProbeService:
    """
    Reads clip durations with ffprobe.

    The query itself is not echoed to the channel; only ffprobe's output
    from a failed query is, so the reason stays visible in the feed.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        ffprobe: str = "ffprobe",
        channel: Optional[LogChannel] = None
    ):
        self.runner = runner
        self.ffprobe = ffprobe
        self.channel = channel

    def probe_command(self, path: Path) -> Command:
        return Command(
            argv=(
                self.ffprobe, "-v", "error",
                "-show_entries", "format=duration",
                "-of", "default=noprint_wrappers=1:nokey=1",
                str(path),
            ),
            cwd=path.parent,
            description=f"duration probe {path.name}",
        )

    def duration(self, path: Path) -> float:
        """Duration of `path` in seconds. Raises ProbeFailure."""
        try:
            result = self.runner.run(self.probe_command(path), echo=False)
        except ExternalToolFailure as e:
            for line in e.output:
                logger.warning(f"[ffprobe] {line}")
                if self.channel is not None:
                    self.channel.put(line)
            reason = f"ffprobe exited with code {e.exit_code}"
            if e.last_line:
                reason += f": {e.last_line}"
            raise ProbeFailure(path, reason)

        values = [line.strip() for line in result.lines if line.strip()]
        if not values:
            raise ProbeFailure(path, "empty output")

        try:
            duration = float(values[0])
        except ValueError:
            raise ProbeFailure(path, f"unexpected output: {values[0]!r}")

        if not math.isfinite(duration) or duration <= 0:
            raise ProbeFailure(path, f"non-positive duration {duration}")

        logger.debug(f"Duration of {path.name}: {duration:.3f}s")
        return duration
