from pathlib import Path

import pytest

from mediabatch.commands import Command
from mediabatch.config import Config
from mediabatch.errors import ExternalToolFailure, ProbeFailure
from mediabatch.runner import CommandResult


class RecordingRunner:
    """Stands in for ProcessRunner: records commands and creates their output file."""

    def __init__(self, fail_when=None, exit_code=1):
        self.fail_when = fail_when
        self.exit_code = exit_code
        self.commands = []
        self.manifests = []

    def run(self, command: Command, echo: bool = True) -> CommandResult:
        self.commands.append(command)
        argv = command.argv

        if "concat" in argv:
            manifest = Path(argv[argv.index("-i") + 1])
            self.manifests.append(manifest.read_text(encoding="utf-8").splitlines())

        # ffmpeg leaves a partial output behind even when it fails
        Path(argv[-1]).write_bytes(b"\x00")

        if self.fail_when is not None and self.fail_when(command):
            raise ExternalToolFailure(command.description, self.exit_code)
        return CommandResult(exit_code=0, lines=[])


class FixedProbe:
    def __init__(self, duration=10.0, fail=False):
        self._duration = duration
        self.fail = fail
        self.calls = []

    def duration(self, path: Path) -> float:
        self.calls.append(path)
        if self.fail:
            raise ProbeFailure(path, "empty output")
        return self._duration


@pytest.fixture
def config(tmp_path):
    return Config(temp_dir=tmp_path / "tmp")


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def probe():
    return FixedProbe()


@pytest.fixture
def media_folder(tmp_path):
    folder = tmp_path / "videos"
    folder.mkdir()
    return folder


def touch(folder: Path, *names: str) -> None:
    for name in names:
        (folder / name).write_bytes(b"\x00")
