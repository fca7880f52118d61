"""
mediabatch Errors

Exception taxonomy shared by every pipeline stage.

PreconditionError subclasses abort a whole run before any file is touched.
FileError subclasses are caught at the file boundary by the batch runner and
recorded against that one file.
"""

from pathlib import Path
from typing import Optional, Sequence


class MediaBatchError(Exception):
    """Base class for all mediabatch errors."""
    pass


class BatchAlreadyRunning(MediaBatchError):
    """Raised when a run is started while another one is still active."""
    pass


# -------------------------------------------------------------------------
# Batch-fatal
# -------------------------------------------------------------------------

class PreconditionError(MediaBatchError):
    """Run-start validation failure. Reported once, before progress begins."""
    pass


class InvalidFolder(PreconditionError):
    """The input path does not exist or is not a directory."""

    def __init__(self, folder: Path):
        self.folder = folder
        super().__init__(f"Not a valid folder: {folder}")


class EmptyFolder(PreconditionError):
    """The input folder contains no files at all."""

    def __init__(self, folder: Path):
        self.folder = folder
        super().__init__(f"Folder is empty, nothing to process: {folder}")


class NoMediaFiles(PreconditionError):
    """The input folder contains no recognized media files."""

    def __init__(self, folder: Path, detail: str = "no media files found"):
        self.folder = folder
        super().__init__(f"{detail}: {folder}")


class NoSpliceCandidates(NoMediaFiles):
    """Splice mode found no original with a matching companion file."""

    def __init__(self, folder: Path):
        super().__init__(folder, "No original has a matching _no_sub companion")


class InvalidRegionFormat(PreconditionError):
    """A masked-region descriptor is not four comma-separated integers."""

    def __init__(self, text: str, reason: str = "expected x,y,w,h"):
        self.text = text
        super().__init__(f"Invalid region '{text}': {reason}")


class InvalidNumericParameter(PreconditionError):
    """A duration or window parameter is missing, non-numeric or negative."""

    def __init__(self, name: str, value: Optional[str], reason: str = "must be a non-negative number"):
        self.name = name
        self.value = value
        super().__init__(f"Invalid {name} '{value}': {reason}")


# -------------------------------------------------------------------------
# File-local
# -------------------------------------------------------------------------

class FileError(MediaBatchError):
    """Failure confined to a single file; the batch continues."""
    pass


class MissingCompanionFile(FileError):
    """Splice mode: the original has no `<stem>_no_sub<ext>` companion."""

    def __init__(self, original: Path, companion: Path):
        self.original = original
        self.companion = companion
        super().__init__(f"Companion file not found for {original.name}: expected {companion.name}")


class ProbeFailure(FileError):
    """ffprobe could not report a usable duration."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not probe duration of {path.name}: {reason}")


class ExternalToolFailure(FileError):
    """An external command exited with a non-zero status."""

    def __init__(self, description: str, exit_code: int, output: Sequence[str] = ()):
        self.description = description
        self.exit_code = exit_code
        self.output = list(output)
        super().__init__(f"{description} failed with exit code {exit_code}")

    @property
    def last_line(self) -> Optional[str]:
        """Last non-blank line the tool printed; usually its error message."""
        for line in reversed(self.output):
            if line.strip():
                return line.strip()
        return None


class IOFailure(FileError):
    """Temp file create/delete or output directory failure."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"I/O failure on {path}: {reason}")
