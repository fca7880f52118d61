"""
mediabatch Jobs

Operation modes and the per-run job parameters collected by the front end.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import InvalidNumericParameter, InvalidRegionFormat
from .regions import RegionSpec, parse_region_list


class OperationMode(Enum):
    """What a run does to each file."""
    COMPRESS = "compress"
    REMOVE_SUBTITLE = "remove-subtitle"
    REMOVE_TRAILER = "remove-trailer"
    SPLICE_ADVANCED = "splice"

    @property
    def suffix(self) -> str:
        """Suffix inserted before the output extension."""
        return _SUFFIXES[self]

    @property
    def prefix(self) -> str:
        """Prefix prepended to the output file name."""
        return "spliced_" if self is OperationMode.SPLICE_ADVANCED else ""

    @property
    def requires_regions(self) -> bool:
        return self in (OperationMode.REMOVE_SUBTITLE, OperationMode.REMOVE_TRAILER)

    @property
    def needs_duration(self) -> bool:
        """Whether a file's duration must be probed before building commands."""
        return self in (OperationMode.REMOVE_TRAILER, OperationMode.SPLICE_ADVANCED)

    @property
    def requires_video(self) -> bool:
        return self is not OperationMode.COMPRESS

    @property
    def uses_ok_dir(self) -> bool:
        """Whether output goes to the `OK` subdirectory by default."""
        return self is OperationMode.SPLICE_ADVANCED


_SUFFIXES = {
    OperationMode.COMPRESS: "_c",
    OperationMode.REMOVE_SUBTITLE: "_s",
    OperationMode.REMOVE_TRAILER: "_w",
    OperationMode.SPLICE_ADVANCED: "",
}


@dataclass(frozen=True)
class JobParameters:
    """Parameters shared by every file of one run."""
    encoder_args: str = ""
    regions: Tuple[RegionSpec, ...] = ()
    window_seconds: Optional[float] = None
    head_seconds: Optional[float] = None
    tail_seconds: Optional[float] = None
    splice_head: bool = True
    splice_tail: bool = True


def parse_seconds(name: str, text: Optional[str], required: bool = False) -> Optional[float]:
    """
    Parse a non-negative number of seconds from front-end text.

    Blank text yields None unless `required` is set.
    """
    if text is None or not text.strip():
        if required:
            raise InvalidNumericParameter(name, text, "a value is required")
        return None

    try:
        value = float(text.strip())
    except ValueError:
        raise InvalidNumericParameter(name, text, "not a number")

    if not math.isfinite(value) or value < 0:
        raise InvalidNumericParameter(name, text)
    return value


def validate_parameters(mode: OperationMode, params: JobParameters) -> None:
    """
    Check that `params` carries everything `mode` needs.

    Raises a PreconditionError subclass; called once at run start.
    """
    if mode.requires_regions and not params.regions:
        raise InvalidRegionFormat("", "at least one region is required")

    for name in ("window_seconds", "head_seconds", "tail_seconds"):
        value = getattr(params, name)
        if value is not None and (not math.isfinite(value) or value < 0):
            raise InvalidNumericParameter(name, str(value))

    if mode is OperationMode.REMOVE_TRAILER and params.window_seconds is None:
        raise InvalidNumericParameter("window_seconds", None, "a value is required")

    if mode is OperationMode.SPLICE_ADVANCED:
        if not params.splice_head and not params.splice_tail:
            raise InvalidNumericParameter(
                "splice sides", "none", "splice the head, the tail, or both"
            )
        if params.splice_head and params.head_seconds is None:
            raise InvalidNumericParameter("head_seconds", None, "a value is required")
        if params.splice_tail and params.tail_seconds is None:
            raise InvalidNumericParameter("tail_seconds", None, "a value is required")


def parse_job_parameters(
    mode: OperationMode,
    encoder_args: str = "",
    regions: str = "",
    window: str = "",
    head: str = "",
    tail: str = "",
    splice_head: bool = True,
    splice_tail: bool = True,
) -> JobParameters:
    """Build validated JobParameters from the raw text of the front end."""
    region_list: Tuple[RegionSpec, ...] = ()
    if regions or mode.requires_regions:
        region_list = parse_region_list(regions)

    params = JobParameters(
        encoder_args=encoder_args,
        regions=region_list,
        window_seconds=parse_seconds("window_seconds", window),
        head_seconds=parse_seconds("head_seconds", head) if splice_head else None,
        tail_seconds=parse_seconds("tail_seconds", tail) if splice_tail else None,
        splice_head=splice_head,
        splice_tail=splice_tail,
    )
    validate_parameters(mode, params)
    return params
