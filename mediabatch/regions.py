"""
mediabatch Regions

Parses masked-region descriptors (`x,y,w,h`, several joined by `&`) and
renders them as ffmpeg `delogo` filter chains.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import InvalidRegionFormat

REGION_DELIMITER = "&"

_REGION_RE = re.compile(r"([0-9]+),([0-9]+),([0-9]+),([0-9]+)")


@dataclass(frozen=True)
class RegionSpec:
    """A rectangle to paint out during encoding."""
    x: int
    y: int
    w: int
    h: int

    def __str__(self) -> str:
        return f"{self.x},{self.y},{self.w},{self.h}"


def parse_region(text: str) -> RegionSpec:
    """Parse one `x,y,w,h` descriptor. No whitespace is tolerated."""
    match = _REGION_RE.fullmatch(text)
    if not match:
        if not text:
            raise InvalidRegionFormat(text, "empty region")
        parts = text.split(",")
        if len(parts) != 4:
            raise InvalidRegionFormat(text, f"expected 4 components, got {len(parts)}")
        raise InvalidRegionFormat(text, "components must be non-negative integers")

    x, y, w, h = (int(v) for v in match.groups())
    return RegionSpec(x, y, w, h)


def parse_region_list(text: str) -> Tuple[RegionSpec, ...]:
    """Parse one or more regions separated by `&`, preserving order."""
    return tuple(parse_region(segment) for segment in text.split(REGION_DELIMITER))


def format_seconds(value: float) -> str:
    """Render seconds with at most millisecond precision: 7.8, 10, 0.125."""
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def delogo_filter(region: RegionSpec, window: Optional[Tuple[float, float]] = None) -> str:
    """
    Render a single `delogo` filter.

    If `window` is given as (start, end) the filter is only enabled while
    the timestamp lies inside it.
    """
    fragment = f"delogo=x={region.x}:y={region.y}:w={region.w}:h={region.h}"
    if window is not None:
        start, end = window
        fragment += f":enable='between(t,{format_seconds(start)},{format_seconds(end)})'"
    return fragment


def build_filter_graph(
    regions: Sequence[RegionSpec],
    window: Optional[Tuple[float, float]] = None
) -> str:
    """
    Chain one `delogo` per region with `,`.

    When `window` is set, every region but the last is masked for the whole
    clip and the last one only inside the window.
    """
    if not regions:
        raise ValueError("build_filter_graph requires at least one region")

    filters = [delogo_filter(r) for r in regions[:-1]]
    filters.append(delogo_filter(regions[-1], window))
    return ",".join(filters)
