import re

import pytest

from mediabatch.errors import InvalidRegionFormat, PreconditionError
from mediabatch.regions import (
    RegionSpec,
    build_filter_graph,
    delogo_filter,
    format_seconds,
    parse_region,
    parse_region_list,
)


def test_parse_single_region():
    assert parse_region("10,20,300,40") == RegionSpec(10, 20, 300, 40)


def test_parse_region_list_keeps_order():
    regions = parse_region_list("0,980,1920,100&1700,40,200,80&5,5,1,1")
    assert regions == (
        RegionSpec(0, 980, 1920, 100),
        RegionSpec(1700, 40, 200, 80),
        RegionSpec(5, 5, 1, 1),
    )


@pytest.mark.parametrize("text", [
    "",
    "1,2,3",
    "1,2,3,4,5",
    "a,2,3,4",
    "1,2,3,-4",
    "1, 2,3,4",
    "1,2,3,4.5",
    "1,,3,4",
    "1,2,3,4\n",
])
def test_invalid_single_region(text):
    with pytest.raises(InvalidRegionFormat):
        parse_region(text)


@pytest.mark.parametrize("text", [
    "1,2,3,4&",
    "&1,2,3,4",
    "1,2,3,4&&5,6,7,8",
    "1,2,3,4&5,6,7",
    "1,2,3,4&x,6,7,8",
])
def test_invalid_member_rejects_whole_list(text):
    with pytest.raises(InvalidRegionFormat):
        parse_region_list(text)


def test_invalid_region_is_batch_fatal():
    assert issubclass(InvalidRegionFormat, PreconditionError)


def test_filter_graph_preserves_values_and_order():
    text = "0,980,1920,100&1700,40,200,80"
    graph = build_filter_graph(parse_region_list(text))

    found = re.findall(r"delogo=x=(\d+):y=(\d+):w=(\d+):h=(\d+)", graph)
    assert [",".join(values) for values in found] == text.split("&")


def test_unwindowed_graph_is_comma_chained():
    graph = build_filter_graph([RegionSpec(1, 2, 3, 4), RegionSpec(5, 6, 7, 8)])
    assert graph == "delogo=x=1:y=2:w=3:h=4,delogo=x=5:y=6:w=7:h=8"


def test_window_applies_to_last_region_only():
    graph = build_filter_graph(
        [RegionSpec(1, 2, 3, 4), RegionSpec(5, 6, 7, 8)],
        window=(7.8, 10.0),
    )
    first, last = graph.split(",delogo")
    assert "enable" not in first
    assert last == "=x=5:y=6:w=7:h=8:enable='between(t,7.8,10)'"


def test_single_region_window():
    assert delogo_filter(RegionSpec(0, 0, 10, 10), window=(0.0, 3.5)) == (
        "delogo=x=0:y=0:w=10:h=10:enable='between(t,0,3.5)'"
    )


@pytest.mark.parametrize("value, expected", [
    (7.8, "7.8"),
    (10.0, "10"),
    (0.0, "0"),
    (0.125, "0.125"),
    (7.79999999, "7.8"),
])
def test_format_seconds(value, expected):
    assert format_seconds(value) == expected


def test_empty_region_list_cannot_build_graph():
    with pytest.raises(ValueError):
        build_filter_graph([])
