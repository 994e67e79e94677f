from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fosnet.errors import IllegalShiftError
from fosnet.fosnet import build_network
from fosnet.ingest.loader import parse_scenario
from fosnet.lane_geometry import LaneWidthFrame, synthesize_geometry
from fosnet.mapping.core import DASHED, LEFT_ONLY, RIGHT_ONLY, SOLID, mark_type_between
from fosnet.scenario import LaneCell
from fosnet.settings import GeometrySettings
from fosnet.topology.core import build_topology


def _cell(kind, lane_out, taper="-", width=3.5):
    return f"{kind},{taper}, {lane_out}, 0,1.0,100.0,0.000,0,{width:.2f},0,0"


def _grid(sections, rows, sources=(), sinks=()):
    """``rows[lane]`` holds ``(kind, lane_out[, taper[, width]])`` per section."""

    lines = ["sections: " + " ".join(str(s) for s in sections)]
    for lane, row in enumerate(rows):
        lines.append(f"lane {lane}: " + " ".join(_cell(*cell) for cell in row))
    for i, source in enumerate(sources):
        lines.append(f"source {i}: {source}")
    for i, sink in enumerate(sinks):
        lines.append(f"sink {i}: {sink}")
    lines.append("end of file")
    return parse_scenario("\n".join(lines))


def _network(grid, **kwargs):
    return build_network(grid, log_fn=None, **kwargs)


def test_two_lane_link_offsets_and_marks():
    grid = _grid([100], [[("c", 0)], [("c", 1)]], sources=["0 0 1 S"], sinks=["0 0 1 T"])
    network = _network(grid)

    assert network.geometry.node_positions["S"].x == pytest.approx(0.0)
    assert network.geometry.node_positions["T"].x == pytest.approx(100.0)
    assert network.geometry.node_positions["S"].y == pytest.approx(0.0)

    link = network.geometry.links[1]
    assert link.length == pytest.approx(100.0)
    assert [lane.start_offset for lane in link.lanes] == pytest.approx([1.75, 5.25])
    assert [lane.end_offset for lane in link.lanes] == pytest.approx([1.75, 5.25])
    assert [lane.start_width for lane in link.lanes] == pytest.approx([3.5, 3.5])

    kinds = [mark.kind for mark in link.marks]
    assert kinds == [SOLID, DASHED, SOLID]
    assert [mark.start_offset for mark in link.marks] == pytest.approx([0.2, 3.5, 6.8])
    assert [mark.start_width for mark in link.marks] == pytest.approx([0.2, 0.2, 0.2])


def test_lanes_cover_the_link_without_gaps():
    rows = [
        [("c", 0, "-", 3.5), ("c", 0, "-", 3.5)],
        [("c", 1, "-", 3.25), ("c", 1, "-", 3.0)],
        [("c", 2, "-", 3.0), ("s", 2, "-", 3.5)],
    ]
    grid = _grid([100, 300], rows, sources=["1 0 2 S"], sinks=["0 0 2 T"])
    network = _network(grid)

    for link in network.geometry.links.values():
        lanes = link.lanes
        for left, right in zip(lanes, lanes[1:]):
            assert right.start_offset - left.start_offset == pytest.approx(0.5 * (left.start_width + right.start_width))
            assert right.end_offset - left.end_offset == pytest.approx(0.5 * (left.end_width + right.end_width))
        start_span = lanes[-1].start_offset + 0.5 * lanes[-1].start_width - (lanes[0].start_offset - 0.5 * lanes[0].start_width)
        assert start_span == pytest.approx(sum(lane.start_width for lane in lanes))


def test_merge_taper_ends_on_neighbour_centre_line():
    rows = [
        [("c", 0), ("s", 0)],
        [("c", 0, ">"), ("u", 1)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 1 S"], sinks=["0 0 0 T"])
    network = _network(grid)

    assert network.topology.node("A").in_links == [network.topology.links[1]]
    link = network.geometry.links[1]
    first, merging = link.lanes
    assert merging.end_offset == pytest.approx(first.end_offset)
    assert merging.end_width == 0.0
    assert merging.start_width == pytest.approx(3.5)

    mark = link.marks[1]
    assert mark.kind == LEFT_ONLY
    assert mark.start_width == pytest.approx(0.6)
    assert mark.start_offset == pytest.approx(3.5)
    assert mark.end_offset == pytest.approx(first.end_offset)


def test_diverge_taper_starts_on_neighbour_centre_line():
    rows = [
        [("s", 0), ("c", 0)],
        [("u", 1), ("c", 1, "<")],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 0 S"], sinks=["0 0 1 T"])
    network = _network(grid)

    link = network.geometry.links[2]
    first, diverging = link.lanes
    assert diverging.start_offset == pytest.approx(first.start_offset)
    assert diverging.start_width == 0.0
    assert diverging.end_width == pytest.approx(3.5)
    assert link.marks[1].kind == RIGHT_ONLY


def test_diagonal_lane_ends_in_target_lane():
    rows = [
        [("s", 1), ("u", 0)],
        [("u", 1), ("s", 1)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 0 S"], sinks=["0 1 1 T"])
    network = _network(grid)

    positions = network.geometry.node_positions
    assert positions["S"].y == pytest.approx(0.0)
    assert positions["A"].y == pytest.approx(3.5)
    assert positions["A"].x == pytest.approx(100.0)
    assert positions["T"].y == pytest.approx(3.5)

    lane = network.geometry.links[1].lanes[0]
    assert lane.start_offset == pytest.approx(1.75)
    assert lane.end_offset == pytest.approx(1.75)


def test_narrower_link_is_centred_in_width_frame():
    rows = [
        [("c", 0, "-", 3.5), ("c", 0, "-", 3.0)],
        [("c", 1, "-", 3.5), ("c", 1, "-", 3.5)],
    ]
    grid = _grid([100, 200], rows)
    frame = LaneWidthFrame(grid)

    assert list(frame.max_width) == pytest.approx([3.5, 3.5])
    assert frame.left_edge_max(0) == 0.0
    assert frame.left_edge_max(2) == pytest.approx(7.0)
    assert frame.left_link_edge(0, 0, 1) == pytest.approx(0.0)
    assert frame.left_link_edge(1, 0, 1) == pytest.approx(0.25)


def test_diagonal_lane_widens_its_target_lane_in_frame():
    rows = [
        [("s", 1, "-", 3.75), ("u", 0, "-", 3.0)],
        [("u", 1, "-", 3.0), ("s", 1, "-", 3.0)],
    ]
    frame = LaneWidthFrame(_grid([100, 200], rows))
    assert list(frame.max_width) == pytest.approx([3.75, 3.75])


def test_shift_of_two_lanes_without_taper_is_rejected():
    rows = [
        [("c", 0), ("c", 0)],
        [("c", 1), ("l", 1)],
        [("c", 0), ("u", 2)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 2 S"], sinks=["0 0 1 T"])
    topology = build_topology(grid)

    with pytest.raises(IllegalShiftError) as excinfo:
        synthesize_geometry(topology, grid)
    assert excinfo.value.link_number == 1
    assert excinfo.value.lane_index == 2


def test_shift_of_one_lane_without_taper_keeps_previous_end_offset():
    rows = [
        [("c", 0), ("s", 0)],
        [("c", 0), ("u", 1)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 1 S"], sinks=["0 0 0 T"])
    link = _network(grid).geometry.links[1]

    assert [lane.start_offset for lane in link.lanes] == pytest.approx([1.75, 5.25])
    assert [lane.end_offset for lane in link.lanes] == pytest.approx([1.75, 1.75])
    assert [lane.end_width for lane in link.lanes] == pytest.approx([3.5, 3.5])


def test_merge_taper_shift_beyond_one_and_a_half_lanes_is_rejected():
    rows = [
        [("c", 0), ("c", 0)],
        [("c", 1), ("c", 1)],
        [("c", 0, ">"), ("u", 2)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 2 S"], sinks=["0 0 1 T"])
    topology = build_topology(grid)

    with pytest.raises(IllegalShiftError) as excinfo:
        synthesize_geometry(topology, grid)
    assert excinfo.value.link_number == 1
    assert excinfo.value.lane_index == 2
    assert excinfo.value.steps == pytest.approx(2.5)


def test_geometry_is_deterministic():
    rows = [
        [("c", 0), ("s", 0)],
        [("c", 0, ">"), ("u", 1)],
    ]
    grid = _grid([100, 200], rows, sources=["1 0 1 S"], sinks=["0 0 0 T"])
    first = _network(grid)
    second = _network(grid)

    assert list(first.topology.links) == list(second.topology.links)
    assert [n.name for n in first.topology.nodes] == [n.name for n in second.topology.nodes]
    assert first.geometry == second.geometry


def test_edge_marks_follow_geometry_settings():
    grid = _grid([100], [[("s", 0)]], sources=["0 0 0 S"], sinks=["0 0 0 T"])
    topology = build_topology(grid)
    settings = GeometrySettings(edge_stripe_gap=0.3, edge_stripe_width=0.15)
    link = synthesize_geometry(topology, grid, settings).links[1]

    left, right = link.marks
    assert (left.kind, right.kind) == (SOLID, SOLID)
    assert left.start_offset == pytest.approx(0.3)
    assert right.start_offset == pytest.approx(3.2)
    assert left.end_width == pytest.approx(0.15)


def _lane(kind, taper="-"):
    return LaneCell.parse(_cell(kind, 0, taper))


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (_lane("c"), _lane("c", ">"), LEFT_ONLY),
        (_lane("c"), _lane("c", "<"), RIGHT_ONLY),
        (_lane("c", ">"), _lane("c"), RIGHT_ONLY),
        (_lane("c"), _lane("X"), SOLID),
        (_lane("L"), _lane("c"), SOLID),
        (_lane("r"), _lane("l"), DASHED),
        (_lane("s"), _lane("l"), LEFT_ONLY),
        (_lane("r"), _lane("s"), RIGHT_ONLY),
    ],
)
def test_mark_type_between(left, right, expected):
    assert mark_type_between(left, right, striped_areas=False) == expected


def test_striped_lanes_are_not_shoulders_when_enabled():
    assert mark_type_between(_lane("R"), _lane("L"), striped_areas=True) == DASHED
