"""Lateral geometry of links: node positions, lane offsets/widths and markings.

Lateral coordinates grow to the right. All lanes are laid out in an idealised
grid in which every lane index has the maximum width it takes anywhere in the
scenario; links with fewer or narrower lanes are centred within that grid so
that lanes line up across sections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from fosnet.errors import IllegalShiftError
from fosnet.mapping.core import SOLID, mark_type_between, mark_width
from fosnet.scenario import ScenarioGrid, Taper
from fosnet.settings import GeometrySettings
from fosnet.topology.core import Link, Node, Topology


@dataclass(frozen=True)
class NodePosition:
    x: float
    y: float


@dataclass(frozen=True)
class LaneGeometry:
    lane_index: int
    start_offset: float
    end_offset: float
    start_width: float
    end_width: float
    speed_limit: float


@dataclass(frozen=True)
class BoundaryMark:
    kind: str
    start_offset: float
    end_offset: float
    start_width: float
    end_width: float


@dataclass(frozen=True)
class LinkGeometry:
    link_number: int
    start_node: str
    end_node: str
    length: float
    lanes: Tuple[LaneGeometry, ...]
    marks: Tuple[BoundaryMark, ...]


@dataclass(frozen=True)
class Geometry:
    node_positions: Dict[str, NodePosition]
    links: Dict[int, LinkGeometry]


class LaneWidthFrame:
    """Idealised lateral grid derived from the maximum width of each lane index."""

    def __init__(self, grid: ScenarioGrid) -> None:
        lane_count = grid.lane_count
        self.widths = np.array(
            [[cell.width for cell in row] for row in grid.lanes], dtype=float
        ).reshape(lane_count, grid.section_count)
        lane_out = np.array(
            [[cell.lane_out for cell in row] for row in grid.lanes], dtype=int
        ).reshape(lane_count, grid.section_count)

        max_width = self.widths.max(axis=1) if self.widths.size else np.zeros(lane_count)
        # a diagonal lane also widens the lane it continues on
        valid = (lane_out >= 0) & (lane_out < lane_count)
        np.maximum.at(max_width, lane_out[valid], self.widths[valid])
        self.max_width = max_width
        self._left_edges = np.concatenate(([0.0], np.cumsum(max_width)))

    def left_edge_max(self, lane_index: int) -> float:
        return float(self._left_edges[lane_index])

    def left_link_edge(self, section_index: int, from_lane: int, to_lane: int) -> float:
        max_sum = self.max_width[from_lane : to_lane + 1].sum()
        actual_sum = self.widths[from_lane : to_lane + 1, section_index].sum()
        return self.left_edge_max(from_lane) + 0.5 * float(max_sum - actual_sum)


def node_position(node: Node, grid: ScenarioGrid, frame: LaneWidthFrame) -> NodePosition:
    """Nodes sit where their out-links start, or where the in-links of a sink end."""

    if node.out_links:
        links = node.out_links
        x = grid.sections[links[0].section_index].start
    else:
        links = node.in_links
        x = grid.sections[links[0].section_index].end

    edges = []
    for link in links:
        if node.out_links:
            from_lane, to_lane = link.from_lane, link.to_lane
        else:
            targets = [cell.lane_out for cell in link.lanes]
            from_lane, to_lane = min(targets), max(targets)
        edges.append(frame.left_link_edge(link.section_index, from_lane, to_lane))
    return NodePosition(x=x, y=max(edges))


def _lane_offsets(
    link: Link, frame: LaneWidthFrame, start_y: float, end_y: float
) -> Tuple[List[float], List[float]]:
    left_edge = frame.left_link_edge(link.section_index, link.from_lane, link.to_lane)
    edge_start = left_edge - start_y
    edge_end = left_edge - end_y
    starts: List[float] = []
    ends: List[float] = []
    offset_end = 0.0  # lane positions the previous lane shifts by at the link end
    for i, cell in enumerate(link.lanes):
        width = cell.width

        if cell.taper is Taper.DIVERGE:
            starts.append(starts[-1] if starts else edge_start)
        else:
            starts.append(edge_start + 0.5 * width)
            edge_start += width

        current = float(cell.lane_out - (link.from_lane + i))
        if cell.taper is Taper.MERGE:
            current -= 0.5
        if current == offset_end:
            ends.append(edge_end + 0.5 * width)
            edge_end += width
        elif current > offset_end or i == 0:
            # re-anchor on the idealised grid at the target lane
            margin = left_edge - frame.left_edge_max(link.from_lane)
            edge_end = frame.left_edge_max(cell.lane_out) + margin - end_y
            ends.append(edge_end + 0.5 * width)
            edge_end += width
        else:
            steps = offset_end - current
            limit = 1.5 if cell.taper in (Taper.MERGE, Taper.DIVERGE) else 1.0
            if steps > limit:
                raise IllegalShiftError(link.number, link.from_lane + i, steps)
            ends.append(ends[-1])
        offset_end = current
    return starts, ends


def synthesize_link(
    link: Link,
    positions: Dict[str, NodePosition],
    frame: LaneWidthFrame,
    grid: ScenarioGrid,
    geometry: Optional[GeometrySettings] = None,
    striped_areas: bool = False,
) -> LinkGeometry:
    geometry = geometry or GeometrySettings()
    start_node = link.from_node.name
    end_node = link.to_node.name
    starts, ends = _lane_offsets(link, frame, positions[start_node].y, positions[end_node].y)

    lanes = []
    for i, cell in enumerate(link.lanes):
        lanes.append(
            LaneGeometry(
                lane_index=link.from_lane + i,
                start_offset=starts[i],
                end_offset=ends[i],
                start_width=0.0 if cell.taper is Taper.DIVERGE else cell.width,
                end_width=0.0 if cell.taper is Taper.MERGE else cell.width,
                speed_limit=cell.speed_limit,
            )
        )

    gap = geometry.edge_stripe_gap
    edge_width = geometry.edge_stripe_width
    first, last = lanes[0], lanes[-1]
    marks = [
        BoundaryMark(
            SOLID,
            first.start_offset - 0.5 * first.start_width + gap,
            first.end_offset - 0.5 * first.end_width + gap,
            edge_width,
            edge_width,
        )
    ]
    for i in range(1, len(lanes)):
        kind = mark_type_between(link.lanes[i - 1], link.lanes[i], striped_areas)
        width = mark_width(kind, geometry)
        lane = lanes[i]
        marks.append(
            BoundaryMark(
                kind,
                lane.start_offset - 0.5 * lane.start_width,
                lane.end_offset - 0.5 * lane.end_width,
                width,
                width,
            )
        )
    marks.append(
        BoundaryMark(
            SOLID,
            last.start_offset + 0.5 * last.start_width - gap,
            last.end_offset + 0.5 * last.end_width - gap,
            edge_width,
            edge_width,
        )
    )

    return LinkGeometry(
        link_number=link.number,
        start_node=start_node,
        end_node=end_node,
        length=grid.sections[link.section_index].length,
        lanes=tuple(lanes),
        marks=tuple(marks),
    )


def synthesize_geometry(
    topology: Topology,
    grid: ScenarioGrid,
    geometry: Optional[GeometrySettings] = None,
    striped_areas: bool = False,
) -> Geometry:
    frame = LaneWidthFrame(grid)
    positions = {node.name: node_position(node, grid, frame) for node in topology.nodes}
    links = {
        number: synthesize_link(link, positions, frame, grid, geometry, striped_areas)
        for number, link in topology.links.items()
    }
    return Geometry(node_positions=positions, links=links)
