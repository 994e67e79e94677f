"""Segmentation of the scenario grid into links and the node graph joining them."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from fosnet.errors import DanglingLinkError, TopologyError, UnresolvedAttachmentError
from fosnet.scenario import STRIPED_KINDS, LaneCell, LaneKind, ScenarioGrid, SourceSink
from fosnet.topology.naming import node_name

LinkMap = List[List[Optional[int]]]


@dataclass(eq=False)
class Link:
    """Run of lanes in one section between which vehicles may change lanes."""

    number: int
    section_index: int
    from_lane: int
    to_lane: int
    lanes: Tuple[LaneCell, ...]
    from_node: Optional["Node"] = field(default=None, repr=False)
    to_node: Optional["Node"] = field(default=None, repr=False)

    def set_from_node(self, node: "Node") -> None:
        if self.from_node is not None and self.from_node is not node:
            raise TopologyError(
                f"Link {self.number} already starts at node {self.from_node.name}, cannot start at {node.name}"
            )
        self.from_node = node

    def set_to_node(self, node: "Node") -> None:
        if self.to_node is not None and self.to_node is not node:
            raise TopologyError(
                f"Link {self.number} already ends at node {self.to_node.name}, cannot end at {node.name}"
            )
        self.to_node = node


@dataclass(eq=False)
class Node:
    number: int
    in_links: List[Link] = field(default_factory=list, repr=False)
    out_links: List[Link] = field(default_factory=list, repr=False)
    source: Optional[SourceSink] = None
    sink: Optional[SourceSink] = None
    _name: Optional[str] = field(default=None, repr=False)

    @property
    def letters(self) -> str:
        return node_name(self.number)

    @property
    def name(self) -> str:
        if self._name is None:
            self._name = self.letters
        return self._name

    def assign_name(self, name: str) -> None:
        if self._name is not None and self._name != name:
            raise TopologyError(f"Node {self._name} cannot be renamed to {name}")
        self._name = name

    def add_in_link(self, link: Link) -> None:
        if link not in self.in_links:
            self.in_links.append(link)

    def add_out_link(self, link: Link) -> None:
        if link not in self.out_links:
            self.out_links.append(link)


@dataclass
class Topology:
    links: Dict[int, Link]
    nodes: List[Node]
    link_map: LinkMap

    def link_at(self, lane_index: int, section_index: int) -> Optional[Link]:
        number = self.link_map[lane_index][section_index]
        return self.links[number] if number is not None else None

    def links_in_section(self, section_index: int) -> List[Link]:
        return [link for link in self.links.values() if link.section_index == section_index]

    @property
    def nodes_by_name(self) -> Dict[str, Node]:
        return {node.name: node for node in self.nodes}

    def node(self, name: str) -> Node:
        for node in self.nodes:
            if node.name == name:
                return node
        raise KeyError(f"No node named {name!r}")


# ---------------------------------------------------------------------------
# Segmentation


def _is_traversable(cell: LaneCell, striped_areas: bool) -> bool:
    if cell.kind in (LaneKind.UNUSED, LaneKind.BEYOND_STRIPED):
        return False
    return striped_areas or cell.kind not in STRIPED_KINDS


def _check_lane_out(grid: ScenarioGrid, link: Link) -> None:
    for i, cell in enumerate(link.lanes):
        if not 0 <= cell.lane_out < grid.lane_count:
            raise TopologyError(
                f"Lane {link.from_lane + i} in section {link.section_index} (link {link.number}) "
                f"continues on lane {cell.lane_out}, which does not exist"
            )


def map_out_link(
    grid: ScenarioGrid,
    section_index: int,
    from_lane: int,
    striped_areas: bool = False,
    number: int = 1,
) -> Tuple[Optional[Link], int]:
    """Map the link whose left-most lane is ``from_lane``.

    Returns the link (or ``None`` when the lane carries no traffic) and the
    lane index at which the next link of the section may start.
    """

    cell = grid.cell(from_lane, section_index)
    if not _is_traversable(cell, striped_areas):
        return None, from_lane + 1

    last_lane = grid.lane_count - 1
    to_lane = from_lane
    while to_lane < last_lane:
        here = grid.cell(to_lane, section_index)
        right = grid.cell(to_lane + 1, section_index)
        if right.kind is LaneKind.UNUSED:
            break
        if not (
            here.can_change_right(striped_areas)
            or (to_lane == from_lane and here.is_shoulder(striped_areas))
            or right.can_change_left(striped_areas)
            or right.is_shoulder(striped_areas)
        ):
            break
        to_lane += 1

    cells = tuple(grid.cell(lane, section_index) for lane in range(from_lane, to_lane + 1))
    return Link(number, section_index, from_lane, to_lane, cells), to_lane + 1


def segment_links(grid: ScenarioGrid, striped_areas: bool = False) -> Tuple[Dict[int, Link], LinkMap]:
    """Partition every section into links, numbering them in scan order."""

    links: Dict[int, Link] = {}
    link_map: LinkMap = [[None] * grid.section_count for _ in range(grid.lane_count)]
    number = 1
    for section_index in range(grid.section_count):
        lane = 0
        while lane < grid.lane_count:
            link, lane = map_out_link(grid, section_index, lane, striped_areas, number)
            if link is None:
                continue
            _check_lane_out(grid, link)
            links[number] = link
            for lane_index in range(link.from_lane, link.to_lane + 1):
                link_map[lane_index][section_index] = number
            number += 1
    return links, link_map


# ---------------------------------------------------------------------------
# Nodes


class _TopologyBuilder:
    """Mutable state of one topology build: node counter and adjacency indices."""

    def __init__(self, grid: ScenarioGrid, links: Dict[int, Link], link_map: LinkMap) -> None:
        self.grid = grid
        self.links = links
        self.link_map = link_map
        self.nodes: List[Node] = []
        self.next_number = 1
        # link number -> node the link flows into / out of
        self.node_of_in_link: Dict[int, Node] = {}
        self.node_of_out_link: Dict[int, Node] = {}
        self.forbidden: Set[str] = {s.name for s in grid.sources} | {s.name for s in grid.sinks}

    def _allocate(self) -> Node:
        node = Node(self.next_number)
        self.next_number += 1
        return node

    def _register(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def _connect(self, node: Node, in_link: Optional[Link] = None, out_link: Optional[Link] = None) -> None:
        if in_link is not None:
            node.add_in_link(in_link)
            in_link.set_to_node(node)
            self.node_of_in_link[in_link.number] = node
        if out_link is not None:
            node.add_out_link(out_link)
            out_link.set_from_node(node)
            self.node_of_out_link[out_link.number] = node

    # -- intermediate nodes -------------------------------------------------
    def _node_between(self, from_link: Link, to_link: Link) -> Node:
        candidates = [
            node
            for node in (self.node_of_out_link.get(to_link.number), self.node_of_in_link.get(from_link.number))
            if node is not None
        ]
        if candidates:
            return min(candidates, key=lambda node: node.number)
        node = self._allocate()
        while node.letters in self.forbidden:
            node = self._allocate()
        return self._register(node)

    def build_intermediate_nodes(self) -> None:
        grid = self.grid
        for section_index in range(grid.section_count - 1):
            for lane_index in range(grid.lane_count):
                from_number = self.link_map[lane_index][section_index]
                if from_number is None:
                    continue
                lane_out = grid.cell(lane_index, section_index).lane_out
                to_number = self.link_map[lane_out][section_index + 1]
                if to_number is None:
                    continue
                from_link = self.links[from_number]
                to_link = self.links[to_number]
                node = self._node_between(from_link, to_link)
                self._connect(node, in_link=from_link, out_link=to_link)

    # -- sources and sinks --------------------------------------------------
    def attachment_link(self, source_sink: SourceSink, role: str) -> Link:
        grid = self.grid
        section_index = grid.section_count - source_sink.section_from_end - 1
        if not 0 <= section_index < grid.section_count:
            raise UnresolvedAttachmentError(
                f"{role} {source_sink.name!r} refers to section {source_sink.section_from_end} from the end, "
                f"but there are only {grid.section_count} sections"
            )
        if 0 <= source_sink.from_lane < grid.lane_count:
            number = self.link_map[source_sink.from_lane][section_index]
            if number is not None:
                return self.links[number]
        # the attachment lane is the target of a diagonal lane
        for lane_index in range(grid.lane_count):
            cell = grid.cell(lane_index, section_index)
            number = self.link_map[lane_index][section_index]
            if cell.kind is LaneKind.UNUSED or number is None:
                continue
            if source_sink.from_lane <= cell.lane_out <= source_sink.to_lane:
                return self.links[number]
        raise UnresolvedAttachmentError(
            f"{role} {source_sink.name!r} (section {section_index}, lanes "
            f"{source_sink.from_lane}-{source_sink.to_lane}) is not on any link"
        )

    def build_sources(self) -> Set[str]:
        names: Set[str] = set()
        for source in self.grid.sources:
            link = self.attachment_link(source, "Source")
            node = self._register(self._allocate())
            node.source = source
            node.assign_name(source.name)
            self._connect(node, out_link=link)
            names.add(node.name)
        return names

    def build_sinks(self, source_names: Set[str]) -> None:
        sink_names: Set[str] = set()
        for sink in self.grid.sinks:
            link = self.attachment_link(sink, "Sink")
            node = self._allocate()
            name = sink.name
            if name in source_names or name in sink_names:
                name = f"{node.letters} ({sink.name})"
            while name in source_names or name in sink_names:
                node = self._allocate()
                name = f"{node.letters} ({sink.name})"
            node.sink = sink
            node.assign_name(name)
            self._register(node)
            self._connect(node, in_link=link)
            sink_names.add(name)

    # -- checks ---------------------------------------------------------------
    def check(self) -> None:
        for link in self.links.values():
            for missing, node in (("from-node", link.from_node), ("to-node", link.to_node)):
                if node is None:
                    raise DanglingLinkError(link.number, link.section_index, link.from_lane, link.to_lane, missing)
        duplicates = [name for name, count in Counter(node.name for node in self.nodes).items() if count > 1]
        if duplicates:
            raise TopologyError(f"Duplicate node names: {', '.join(sorted(duplicates))}")


def build_topology(grid: ScenarioGrid, striped_areas: bool = False) -> Topology:
    """Segment ``grid`` into links and connect them with named nodes."""

    links, link_map = segment_links(grid, striped_areas)
    builder = _TopologyBuilder(grid, links, link_map)
    builder.build_intermediate_nodes()
    source_names = builder.build_sources()
    builder.build_sinks(source_names)
    builder.check()
    return Topology(links=links, nodes=builder.nodes, link_map=link_map)
