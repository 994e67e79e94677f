"""Projection of detectors and traffic lights onto links and lanes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from fosnet.scenario import ScenarioGrid
from fosnet.topology.core import Topology


@dataclass(frozen=True)
class DetectorPlacement:
    id: str
    cross_section: int
    link_number: int
    lane_index: int
    position: float
    fraction: float


@dataclass(frozen=True)
class TrafficLightPlacement:
    id: str
    controller: str
    link_number: int
    lane_index: int
    position: float
    fraction: float
    cycle_time: float
    green_time: float
    yellow_time: float
    start_offset: float


def detector_schedule(grid: ScenarioGrid) -> Optional[Tuple[float, float]]:
    """First aggregation time and aggregation period in seconds, if both are given."""

    if len(grid.detector_times) < 2:
        return None
    first, period = grid.detector_times[0], grid.detector_times[1]
    return first * grid.time_step, period * grid.time_step


def place_detectors(grid: ScenarioGrid, topology: Topology) -> List[DetectorPlacement]:
    placements: List[DetectorPlacement] = []
    for cross_section, position in enumerate(grid.detector_positions):
        section = grid.section_at(position)
        if section is None:
            continue
        fraction = (position - section.start) / section.length
        for link in topology.links_in_section(section.index):
            for lane_index in range(link.from_lane, link.to_lane + 1):
                placements.append(
                    DetectorPlacement(
                        id=f"{cross_section}_{lane_index}",
                        cross_section=cross_section,
                        link_number=link.number,
                        lane_index=lane_index,
                        position=position,
                        fraction=fraction,
                    )
                )
    return placements


def place_traffic_lights(
    grid: ScenarioGrid,
    topology: Topology,
    log_fn: Optional[Callable[[str], None]] = print,
) -> List[TrafficLightPlacement]:
    placements: List[TrafficLightPlacement] = []
    for index, light in enumerate(grid.traffic_lights):
        section = grid.section_at(light.position)
        link = None
        if section is not None and 0 <= light.lane < grid.lane_count:
            link = topology.link_at(light.lane, section.index)
        if link is None:
            if log_fn is not None:
                log_fn(
                    f"[signals] traffic light {index} at {light.position:g} m on lane {light.lane} "
                    f"is not on any link; skipped"
                )
            continue
        placements.append(
            TrafficLightPlacement(
                id=str(len(placements)),
                controller=light.controller,
                link_number=link.number,
                lane_index=light.lane,
                position=light.position,
                fraction=(light.position - section.start) / section.length,
                cycle_time=light.cycle_time,
                green_time=light.green_time,
                yellow_time=light.yellow_time,
                start_offset=light.start_offset,
            )
        )
    return placements
