"""Immutable representation of a parsed scenario file."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from fosnet.ingest.utils import split_and_trim, split_by_blank

# vehicles longer than this are treated as trucks when the file does not say so
TRUCK_THRESHOLD_M = 7.0


class LaneKind(Enum):
    UNUSED = "u"
    LEFT_ONLY = "l"
    RIGHT_ONLY = "r"
    BOTH = "c"
    SINGLE = "s"
    STRIPED_LEFT = "L"
    STRIPED_RIGHT = "R"
    BEYOND_STRIPED = "X"


class Taper(Enum):
    NONE = "-"
    MERGE = ">"
    DIVERGE = "<"
    MERGE_ADJACENT = "/"
    DIVERGE_ADJACENT = "\\"


STRIPED_KINDS = frozenset({LaneKind.STRIPED_LEFT, LaneKind.STRIPED_RIGHT, LaneKind.BEYOND_STRIPED})


def _flag(text: str) -> bool:
    return text == "1"


@dataclass(frozen=True)
class LaneCell:
    """One lane of one section."""

    kind: LaneKind
    taper: Taper
    lane_out: int
    no_overtaking_trucks: bool
    speed_suppression: float
    speed_limit: float
    slope: float
    all_lane_change_required: bool
    width: float
    road_works: bool
    trajectory_control: bool
    switched_area: int = 0

    @classmethod
    def parse(cls, text: str) -> "LaneCell":
        # e.g. "r,-, 0, 0,1.0,100.0,0.000,0,3.50,0,0[,-1]"
        fields = split_and_trim(text, ",")
        if len(fields) < 11:
            raise ValueError(f"lane cell needs at least 11 fields, got {len(fields)}: {text!r}")
        return cls(
            kind=LaneKind(fields[0]),
            taper=Taper(fields[1]),
            lane_out=int(fields[2]),
            no_overtaking_trucks=_flag(fields[3]),
            speed_suppression=float(fields[4]),
            speed_limit=float(fields[5]),
            slope=float(fields[6]),
            all_lane_change_required=_flag(fields[7]),
            width=float(fields[8]),
            road_works=_flag(fields[9]),
            trajectory_control=_flag(fields[10]),
            switched_area=int(fields[11]) if len(fields) > 11 else 0,
        )

    def can_change_left(self, striped_areas: bool) -> bool:
        return self.kind in (LaneKind.LEFT_ONLY, LaneKind.BOTH) or (
            self.kind is LaneKind.STRIPED_LEFT and striped_areas
        )

    def can_change_right(self, striped_areas: bool) -> bool:
        return self.kind in (LaneKind.RIGHT_ONLY, LaneKind.BOTH) or (
            self.kind is LaneKind.STRIPED_RIGHT and striped_areas
        )

    def is_shoulder(self, striped_areas: bool) -> bool:
        if self.kind is LaneKind.BEYOND_STRIPED:
            return True
        return self.kind in (LaneKind.STRIPED_LEFT, LaneKind.STRIPED_RIGHT) and not striped_areas

    @property
    def is_switched(self) -> bool:
        return self.switched_area != 0

    @property
    def switched_area_index(self) -> int:
        if not self.is_switched:
            raise ValueError("lane cell is not part of a switched area")
        return abs(self.switched_area)

    @property
    def is_rush_hour_lane(self) -> bool:
        return self.switched_area > 0

    @property
    def is_plus_lane(self) -> bool:
        return self.switched_area < 0


@dataclass(frozen=True)
class SourceSink:
    section_from_end: int
    from_lane: int
    to_lane: int
    name: str

    @classmethod
    def parse(cls, text: str) -> "SourceSink":
        fields = split_by_blank(text, 4)
        if len(fields) != 4:
            raise ValueError(f"source/sink needs 4 fields, got {len(fields)}")
        return cls(int(fields[0]), int(fields[1]), int(fields[2]), fields[3])


@dataclass(frozen=True)
class TrafficLight:
    controller: str
    position: float
    lane: int
    number: int
    cycle_time: float
    green_time: float
    yellow_time: float
    start_offset: float

    @classmethod
    def parse(cls, text: str) -> "TrafficLight":
        fields = split_by_blank(text, 8)
        if len(fields) != 8:
            raise ValueError(f"traffic light needs 8 fields, got {len(fields)}")
        return cls(
            controller=fields[0],
            position=float(fields[1]),
            lane=int(fields[2]),
            number=int(fields[3]),
            cycle_time=float(fields[4]),
            green_time=float(fields[5]),
            yellow_time=float(fields[6]),
            start_offset=float(fields[7]),
        )


@dataclass(frozen=True)
class Flow:
    """Piecewise demand of one source: times in seconds, flows in veh/h."""

    times: Tuple[float, ...]
    flows: Tuple[float, ...]

    @classmethod
    def parse(cls, text: str) -> "Flow":
        times: List[float] = []
        flows: List[float] = []
        for pair in split_by_blank(text):
            values = split_and_trim(pair, "|")
            if len(values) != 2:
                raise ValueError(f"flow value must be 'time|flow', got {pair!r}")
            times.append(float(values[0]))
            flows.append(float(values[1]))
        return cls(tuple(times), tuple(flows))


@dataclass(frozen=True)
class Parameter:
    value: float
    name: str

    @classmethod
    def parse(cls, text: str) -> "Parameter":
        fields = split_by_blank(text, 2)
        if len(fields) != 2:
            raise ValueError("parameter needs a value and a name")
        return cls(float(fields[0]), fields[1])


@dataclass(frozen=True)
class SwitchedArea:
    open_time: float
    close_time: float
    open_speed: float
    close_speed: float
    open_intensity: float
    close_intensity: float
    open_mode: int
    close_mode: int
    detector_index: int

    @classmethod
    def parse(cls, text: str) -> "SwitchedArea":
        fields = split_by_blank(text, 9)
        if len(fields) != 9:
            raise ValueError(f"switched area times need 9 fields, got {len(fields)}")
        return cls(
            float(fields[0]),
            float(fields[1]),
            float(fields[2]),
            float(fields[3]),
            float(fields[4]),
            float(fields[5]),
            int(fields[6]),
            int(fields[7]),
            int(fields[8]),
        )


@dataclass(frozen=True)
class TemporaryBlockage:
    position: float
    from_lane: int
    to_lane: int
    from_time: float
    to_time: float

    @classmethod
    def parse(cls, text: str) -> "TemporaryBlockage":
        fields = split_by_blank(text, 5)
        if len(fields) != 5:
            raise ValueError(f"temporary blockage needs 5 fields, got {len(fields)}")
        return cls(float(fields[0]), int(fields[1]), int(fields[2]), float(fields[3]), float(fields[4]))


@dataclass(frozen=True)
class VehicleType:
    name: str
    is_truck: Optional[bool] = None


@dataclass(frozen=True)
class Section:
    index: int
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start

    def contains(self, position: float) -> bool:
        return self.start <= position < self.end


@dataclass(frozen=True)
class ScenarioGrid:
    """Everything a scenario file declares, validated and frozen.

    ``lanes[lane_index][section_index]`` holds the lane cells.
    """

    sections: Tuple[Section, ...]
    lanes: Tuple[Tuple[LaneCell, ...], ...]
    sources: Tuple[SourceSink, ...] = ()
    sinks: Tuple[SourceSink, ...] = ()
    traffic_lights: Tuple[TrafficLight, ...] = ()
    detector_times: Tuple[int, ...] = ()
    detector_positions: Tuple[float, ...] = ()
    vehicle_types: Tuple[VehicleType, ...] = ()
    general_parameters: Tuple[Parameter, ...] = ()
    specific_parameters: Tuple[Tuple[Parameter, ...], ...] = ()
    flows: Tuple[Flow, ...] = ()
    vehicle_probabilities: Tuple[Tuple[float, ...], ...] = ()
    source_to_sink: Tuple[Tuple[Tuple[float, ...], ...], ...] = ()
    switched_areas: Tuple[Optional[SwitchedArea], ...] = ()
    temporary_blockage: Optional[TemporaryBlockage] = None
    version: Optional[str] = None
    seed: int = 0
    time_step: float = 0.5
    maximum_simulation_time: int = 0

    @property
    def lane_count(self) -> int:
        return len(self.lanes)

    @property
    def section_count(self) -> int:
        return len(self.sections)

    def cell(self, lane_index: int, section_index: int) -> LaneCell:
        return self.lanes[lane_index][section_index]

    def section_at(self, position: float) -> Optional[Section]:
        for section in self.sections:
            if section.contains(position):
                return section
        return None

    def parameter_value(self, vehicle_type: int, name: str) -> float:
        for param in self.specific_parameters[vehicle_type]:
            if param.name == name:
                return param.value
        raise KeyError(f"No parameter {name!r} for vehicle type {vehicle_type}")

    def is_truck(self, vehicle_type: int) -> bool:
        declared = self.vehicle_types[vehicle_type].is_truck
        if declared is not None:
            return declared
        return self.parameter_value(vehicle_type, "length") > TRUCK_THRESHOLD_M
