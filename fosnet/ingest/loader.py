"""Line-oriented reader turning scenario text into a :class:`ScenarioGrid`."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from fosnet.errors import (
    CrossReferenceMismatchError,
    IncompleteScenarioError,
    MalformedLineError,
    ScenarioError,
)
from fosnet.ingest.indexed import IndexedList
from fosnet.ingest.utils import (
    field_index,
    field_indices,
    field_value,
    iter_lines,
    read_text_any,
    split_by_blank,
    split_lane_cells,
)
from fosnet.scenario import (
    Flow,
    LaneCell,
    Parameter,
    ScenarioGrid,
    Section,
    SourceSink,
    SwitchedArea,
    TemporaryBlockage,
    TrafficLight,
    VehicleType,
)
from fosnet.settings import ParserSettings

# time steps are half a second whenever a value is given in seconds
_SECONDS_PER_STEP = 0.5


def _seconds(value: str) -> float:
    return float(value.strip().rstrip("s").strip())


class ScenarioReader:
    """Collects scenario lines; :meth:`finish` validates and freezes the result."""

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        self.settings = settings or ParserSettings()

        self.version: Optional[str] = None
        self.section_ends: List[float] = []
        self.lanes: IndexedList[List[LaneCell]] = IndexedList()
        self.sources: IndexedList[SourceSink] = IndexedList()
        self.sinks: IndexedList[SourceSink] = IndexedList()
        self.traffic_lights: IndexedList[TrafficLight] = IndexedList()
        self.detector_times: List[int] = []
        self.detector_positions: List[float] = []
        self.vehicle_types: IndexedList[VehicleType] = IndexedList()
        self.general_parameters: IndexedList[Parameter] = IndexedList()
        self.specific_parameters: IndexedList[IndexedList[Parameter]] = IndexedList()
        self.flows: IndexedList[Flow] = IndexedList()
        self.vehicle_probabilities: IndexedList[List[float]] = IndexedList()
        self.source_to_sink: IndexedList[IndexedList[List[float]]] = IndexedList()
        self.switched_areas: IndexedList[SwitchedArea] = IndexedList()
        self.temporary_blockage: Optional[TemporaryBlockage] = None
        self.seed = 0
        self.time_step = _SECONDS_PER_STEP
        self.maximum_simulation_time = 0
        self.end_of_file = False

        handlers: Dict[str, Callable[[str], None]] = {
            "version": self._version,
            "sections": self._sections,
            "lane change": self._ignore,
            "lane": self._lane,
            "source to sink": self._source_to_sink,
            "source": self._source,
            "sink": self._sink,
            "traffic light": self._traffic_light,
            "detector times": self._detector_times,
            "detector positions": self._detector_positions,
            "vehicle types": self._vehicle_types,
            "vehicle general param": self._general_parameter,
            "vehicle specific param": self._specific_parameter,
            "vehicle probabilities": self._vehicle_probabilities,
            "flow": self._flow,
            "switched area times": self._switched_area,
            "temporary blockage": self._temporary_blockage,
            "random seed": self._seed,
            "time step size": self._time_step,
            "maximum simulation time": self._maximum_simulation_time,
            "start of simulation time": self._ignore,
            "end of file": self._end_of_file,
        }
        # longest prefix first, so "lane change" is tried before "lane"
        self._handlers: List[Tuple[str, Callable[[str], None]]] = sorted(
            handlers.items(), key=lambda item: len(item[0]), reverse=True
        )

    # ------------------------------------------------------------------
    def feed(self, text: str) -> "ScenarioReader":
        for number, line in iter_lines(text):
            self.parse_line(line, number)
        return self

    def parse_line(self, line: str, line_number: Optional[int] = None) -> None:
        if not line.strip():
            return
        if self.end_of_file:
            raise MalformedLineError(line, line_number, "line after end of file marker")
        if line.startswith("#"):
            return
        for prefix, handler in self._handlers:
            if line.startswith(prefix):
                try:
                    handler(line)
                except ScenarioError:
                    raise
                except (ValueError, IndexError, KeyError) as exc:
                    raise MalformedLineError(line, line_number, str(exc)) from exc
                return
        raise MalformedLineError(line, line_number)

    # ------------------------------------------------------------------
    def _ignore(self, line: str) -> None:
        return None

    def _version(self, line: str) -> None:
        self.version = field_value(line)

    def _sections(self, line: str) -> None:
        ends = [float(v) for v in split_by_blank(field_value(line))]
        previous = 0.0
        for end in ends:
            if end <= previous:
                raise ValueError("section positions must be positive and increasing")
            previous = end
        self.section_ends = ends

    def _lane(self, line: str) -> None:
        cells = [LaneCell.parse(text) for text in split_lane_cells(field_value(line))]
        self.lanes.set(field_index(line), cells)

    def _source(self, line: str) -> None:
        self.sources.set(field_index(line), SourceSink.parse(field_value(line)))

    def _sink(self, line: str) -> None:
        self.sinks.set(field_index(line), SourceSink.parse(field_value(line)))

    def _traffic_light(self, line: str) -> None:
        if self.settings.traffic_lights:
            self.traffic_lights.set(field_index(line), TrafficLight.parse(field_value(line)))

    def _detector_times(self, line: str) -> None:
        values = split_by_blank(field_value(line))
        if any("s" in v for v in values):
            self.detector_times = [int(_seconds(v) / _SECONDS_PER_STEP) for v in values]
        else:
            self.detector_times = [int(float(v)) for v in values]

    def _detector_positions(self, line: str) -> None:
        if self.settings.detectors:
            self.detector_positions = [float(v) for v in split_by_blank(field_value(line))]

    def _vehicle_types(self, line: str) -> None:
        if line.startswith("vehicle types:"):
            # older files only state how many types there are
            count = int(field_value(line))
            for index in range(count):
                self.vehicle_types.set(index, VehicleType(str(index + 1)))
            return
        values = split_by_blank(field_value(line), 2)
        if len(values) != 2:
            raise ValueError("vehicle type needs a truck flag and a name")
        self.vehicle_types.set(field_index(line), VehicleType(values[1], values[0] == "1"))

    def _general_parameter(self, line: str) -> None:
        self.general_parameters.set(field_index(line), Parameter.parse(field_value(line)))

    def _specific_parameter(self, line: str) -> None:
        parameter_index, vehicle_type = field_indices(line)
        _sub_list(self.specific_parameters, vehicle_type).set(parameter_index, Parameter.parse(field_value(line)))

    def _flow(self, line: str) -> None:
        if self.settings.demand:
            self.flows.set(field_index(line), Flow.parse(field_value(line)))

    def _vehicle_probabilities(self, line: str) -> None:
        values = [float(v) for v in split_by_blank(field_value(line))]
        self.vehicle_probabilities.set(field_index(line), values)

    def _source_to_sink(self, line: str) -> None:
        source_index, sink_index = field_indices(line)
        values = [float(v) for v in split_by_blank(field_value(line))]
        _sub_list(self.source_to_sink, source_index).set(sink_index, values)

    def _switched_area(self, line: str) -> None:
        self.switched_areas.set(field_index(line), SwitchedArea.parse(field_value(line)))

    def _temporary_blockage(self, line: str) -> None:
        if self.settings.temporary_blockage:
            self.temporary_blockage = TemporaryBlockage.parse(field_value(line))

    def _seed(self, line: str) -> None:
        self.seed = int(field_value(line))

    def _time_step(self, line: str) -> None:
        self.time_step = float(field_value(line))

    def _maximum_simulation_time(self, line: str) -> None:
        # a second value holds the time of day at which the simulation starts
        value = split_by_blank(field_value(line))[0]
        if "s" in value:
            self.maximum_simulation_time = int(_seconds(value) / _SECONDS_PER_STEP)
            self.time_step = _SECONDS_PER_STEP
        else:
            self.maximum_simulation_time = int(value)

    def _end_of_file(self, line: str) -> None:
        self.end_of_file = True

    # ------------------------------------------------------------------
    def finish(self) -> ScenarioGrid:
        """Validate what was read and return the immutable grid."""

        self._check_complete()
        self._check_cross_references()

        sections = []
        start = 0.0
        for index, end in enumerate(self.section_ends):
            sections.append(Section(index, start, end))
            start = end

        switched: List[Optional[SwitchedArea]] = self.switched_areas.to_list()
        return ScenarioGrid(
            sections=tuple(sections),
            lanes=tuple(tuple(row) for row in self.lanes),
            sources=tuple(self.sources),
            sinks=tuple(self.sinks),
            traffic_lights=tuple(self.traffic_lights),
            detector_times=tuple(self.detector_times),
            detector_positions=tuple(self.detector_positions),
            vehicle_types=tuple(self.vehicle_types),
            general_parameters=tuple(self.general_parameters),
            specific_parameters=tuple(tuple(params) for params in self.specific_parameters),
            flows=tuple(self.flows),
            vehicle_probabilities=tuple(tuple(values) for values in self.vehicle_probabilities),
            source_to_sink=tuple(
                tuple(tuple(values) for values in sinks) for sinks in self.source_to_sink
            ),
            switched_areas=tuple(switched),
            temporary_blockage=self.temporary_blockage,
            version=self.version,
            seed=self.seed,
            time_step=self.time_step,
            maximum_simulation_time=self.maximum_simulation_time,
        )

    def _check_complete(self) -> None:
        if not self.end_of_file:
            raise IncompleteScenarioError(
                "No end of file information was found, parsing information likely incomplete."
            )
        if not self.section_ends:
            raise IncompleteScenarioError("No sections are defined.")

        simple = (
            ("lanes", self.lanes),
            ("sources", self.sources),
            ("sinks", self.sinks),
            ("traffic lights", self.traffic_lights),
            ("vehicle types", self.vehicle_types),
            ("general parameters", self.general_parameters),
            ("specific parameters", self.specific_parameters),
            ("flows", self.flows),
            ("vehicle probabilities", self.vehicle_probabilities),
            ("source to sinks", self.source_to_sink),
        )
        for label, values in simple:
            missing = values.missing()
            if missing:
                raise IncompleteScenarioError(f"Not all {label} are defined, missing index {missing[0]}.")
        for vehicle_type, params in enumerate(self.specific_parameters):
            missing = params.missing()
            if missing:
                raise IncompleteScenarioError(
                    f"Not all specific parameters are defined for vehicle type {vehicle_type}, "
                    f"missing index {missing[0]}."
                )
        for source_index, sinks in enumerate(self.source_to_sink):
            missing = sinks.missing()
            if missing:
                raise IncompleteScenarioError(
                    f"Not all source to sinks are defined for source {source_index}, missing sink {missing[0]}."
                )
        for vehicle_type in range(len(self.vehicle_types)):
            if vehicle_type >= len(self.specific_parameters):
                raise IncompleteScenarioError(f"No parameters for vehicle type {vehicle_type}.")

        # index 0 is never used, the sign of a lane's reference needs a non-zero index
        missing = self.switched_areas.missing(start=1)
        if missing:
            raise IncompleteScenarioError(f"Not all switched area times are defined, missing index {missing[0]}.")

        section_count = len(self.section_ends)
        for lane_index, row in enumerate(self.lanes):
            if len(row) != section_count:
                raise IncompleteScenarioError(
                    f"Lane {lane_index} defines {len(row)} cells for {section_count} sections."
                )
            for section_index, cell in enumerate(row):
                if cell.is_switched and self.switched_areas.get(cell.switched_area_index) is None:
                    raise IncompleteScenarioError(
                        f"Lane {lane_index} in section {section_index} refers to undefined switched area "
                        f"{cell.switched_area_index}."
                    )

    def _check_cross_references(self) -> None:
        type_count = len(self.vehicle_types)
        for source_index, values in enumerate(self.vehicle_probabilities):
            if source_index >= len(self.sources):
                raise CrossReferenceMismatchError(
                    f"Source {source_index} as specified for vehicle probabilities does not exist."
                )
            if len(values) != type_count:
                raise CrossReferenceMismatchError(
                    f"Wrong number of vehicle probabilities for source {source_index}: "
                    f"{len(values)} values for {type_count} vehicle types."
                )
        for source_index, sinks in enumerate(self.source_to_sink):
            if source_index >= len(self.sources):
                raise CrossReferenceMismatchError(
                    f"Source {source_index} as specified for source to sink does not exist."
                )
            for sink_index, values in enumerate(sinks):
                if sink_index >= len(self.sinks):
                    raise CrossReferenceMismatchError(
                        f"Sink {sink_index} as specified for source to sink does not exist."
                    )
                if len(values) != type_count:
                    raise CrossReferenceMismatchError(
                        f"Wrong number of source to sink fractions for source {source_index}, sink {sink_index}."
                    )


def _sub_list(outer: IndexedList, index: int) -> IndexedList:
    inner = outer.get(index)
    if inner is None:
        inner = IndexedList()
        outer.set(index, inner)
    return inner


def parse_scenario(text: str, settings: Optional[ParserSettings] = None) -> ScenarioGrid:
    return ScenarioReader(settings).feed(text).finish()


def load_scenario(path, settings: Optional[ParserSettings] = None) -> ScenarioGrid:
    return parse_scenario(read_text_any(path), settings)
