import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

if __package__ is None or __package__ == "":
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))

from fosnet.ingest.loader import load_scenario
from fosnet.lane_geometry import Geometry, synthesize_geometry
from fosnet.placement import (
    DetectorPlacement,
    TrafficLightPlacement,
    detector_schedule,
    place_detectors,
    place_traffic_lights,
)
from fosnet.scenario import ScenarioGrid
from fosnet.settings import BuildSettings, load_config
from fosnet.topology.core import Topology, build_topology
from fosnet.writer.json_writer import write_network_json


@dataclass
class Network:
    """Links, nodes and lateral geometry derived from one scenario."""

    grid: ScenarioGrid
    topology: Topology
    geometry: Geometry
    detectors: List[DetectorPlacement]
    traffic_lights: List[TrafficLightPlacement]

    @property
    def links(self):
        return list(self.topology.links.values())

    @property
    def nodes(self):
        return self.topology.nodes_by_name

    def node(self, name: str):
        return self.topology.node(name)


def build_network(
    grid: ScenarioGrid,
    settings: Optional[BuildSettings] = None,
    log_fn: Optional[Callable[[str], None]] = print,
) -> Network:
    """Run segmentation, topology and geometry on a validated scenario grid."""

    settings = settings or BuildSettings()
    striped_areas = settings.parser.striped_areas

    topology = build_topology(grid, striped_areas=striped_areas)
    if log_fn is not None:
        log_fn(f"[topology] {len(topology.links)} links, {len(topology.nodes)} nodes")

    geometry = synthesize_geometry(topology, grid, settings.geometry, striped_areas=striped_areas)
    if log_fn is not None:
        lanes = sum(len(link.lanes) for link in geometry.links.values())
        log_fn(f"[geometry] {lanes} lanes on {len(geometry.links)} links")

    detectors: List[DetectorPlacement] = []
    if settings.parser.detectors:
        detectors = place_detectors(grid, topology)
    traffic_lights: List[TrafficLightPlacement] = []
    if settings.parser.traffic_lights:
        traffic_lights = place_traffic_lights(grid, topology, log_fn=log_fn)
    if log_fn is not None and (detectors or traffic_lights):
        log_fn(f"[placement] {len(detectors)} detectors, {len(traffic_lights)} traffic lights")

    return Network(
        grid=grid,
        topology=topology,
        geometry=geometry,
        detectors=detectors,
        traffic_lights=traffic_lights,
    )


def convert_scenario(
    input_path: str,
    output_path: str,
    config_path: Optional[str] = None,
    log_fn: Optional[Callable[[str], None]] = print,
    striped_areas: Optional[bool] = None,
) -> dict:
    """Convert a scenario file into a JSON network description.

    Parameters
    ----------
    input_path:
        Scenario file to read.
    output_path:
        Target path for the generated ``.json`` network.
    config_path:
        YAML configuration; the bundled ``config.yaml`` when omitted.
    striped_areas:
        Overrides ``settings.striped_areas`` from the configuration when given.

    Returns
    -------
    dict
        Statistics about the conversion, also written to ``report.json`` next to
        ``output_path``.
    """
    settings = load_config(config_path)
    if striped_areas is not None:
        settings = settings.with_striped_areas(striped_areas)
    grid = load_scenario(input_path, settings.parser)
    if log_fn is not None:
        log_fn(f"[ingest] {grid.section_count} sections, {grid.lane_count} lanes")
    network = build_network(grid, settings, log_fn=log_fn)

    output_path = Path(output_path)
    output_file_path = Path(write_network_json(network, str(output_path), indent=settings.output_indent))
    try:
        file_size = output_file_path.stat().st_size
    except FileNotFoundError:
        file_size = 0

    schedule = detector_schedule(grid)
    stats = {
        "input_counts": {
            "sections": grid.section_count,
            "lanes": grid.lane_count,
            "sources": len(grid.sources),
            "sinks": len(grid.sinks),
            "traffic_lights": len(grid.traffic_lights),
            "detector_positions": len(grid.detector_positions),
            "vehicle_types": len(grid.vehicle_types),
        },
        "output_counts": {
            "links": len(network.topology.links),
            "nodes": len(network.topology.nodes),
            "lanes_total": sum(len(link.lanes) for link in network.geometry.links.values()),
            "detectors": len(network.detectors),
            "traffic_lights": len(network.traffic_lights),
        },
        "road_length_m": grid.sections[-1].end if grid.sections else 0.0,
        "detector_schedule_s": list(schedule) if schedule is not None else None,
        "json_file": {
            "path": str(output_file_path.resolve()),
            "size_bytes": file_size,
        },
    }
    log_path = output_path.parent / "report.json"
    with open(log_path, "w", encoding="utf-8") as f:
        json.dump(stats, f, ensure_ascii=False, indent=2)

    return stats


def main(argv=None):
    ap = argparse.ArgumentParser(description="Build a link/node network from a freeway scenario file")
    ap.add_argument("--input", required=True, help="scenario file")
    ap.add_argument("--output", required=True, help="path to output .json")
    ap.add_argument("--config", default=None, help="YAML configuration (defaults to the bundled config.yaml)")
    ap.add_argument(
        "--striped-areas",
        action="store_true",
        default=None,
        help="treat striped areas as traversable lanes (overrides the configuration)",
    )
    args = ap.parse_args(argv)

    stats = convert_scenario(args.input, args.output, args.config, striped_areas=args.striped_areas)
    print(json.dumps(stats, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
