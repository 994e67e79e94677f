import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional


def _round(value: float, precision: int = 6) -> float:
    rounded = round(float(value), precision)
    return 0.0 if rounded == 0 else rounded


def _rounded(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (_round(v) if isinstance(v, float) else v) for k, v in data.items()}


def network_to_dict(network: Any) -> Dict[str, Any]:
    """Plain, JSON-serialisable view of a built network."""

    grid = network.grid
    geometry = network.geometry

    nodes: List[Dict[str, Any]] = []
    for node in network.topology.nodes:
        position = geometry.node_positions[node.name]
        nodes.append(
            {
                "name": node.name,
                "number": node.number,
                "x": _round(position.x),
                "y": _round(position.y),
                "in_links": [link.number for link in node.in_links],
                "out_links": [link.number for link in node.out_links],
                "source": node.source.name if node.source is not None else None,
                "sink": node.sink.name if node.sink is not None else None,
            }
        )

    links: List[Dict[str, Any]] = []
    for number, link in network.topology.links.items():
        link_geometry = geometry.links[number]
        links.append(
            {
                "number": number,
                "section": link.section_index,
                "from_lane": link.from_lane,
                "to_lane": link.to_lane,
                "from_node": link_geometry.start_node,
                "to_node": link_geometry.end_node,
                "length": _round(link_geometry.length),
                "lanes": [_rounded(asdict(lane)) for lane in link_geometry.lanes],
                "marks": [_rounded(asdict(mark)) for mark in link_geometry.marks],
            }
        )

    vehicle_types = [
        {"index": index, "name": vehicle_type.name, "truck": grid.is_truck(index)}
        for index, vehicle_type in enumerate(grid.vehicle_types)
    ]

    return {
        "version": grid.version,
        "sections": [_rounded(asdict(section)) for section in grid.sections],
        "vehicle_types": vehicle_types,
        "nodes": nodes,
        "links": links,
        "detectors": [_rounded(asdict(d)) for d in network.detectors],
        "traffic_lights": [_rounded(asdict(t)) for t in network.traffic_lights],
    }


def write_network_json(network: Any, out_path: str, indent: Optional[int] = 2) -> str:
    os.makedirs(Path(out_path).parent, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fh:
        json.dump(network_to_dict(network), fh, ensure_ascii=False, indent=indent)
        fh.write("\n")
    return out_path
