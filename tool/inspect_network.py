#!/usr/bin/env python3
"""Print how a scenario's lane x section grid maps onto links and nodes.

Each row is a lane, each column a section. A cell shows the link number the
lane belongs to and the name of that link's to-node (or from-node), so merges
and diverges can be checked without reading the JSON output.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fosnet.ingest.loader import load_scenario  # noqa: E402
from fosnet.settings import ParserSettings  # noqa: E402
from fosnet.topology.core import Topology, build_topology  # noqa: E402


def mapping_table(topology: Topology, end: str = "to") -> List[str]:
    """One text row per lane; ``--`` marks lanes without a link."""

    rows = []
    for lane_row in topology.link_map:
        cells = []
        for number in lane_row:
            if number is None:
                cells.append(f"{'--':>3} {'':3.3}")
                continue
            link = topology.links[number]
            node = link.to_node if end == "to" else link.from_node
            name = node.name if node is not None else ""
            cells.append(f"{number:3d} {name:3.3}")
        rows.append("    " + " ".join(cells).rstrip())
    return rows


def analyse(path: Path, striped_areas: bool = False) -> None:
    grid = load_scenario(path, ParserSettings(striped_areas=striped_areas))
    topology = build_topology(grid, striped_areas=striped_areas)

    print(f"File: {path}")
    print(f"  sections={grid.section_count} lanes={grid.lane_count} links={len(topology.links)}")
    print("To-nodes:")
    for row in mapping_table(topology, "to"):
        print(row)
    print("From-nodes:")
    for row in mapping_table(topology, "from"):
        print(row)


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Print the lane x section link/node mapping of scenario files",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="scenario files to inspect")
    parser.add_argument("--striped-areas", action="store_true", help="treat striped areas as lanes")
    args = parser.parse_args(list(argv) if argv is not None else None)

    for path in args.paths:
        analyse(path, striped_areas=args.striped_areas)


if __name__ == "__main__":  # pragma: no cover - command line helper
    main()
