"""Exceptions raised while reading a scenario and building its network."""

from __future__ import annotations

from typing import Optional


class ScenarioError(ValueError):
    """Base class for every problem that aborts a network build."""


class MalformedLineError(ScenarioError):
    """A scenario line could not be interpreted."""

    def __init__(self, line: str, line_number: Optional[int] = None, reason: Optional[str] = None) -> None:
        self.line = line
        self.line_number = line_number
        self.reason = reason
        where = f"line {line_number}" if line_number is not None else "line"
        message = f"Unable to parse {where}: {line!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class IncompleteScenarioError(ScenarioError):
    """An indexed field was left undefined once ingestion finished."""


class CrossReferenceMismatchError(ScenarioError):
    """Demand tables disagree with the declared sources, sinks or vehicle types."""


class TopologyError(ScenarioError):
    """The link/node graph violates one of its invariants."""


class UnresolvedAttachmentError(TopologyError):
    """A source or sink cannot be mapped onto any link."""


class DanglingLinkError(TopologyError):
    """A link is missing its from-node or to-node after the topology build."""

    def __init__(self, link_number: int, section_index: int, from_lane: int, to_lane: int, missing: str) -> None:
        self.link_number = link_number
        self.section_index = section_index
        self.from_lane = from_lane
        self.to_lane = to_lane
        self.missing = missing
        super().__init__(
            f"Link {link_number} (section {section_index}, lanes {from_lane}-{to_lane}) has no {missing}"
        )


class IllegalShiftError(ScenarioError):
    """A lane shifts left by more than one lane position without a taper."""

    def __init__(self, link_number: int, lane_index: int, steps: float) -> None:
        self.link_number = link_number
        self.lane_index = lane_index
        self.steps = steps
        super().__init__(
            f"Non-adjacent merge on link {link_number}, lane {lane_index}: "
            f"shifts {steps:g} lane positions to the left"
        )
