from fosnet.scenario import LaneCell, Taper
from fosnet.settings import GeometrySettings

SOLID = "solid"
DASHED = "dashed"
LEFT_ONLY = "left"
RIGHT_ONLY = "right"

_TAPERS = (Taper.MERGE, Taper.DIVERGE)


def mark_type_between(left: LaneCell, right: LaneCell, striped_areas: bool) -> str:
    """Marking on the border between two adjacent lanes of a link.

    ``left_only`` marks may only be crossed towards the left, ``right_only``
    marks towards the right. Tapers take precedence over shoulders, which take
    precedence over lane-change permissions.
    """
    if right.taper is Taper.MERGE:
        return LEFT_ONLY
    if right.taper is Taper.DIVERGE or left.taper in _TAPERS:
        return RIGHT_ONLY
    if left.is_shoulder(striped_areas) or right.is_shoulder(striped_areas):
        return SOLID
    if right.can_change_left(striped_areas) and left.can_change_right(striped_areas):
        return DASHED
    if right.can_change_left(striped_areas):
        return LEFT_ONLY
    return RIGHT_ONLY


def mark_width(mark_type: str, geometry: GeometrySettings) -> float:
    if mark_type in (SOLID, DASHED):
        return geometry.narrow_stripe_width
    return geometry.wide_stripe_width
