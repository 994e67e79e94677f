from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fosnet.ingest.indexed import IndexedList
from fosnet.ingest.utils import field_index, field_indices, split_by_blank, split_lane_cells


def test_set_beyond_end_fills_placeholders():
    items = IndexedList()
    assert items.set(2, "c") is None
    assert len(items) == 3
    assert items.to_list() == [None, None, "c"]
    assert items.missing() == [0, 1]
    assert not items.is_defined()

    items.set(0, "a")
    items.set(1, "b")
    assert items.is_defined()
    assert list(items) == ["a", "b", "c"]


def test_set_returns_previous_value_and_get_is_safe():
    items = IndexedList()
    items.set(0, "a")
    assert items.set(0, "z") == "a"
    assert items.get(5) is None
    assert items.get(-1) is None
    with pytest.raises(IndexError):
        items.set(-1, "x")


def test_missing_can_ignore_leading_slots():
    items = IndexedList()
    items.set(2, "second")
    assert items.missing(start=1) == [1]
    items.set(1, "first")
    assert items.is_defined(start=1)


def test_field_helpers():
    assert field_index("lane 12: r,-, 0") == 12
    assert field_indices("vehicle specific param 3 1: 4.0 length") == (3, 1)
    assert split_by_blank("  1  0 2  Den Haag Centraal ", 4) == ["1", "0", "2", "Den Haag Centraal"]
    assert split_by_blank("   ") == []


def test_split_lane_cells_on_kind_letters():
    value = "r,-, 0, 0,1.0,100.0,0.000,0,3.50,0,0 L,<, 1, 0,1.0,100.0,0.000,0,3.50,0,0,-2"
    cells = split_lane_cells(value)
    assert cells == [
        "r,-, 0, 0,1.0,100.0,0.000,0,3.50,0,0",
        "L,<, 1, 0,1.0,100.0,0.000,0,3.50,0,0,-2",
    ]
