from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fosnet.topology.naming import node_name


@pytest.mark.parametrize(
    "number, expected",
    [(1, "A"), (2, "B"), (26, "Z"), (27, "AA"), (28, "AB"), (52, "AZ"), (53, "BA"), (702, "ZZ"), (703, "AAA")],
)
def test_bijective_letters(number, expected):
    assert node_name(number) == expected


def test_names_are_unique_over_a_range():
    names = [node_name(n) for n in range(1, 2000)]
    assert len(set(names)) == len(names)


def test_zero_is_not_a_node_number():
    with pytest.raises(ValueError):
        node_name(0)
