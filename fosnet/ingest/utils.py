import re
from typing import Iterator, List, Sequence, Tuple

_CELL_START = re.compile(r"\s+(?=[A-Za-z],)")


def read_text_any(path, encodings: Sequence[str] = ("utf-8", "cp1252", "latin-1")) -> str:
    """Try the encodings in turn; scenario files are written by several tool versions."""
    last_err = None
    for enc in encodings:
        try:
            with open(path, encoding=enc, newline="") as fh:
                return fh.read()
        except UnicodeDecodeError as e:
            last_err = e
            continue
    if last_err:
        raise last_err
    raise RuntimeError(f"Unable to read scenario file: {path}")


def iter_lines(text: str) -> Iterator[Tuple[int, str]]:
    for number, line in enumerate(text.splitlines(), start=1):
        yield number, line.rstrip("\r\n")


def field_value(line: str) -> str:
    return line[line.index(":") + 1:].strip()


def field_key(line: str) -> str:
    return line[: line.index(":")].strip()


def field_index(line: str) -> int:
    """Index after the keyword, e.g. ``3`` for ``lane 3: ...``."""
    key = field_key(line)
    return int(key[key.rindex(" ") + 1:])


def field_indices(line: str) -> Tuple[int, int]:
    """Both indices of ``keyword <i> <j>: ...`` as ``(i, j)``."""
    key = field_key(line)
    head, _, second = key.rpartition(" ")
    head = head.strip()
    first = head[head.rindex(" ") + 1:]
    return int(first), int(second)


def split_by_blank(value: str, num_fields: int = 0) -> List[str]:
    """Split on runs of blanks; with ``num_fields`` the last field keeps the remainder."""
    value = value.strip()
    if not value:
        return []
    if num_fields <= 0:
        return value.split()
    return value.split(None, num_fields - 1)


def split_and_trim(value: str, delimiter: str) -> List[str]:
    return [part.strip() for part in value.split(delimiter)]


def split_lane_cells(value: str) -> List[str]:
    """Split a lane row into cell strings.

    Cells contain blanks after their commas (``r,-, 0, 0,1.0,...``), so a new
    cell is recognised by a token that starts with a lane type letter.
    """
    value = value.strip()
    if not value:
        return []
    return [cell.strip() for cell in _CELL_START.split(value)]
