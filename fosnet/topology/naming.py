import string

_LETTERS = string.ascii_uppercase


def node_name(number: int) -> str:
    """Spreadsheet-style label for a node counter value (1 -> A, 27 -> AA)."""

    if number < 1:
        raise ValueError(f"node numbers start at 1, got {number}")
    chars = []
    n = number
    while n > 0:
        n, rem = divmod(n - 1, 26)
        chars.append(_LETTERS[rem])
    return "".join(reversed(chars))
