"""
Court label helpers.

Labels are free text ("1", "Court 10", "Stadium"); ordering is natural so that
"Court 2" sorts before "Court 10".
"""
import re
from typing import List, Sequence, Tuple, Union

_CHUNK = re.compile(r"(\d+)")


def court_label_sort_key(label: str) -> Tuple:
    """Natural sort key: digit runs compare numerically, the rest case-insensitively."""
    parts: List[Union[Tuple[int, int], Tuple[int, str]]] = []
    for chunk in _CHUNK.split((label or "").strip()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk.lower()))
    return tuple(parts)


def court_group_name(labels: Sequence[str]) -> str:
    """'Court 3' for a single court, 'Courts 1-4' for a run."""
    if not labels:
        return "Courts"
    if len(labels) == 1:
        return f"Court {labels[0]}"
    return f"Courts {labels[0]}-{labels[-1]}"


def court_group_code(index: int) -> str:
    """0 -> 'A', 25 -> 'Z', 26 -> 'AA'."""
    code = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        code = chr(ord("A") + rem) + code
    return code
