"""Expansion and compression of Slurm style node lists.

A node list is a comma separated list of node names, where each name may contain
one or more bracketed groups of numbers and ranges, for example

    esrumcmpn[01-03,07],esrumgpun01

Zero padding follows the width of the first number in a range, so `n[08-10]` expands
to `n08`, `n09`, and `n10`. Absolute paths are read as files containing one node list
per line.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from node_endtime.common import UsageError

_LOGGER = logging.getLogger(__name__)

_debug = _LOGGER.debug

_RANGE = re.compile(r"^(\d+)(?:-(\d+))?$")
_NUMBERED_NAME = re.compile(r"^(.*?)(\d+)$")


class NodeListError(UsageError):
    """Raised for malformed node lists or unreadable node list files."""


def expand_nodelist(spec: str) -> list[str]:
    """Expand a node list, or a file of node lists, into individual node names.

    Args:
        spec: A node list such as `n[01-03],m7`, a single node name, or an absolute
            path to a file with one node list per line. Lines that are blank or start
            with `#` are ignored.

    Raises:
        NodeListError: If the node list is malformed or the file cannot be read.

    Returns:
        list[str]: Node names in the order given; duplicates are not removed.

    """
    spec = spec.strip()
    if spec.startswith("/"):
        return _expand_file(Path(spec))

    return _expand_expression(spec)


def fold_nodelist(specs: Iterable[str]) -> str:
    """Merge node names, node lists, and node list files into one compact node list.

    Duplicate nodes are removed and numbered nodes sharing a prefix are combined into
    bracketed ranges, so that `["n01", "n02", "n03", "n07"]` becomes `n[01-03,07]`.
    Expanding the result yields the same set of nodes as the input.

    Raises:
        NodeListError: If any of the node lists are malformed.
    """
    plain: set[str] = set()
    numbered: dict[tuple[str, int], set[int]] = {}
    for spec in specs:
        for name in expand_nodelist(spec):
            match = _NUMBERED_NAME.match(name)
            if match is None:
                plain.add(name)
                continue

            prefix, digits = match.groups()
            width = len(digits)
            numbered.setdefault((prefix, width), set()).add(int(digits))

    items: list[tuple[tuple[str, int], str]] = [((name, -1), name) for name in plain]
    for (prefix, width), numbers in numbered.items():
        ranges = list(_collapse(sorted(numbers), width))
        if len(ranges) == 1 and "-" not in ranges[0]:
            items.append(((prefix, width), f"{prefix}{ranges[0]}"))
        else:
            items.append(((prefix, width), "{}[{}]".format(prefix, ",".join(ranges))))

    return ",".join(text for _, text in sorted(items))


def _expand_file(filepath: Path) -> list[str]:
    _debug("Reading node list from %s", filepath)
    try:
        text = filepath.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise NodeListError(f"could not read node list {filepath}: {error}") from error

    names: list[str] = []
    for linenum, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if line and not line.startswith("#"):
            try:
                names.extend(_expand_expression(line))
            except NodeListError as error:
                raise NodeListError(f"{filepath}, line {linenum}: {error}") from error

    return names


def _expand_expression(spec: str) -> list[str]:
    if not spec:
        raise NodeListError("empty node list")

    names: list[str] = []
    for term in _split_terms(spec):
        names.extend(_expand_term(term))

    return names


def _split_terms(spec: str) -> Iterator[str]:
    """Split a node list on commas outside of brackets."""
    depth = 0
    start = 0
    for idx, char in enumerate(spec):
        if char == "[":
            depth += 1
            if depth > 1:
                raise NodeListError(f"nested brackets in node list {spec!r}")
        elif char == "]":
            depth -= 1
            if depth < 0:
                raise NodeListError(f"unbalanced ']' in node list {spec!r}")
        elif char == "," and not depth:
            yield _check_term(spec, spec[start:idx])
            start = idx + 1

    if depth:
        raise NodeListError(f"unbalanced '[' in node list {spec!r}")

    yield _check_term(spec, spec[start:])


def _check_term(spec: str, term: str) -> str:
    term = term.strip()
    if not term:
        raise NodeListError(f"empty node name in node list {spec!r}")
    elif term.startswith("["):
        raise NodeListError(f"node range without a name in node list {spec!r}")

    return term


def _expand_term(term: str) -> list[str]:
    parts: list[list[str]] = []

    start = 0
    while (begin := term.find("[", start)) != -1:
        end = term.index("]", begin)
        parts.append([term[start:begin]])
        parts.append(list(_expand_group(term, term[begin + 1 : end])))
        start = end + 1
    parts.append([term[start:]])

    return ["".join(values) for values in itertools.product(*parts)]


def _expand_group(term: str, group: str) -> Iterator[str]:
    for item in group.split(","):
        match = _RANGE.match(item.strip())
        if match is None:
            raise NodeListError(f"invalid range {item!r} in node name {term!r}")

        first, last = match.groups()
        if last is None:
            yield first
            continue

        start, end = int(first), int(last)
        if start > end:
            raise NodeListError(f"range {item!r} in node name {term!r} is reversed")

        width = len(first)
        for value in range(start, end + 1):
            yield str(value).zfill(width)


def _collapse(numbers: list[int], width: int) -> Iterator[str]:
    """Collapse sorted numbers into range strings, e.g. [1, 2, 3, 5] to 1-3 and 5."""
    for _, group in itertools.groupby(enumerate(numbers), lambda it: it[1] - it[0]):
        values = [value for _, value in group]
        if len(values) == 1:
            yield str(values[0]).zfill(width)
        else:
            yield f"{str(values[0]).zfill(width)}-{str(values[-1]).zfill(width)}"
