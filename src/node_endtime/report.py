from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from itertools import zip_longest

from node_endtime.aggregate import NodeState
from node_endtime.squeue import DETAIL_COLUMNS, JobRecord

HEADER = ("NODE", "JOBID", "END_TIME")
SEPARATOR = "  "


@dataclass(frozen=True)
class Row:
    node: str
    job: JobRecord

    def values(self, *, verbose: bool = False) -> tuple[str, ...]:
        values = (self.node, self.job.job_id, self.job.end_time_str)
        if verbose:
            return values + self.job.details

        return values


def select_rows(
    state: NodeState,
    nodes: Sequence[str] = (),
    *,
    by_end_time: bool = False,
) -> list[Row]:
    """Select the nodes to report, sorted by node name or by end time.

    If `nodes` is empty, every node in `state` is reported; otherwise only the listed
    nodes are reported. Nodes without running jobs are always left out.
    """
    selected = dict.fromkeys(nodes) if nodes else state
    rows = [Row(node=node, job=state[node]) for node in selected if node in state]
    rows.sort(key=lambda row: row.node)
    if by_end_time:
        # Sorting is stable, so nodes ending at the same time remain sorted by name
        rows.sort(key=lambda row: row.job.end_time_key)

    return rows


def format_report(
    rows: Sequence[Row],
    *,
    header: bool = True,
    verbose: bool = False,
) -> list[str]:
    table = [row.values(verbose=verbose) for row in rows]
    if header:
        table.insert(0, HEADER + DETAIL_COLUMNS if verbose else HEADER)

    widths = [
        max(len(value) for value in column)
        for column in zip_longest(*table, fillvalue="")
    ]

    lines: list[str] = []
    for values in table:
        cells = (value.ljust(width) for value, width in zip(values, widths))
        lines.append(SEPARATOR.join(cells).rstrip())

    return lines
