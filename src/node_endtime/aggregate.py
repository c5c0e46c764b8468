from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import TypeAlias

from node_endtime.nodelist import NodeListError, expand_nodelist
from node_endtime.squeue import JobRecord

# Node name to the job with the latest end time on that node
NodeState: TypeAlias = Mapping[str, JobRecord]

_LOGGER = logging.getLogger(__name__)

_debug = _LOGGER.debug
_warning = _LOGGER.warning


def record_order(record: JobRecord) -> tuple[bool, datetime, tuple[str | int, ...]]:
    """Sort key placing records with later end times last.

    Jobs without a known end time are placed after all other jobs, and jobs ending at
    the same time are ordered by job ID, so that the result does not depend on the
    order in which jobs are listed.
    """
    return (*record.end_time_key, _job_id_key(record.job_id))


def aggregate(
    records: Iterable[JobRecord],
    *,
    expand: Callable[[str], list[str]] = expand_nodelist,
) -> NodeState:
    """Find the job with the latest end time on each node.

    Records whose node list cannot be expanded are logged and skipped.
    """
    state: dict[str, JobRecord] = {}
    for record in records:
        try:
            nodes = expand(record.node_spec)
        except NodeListError as error:
            _warning("Skipping job %s: %s", record.job_id, error)
            continue

        for node in nodes:
            current = state.get(node)
            if current is None or record_order(record) > record_order(current):
                state[node] = record

    _debug("Found running jobs on %i nodes", len(state))

    return MappingProxyType(state)


def _job_id_key(job_id: str) -> tuple[str | int, ...]:
    # Numbers are compared numerically, so job 999 orders before job 1000
    return tuple(int(it) if it.isdecimal() else it for it in re.split(r"(\d+)", job_id))
