from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from node_endtime.common import NodeEndtimeError, run_subprocess

# Columns requested from squeue; only the first three are interpreted
FIELDS = (
    ("END_TIME", "%e"),
    ("JOBID", "%i"),
    ("NODELIST", "%N"),
    ("USER", "%u"),
    ("ACCOUNT", "%a"),
    ("NAME", "%j"),
    ("NODES", "%D"),
    ("CPUS", "%C"),
    ("TIME_LIMIT", "%l"),
    ("STATE", "%T"),
    ("TIME", "%M"),
)

DETAIL_COLUMNS = tuple(name for name, _ in FIELDS[3:])

SEPARATOR = "|"
TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Values used by Slurm for jobs without a known end time
_UNKNOWN_TIMES = {"n/a", "none", "unknown", "unlimited"}

# Job names may contain the separator, unlike the other detail columns
_NAME_COLUMN = DETAIL_COLUMNS.index("NAME")

_LOGGER = logging.getLogger(__name__)

_warning = _LOGGER.warning


class SqueueError(NodeEndtimeError):
    """Raised if the list of running jobs could not be retrieved."""


@dataclass(frozen=True)
class JobFilters:
    account: str | None = None
    jobs: str | None = None
    licenses: str | None = None
    clusters: str | None = None
    name: str | None = None
    partition: str | None = None
    qos: str | None = None
    reservation: str | None = None
    user: str | None = None
    nodelist: str | None = None

    def to_args(self) -> list[str]:
        args: list[str] = []
        for field in dataclasses.fields(self):
            value: str | None = getattr(self, field.name)
            if value is not None:
                args.append(f"--{field.name}={value}")

        return args


@dataclass(frozen=True)
class JobRecord:
    end_time: datetime | None
    job_id: str
    node_spec: str
    details: tuple[str, ...] = ()

    @property
    def end_time_key(self) -> tuple[bool, datetime]:
        """Sort key placing jobs without a known end time after all other jobs."""
        return (self.end_time is None, self.end_time or datetime.min)

    @property
    def end_time_str(self) -> str:
        if self.end_time is None:
            return "Unknown"

        return self.end_time.strftime(TIME_FORMAT)


class JobSource(Protocol):
    def fetch(self, filters: JobFilters) -> list[JobRecord]: ...


class SqueueSource:
    __slots__ = ["_executable", "_log"]

    def __init__(self, executable: str = "squeue") -> None:
        self._executable = executable
        self._log = logging.getLogger("squeue")

    def command(self, filters: JobFilters) -> list[str]:
        return [
            self._executable,
            "--noheader",
            "--states=RUNNING",
            "--format={}".format(SEPARATOR.join(code for _, code in FIELDS)),
            *filters.to_args(),
        ]

    def fetch(self, filters: JobFilters) -> list[JobRecord]:
        try:
            proc = run_subprocess(self._log, self.command(filters))
        except OSError as error:
            raise SqueueError(f"could not run {self._executable}: {error}") from error

        if not proc:
            proc.log_stderr(self._log, level=logging.DEBUG)
            raise SqueueError(f"{self._executable} failed: {proc.error_message}")

        return list(parse_squeue_output(proc.stdout))


def parse_time(value: str) -> datetime | None:
    if value.lower() in _UNKNOWN_TIMES:
        return None

    return datetime.strptime(value, TIME_FORMAT)  # noqa: DTZ007


def parse_squeue_output(text: str) -> Iterator[JobRecord]:
    """Parse lines written by squeue using the `FIELDS` format.

    Malformed lines are logged and skipped, as are the `CLUSTER: name` lines that
    squeue prints when jobs are listed for one or more clusters.
    """
    for linenum, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("CLUSTER:"):
            continue

        fields = line.split(SEPARATOR, 3)
        if len(fields) < 3 or not all(fields[:3]):
            _warning("Skipping malformed squeue line %i: %r", linenum, line)
            continue

        end_time, job_id, node_spec, *details = fields
        try:
            parsed_end_time = parse_time(end_time)
        except ValueError:
            _warning("Skipping job %s with invalid end time %r", job_id, end_time)
            continue

        yield JobRecord(
            end_time=parsed_end_time,
            job_id=job_id,
            node_spec=node_spec,
            details=_split_details(details[0]) if details else (),
        )


def _split_details(text: str) -> tuple[str, ...]:
    head = text.split(SEPARATOR, _NAME_COLUMN)
    tail = head.pop().rsplit(SEPARATOR, len(DETAIL_COLUMNS) - _NAME_COLUMN - 1)

    return (*head, *tail)
