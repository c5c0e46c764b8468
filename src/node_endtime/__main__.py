"""Print the time at which the last job currently running on each node is expected
to end, i.e. the earliest time at which the node is expected to be free.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Literal

import typed_argparse as tap

from node_endtime import __version__
from node_endtime.aggregate import aggregate
from node_endtime.common import ExitCode, NodeEndtimeError, setup_logging
from node_endtime.config import Config
from node_endtime.nodelist import expand_nodelist, fold_nodelist
from node_endtime.report import format_report, select_rows
from node_endtime.squeue import JobFilters, JobSource, SqueueSource

_LOGGER = logging.getLogger("node-endtime")

_debug = _LOGGER.debug
_error = _LOGGER.error


class Args(tap.TypedArgs):
    nodes: list[str] = tap.arg(
        positional=True,
        nargs="*",
        metavar="NODES",
        help="Node names, node ranges such as node[01-10], or absolute paths to files "
        "listing one node per line. Only these nodes are reported; overrides "
        "--nodelist",
    )

    ####################################################################################
    # Job filters

    account: str | None = tap.arg("-A", help="Only jobs for these accounts")
    jobs: str | None = tap.arg("-j", help="Only jobs with these job IDs")
    licenses: str | None = tap.arg("-L", help="Only jobs using these licenses")
    clusters: str | None = tap.arg("-M", help="Only jobs on these clusters")
    name: str | None = tap.arg("-n", help="Only jobs with these job names")
    partition: str | None = tap.arg("-p", help="Only jobs in these partitions")
    qos: str | None = tap.arg("-q", help="Only jobs with these QOS")
    reservation: str | None = tap.arg("-R", help="Only jobs in this reservation")
    user: str | None = tap.arg("-u", help="Only jobs for these users")
    nodelist: str | None = tap.arg(
        "-w",
        help="Only jobs running on these nodes, and only report these nodes",
    )

    ####################################################################################
    # Output

    time: bool = tap.arg("-t", help="Sort by end time instead of by node name")
    quiet: bool = tap.arg(help="Do not print the header line")
    verbose: bool = tap.arg("-v", help="Also print user, account, and other job info")
    version: bool = tap.arg("-V", help="Print version and exit")

    ####################################################################################
    # Configuration and logging

    config: Path | None = tap.arg(
        metavar="TOML",
        help="TOML file with default settings; defaults to the file named by the "
        "NODE_ENDTIME_CONFIG environment variable, if set",
    )
    squeue: str | None = tap.arg(
        metavar="EXE",
        help="Path to/name of squeue executable [default: squeue]",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = tap.arg(
        default="WARNING",
        help="Verbosity level for console logging",
    )


def build_report(args: Args, *, config: Config, source: JobSource) -> list[str]:
    # Nodes given as positional arguments take precedence over --nodelist
    specs = args.nodes
    if not specs and args.nodelist is not None:
        specs = [args.nodelist]

    # Invalid node lists must be reported before squeue is run
    nodes: list[str] = []
    for spec in specs:
        nodes.extend(expand_nodelist(spec))

    filters = JobFilters(
        account=args.account,
        jobs=args.jobs,
        licenses=args.licenses,
        clusters=args.clusters or config.clusters,
        name=args.name,
        partition=args.partition or config.partition,
        qos=args.qos,
        reservation=args.reservation,
        user=args.user,
        nodelist=fold_nodelist(nodes) if nodes else None,
    )

    records = source.fetch(filters)
    _debug("Collected %i running jobs", len(records))

    state = aggregate(records)
    rows = select_rows(state, nodes, by_end_time=args.time or config.sort_by_time)

    return format_report(
        rows,
        header=not args.quiet,
        verbose=args.verbose or config.verbose,
    )


def main(args: Args) -> None:
    setup_logging(log_level=args.log_level)

    if args.version:
        print("node-endtime", __version__)
        return

    config = Config.find(args.config)
    source = SqueueSource(args.squeue or config.squeue)

    # The report is only written once it is complete
    lines = build_report(args, config=config, source=source)
    if lines:
        print("\n".join(lines))


def main_w(argv: list[str] | None = None) -> None:
    parser = tap.Parser(Args, description=__doc__)

    try:
        parser.bind(main).run(sys.argv[1:] if argv is None else argv)
    except SystemExit as error:
        # argparse terminates with exit code 2 on invalid command-line arguments
        if error.code == 2:
            sys.exit(ExitCode.USAGE)
        raise
    except NodeEndtimeError as error:
        _error("%s", error)
        sys.exit(error.exit_code)
    except KeyboardInterrupt:
        _error("Interrupted; no report written")
        sys.exit(ExitCode.RUNTIME)


if __name__ == "__main__":
    main_w()
