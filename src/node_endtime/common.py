from __future__ import annotations

import enum
import logging
import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

import coloredlogs


class ExitCode(enum.IntEnum):
    OK = 0
    USAGE = 1
    RUNTIME = 2


class NodeEndtimeError(RuntimeError):
    """Errors that terminate a run of node-endtime."""

    exit_code: ExitCode = ExitCode.RUNTIME


class UsageError(NodeEndtimeError):
    """Errors caused by invalid user input."""

    exit_code: ExitCode = ExitCode.USAGE


def quote(*values: object) -> str:
    return " ".join(shlex.quote(str(value)) for value in values)


def setup_logging(
    *,
    log_level: Literal["ERROR", "WARNING", "INFO", "DEBUG"],
) -> None:
    coloredlogs.install(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        level=log_level,
        milliseconds=True,
    )


class CommandOutput:
    def __init__(
        self,
        *,
        command: tuple[str | Path, ...],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def error_message(self) -> str:
        """Returns the first non-empty line written to stderr, if any."""
        for line in self.stderr.splitlines():
            if line := line.strip():
                return line

        return f"terminated with returncode {self.returncode}"

    def log_stderr(self, log: logging.Logger, *, level: int = logging.ERROR) -> None:
        executable = quote(self.command[0])
        log.log(level, "%s terminated with returncode %i", executable, self.returncode)

        if stderr := self.stderr.rstrip():
            for line in stderr.splitlines():
                if line := line.rstrip():
                    log.log(level, "%s: %s", executable, line)

    def __bool__(self) -> bool:
        return self.returncode == 0


def run_subprocess(
    log: logging.Logger,
    command: Sequence[str] | Sequence[str | Path],
) -> CommandOutput:
    log.debug("Running command %s", quote(*command))
    if not command:
        raise ValueError(command)

    with subprocess.Popen(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        encoding="utf-8",
        shell=False,
    ) as proc:
        stdout, stderr = proc.communicate()

    return CommandOutput(
        command=tuple(command),
        returncode=proc.returncode,
        stdout=stdout,
        stderr=stderr,
    )
