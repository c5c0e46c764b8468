from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from node_endtime.config import CONFIG_ENV

FakeSqueue = Callable[..., Path]


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV, raising=False)


@pytest.fixture
def fake_squeue(tmp_path: Path) -> FakeSqueue:
    """Creates a fake `squeue` that prints canned output and records its arguments.

    The arguments are written to `args.txt`, one per line, in the temporary folder.
    """

    def _create(stdout: str = "", *, returncode: int = 0, stderr: str = "") -> Path:
        (tmp_path / "stdout.txt").write_text(stdout)
        (tmp_path / "stderr.txt").write_text(stderr)

        executable = tmp_path / "squeue"
        executable.write_text(
            "#!/bin/sh\n"
            f"printf '%s\\n' \"$@\" > '{tmp_path}/args.txt'\n"
            f"cat '{tmp_path}/stdout.txt'\n"
            f"cat '{tmp_path}/stderr.txt' >&2\n"
            f"exit {returncode}\n"
        )
        executable.chmod(0o755)

        return executable

    return _create


def squeue_args(executable: Path) -> list[str]:
    return (executable.parent / "args.txt").read_text().splitlines()
