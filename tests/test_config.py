from __future__ import annotations

from pathlib import Path

import pytest

from node_endtime.common import ExitCode
from node_endtime.config import CONFIG_ENV, Config, ConfigError


def write_config(tmp_path: Path, text: str) -> Path:
    filepath = tmp_path / "config.toml"
    filepath.write_text(text)
    return filepath


########################################################################################


def test_config__defaults() -> None:
    assert Config.find(None) == Config(
        squeue="squeue",
        partition=None,
        clusters=None,
        verbose=False,
        sort_by_time=False,
    )


def test_config__load(tmp_path: Path) -> None:
    filepath = write_config(
        tmp_path,
        'squeue = "/opt/slurm/bin/squeue"\n'
        'partition = "gpuqueue"\n'
        "verbose = true\n",
    )

    assert Config.find(filepath) == Config(
        squeue="/opt/slurm/bin/squeue",
        partition="gpuqueue",
        verbose=True,
    )


def test_config__from_environment(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    filepath = write_config(tmp_path, "sort_by_time = true\n")
    monkeypatch.setenv(CONFIG_ENV, str(filepath))

    assert Config.find(None) == Config(sort_by_time=True)


def test_config__explicit_file_overrides_environment(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "missing.toml"))
    filepath = write_config(tmp_path, 'clusters = "esrum"\n')

    assert Config.find(filepath) == Config(clusters="esrum")


def test_config__missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="could not read config"):
        Config.load(tmp_path / "missing.toml")


def test_config__invalid_toml(tmp_path: Path) -> None:
    filepath = write_config(tmp_path, "squeue = \n")

    with pytest.raises(ConfigError, match="error parsing TOML file"):
        Config.load(filepath)


@pytest.mark.parametrize(
    "text",
    [
        'unknown_key = "value"\n',
        'verbose = "yes"\n',
        "squeue = 17\n",
    ],
)
def test_config__invalid_values(tmp_path: Path, text: str) -> None:
    filepath = write_config(tmp_path, text)

    with pytest.raises(ConfigError, match="invalid config"):
        Config.load(filepath)


def test_config__error_is_usage_error() -> None:
    assert ConfigError("test").exit_code == ExitCode.USAGE
