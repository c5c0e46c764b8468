from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import tomli
from koda_validate import DataclassValidator, Valid

from node_endtime.common import UsageError

# Environment variable naming the default configuration file
CONFIG_ENV = "NODE_ENDTIME_CONFIG"

_LOGGER = logging.getLogger(__name__)


class ConfigError(UsageError):
    """Raised if the configuration file is missing or invalid."""


@dataclass
class Config:
    # Path to/name of the squeue executable
    squeue: str = "squeue"
    # Default partition(s) and cluster(s) for which jobs are listed
    partition: str | None = None
    clusters: str | None = None
    # Defaults for the --verbose and --time options
    verbose: bool = False
    sort_by_time: bool = False

    @staticmethod
    def load(filepath: Path) -> Config:
        _LOGGER.info("Loading TOML config from %r", str(filepath))
        try:
            with filepath.open("rb") as handle:
                toml: object = tomli.load(handle)
        except OSError as error:
            raise ConfigError(f"could not read config {filepath}: {error}") from error
        except tomli.TOMLDecodeError as error:
            raise ConfigError(f"error parsing TOML file {filepath}: {error}") from error

        validator = DataclassValidator(Config, fail_on_unknown_keys=True)
        result = validator(toml)
        if not isinstance(result, Valid):
            raise ConfigError(f"invalid config {filepath}: {result.err_type}")

        return result.val

    @classmethod
    def find(cls, filepath: Path | None) -> Config:
        """Loads the given config file, the file named in $NODE_ENDTIME_CONFIG, or
        returns the default configuration if neither is set.
        """
        if filepath is None and (value := os.environ.get(CONFIG_ENV)):
            filepath = Path(value).expanduser()

        if filepath is None:
            return cls()

        return cls.load(filepath)
