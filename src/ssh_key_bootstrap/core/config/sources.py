"""Selection and application of the configuration file for a run."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from ssh_key_bootstrap.core.config.base import ConfigSourceType
from ssh_key_bootstrap.core.config.loader import load_config_source
from ssh_key_bootstrap.core.config.options import BootstrapOptions, apply_file_config
from ssh_key_bootstrap.core.config.review import review_loaded_fields
from ssh_key_bootstrap.core.console import Console, confirm
from ssh_key_bootstrap.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DOTENV_FILENAME = ".env"


@dataclass(frozen=True)
class ConfigSource:
    """A configuration file chosen for this run."""

    source_type: ConfigSourceType
    path: str


def executable_dir() -> Path:
    """Return the directory holding the running entry point."""
    return Path(sys.argv[0]).resolve().parent


def discover_dotenv(search_dir: Path) -> Path | None:
    """Return ``search_dir/.env`` if it is a regular file."""
    candidate = search_dir / DOTENV_FILENAME
    return candidate if candidate.is_file() else None


def select_config_source(
    options: BootstrapOptions,
    console: Console,
    search_dir: Path | None = None,
) -> ConfigSource | None:
    """Pick the config file to load, if any.

    An explicit ``--env-file`` or ``--config-file`` wins. Otherwise, in an
    interactive session only, a ``.env`` next to the executable is offered
    to the operator.

    Raises:
        ConfigurationError: If both explicit sources are given.
    """
    env_file = options.env_file.strip()
    config_file = options.config_file.strip()
    if env_file and config_file:
        raise ConfigurationError("use either --env-file or --config-file, not both")
    if env_file:
        return ConfigSource(ConfigSourceType.DOTENV, env_file)
    if config_file:
        return ConfigSource(ConfigSourceType.HOCON, config_file)

    if not console.is_interactive():
        return None
    discovered = discover_dotenv(search_dir if search_dir is not None else executable_dir())
    if discovered is None:
        return None
    label = f'Found .env next to the binary at "{discovered}". Use it? [y/n]: '
    if not confirm(console, label, yes=("y", "yes"), no=("n", "no")):
        return None
    return ConfigSource(ConfigSourceType.DOTENV, str(discovered))


def apply_config_sources(
    options: BootstrapOptions,
    console: Console,
    explicit: set[str] | frozenset[str] = frozenset(),
    search_dir: Path | None = None,
) -> list[str]:
    """Load the selected config file into *options*.

    Command-line values named in *explicit* win over the file. Loaded
    values are shown for review in interactive sessions.

    Returns:
        Names of the option fields loaded from the file.
    """
    source = select_config_source(options, console, search_dir)
    if source is None:
        return []

    logger.info("Loading %s configuration from %s", source.source_type.value, source.path)
    file_config = load_config_source(source.source_type, source.path)
    loaded = apply_file_config(options, file_config, explicit)
    if console.is_interactive():
        review_loaded_fields(options, loaded, console)
    return loaded
