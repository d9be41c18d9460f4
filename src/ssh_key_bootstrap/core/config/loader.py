"""Configuration file loading using dataconf.

HOCON (and therefore JSON) files are parsed by dataconf straight into
:class:`~ssh_key_bootstrap.core.config.options.FileConfig`. ``.env`` files
are parsed by :mod:`ssh_key_bootstrap.core.config.dotenv` and the typed
result handed to dataconf, so both sources are validated by the same
model.
"""

from pathlib import Path
from typing import Any, TypeVar, cast

import dataconf

from ssh_key_bootstrap.core.config.base import ConfigSourceType
from ssh_key_bootstrap.core.config.dotenv import DotEnvError, dotenv_to_config_dict, parse_dotenv
from ssh_key_bootstrap.core.config.options import FileConfig
from ssh_key_bootstrap.core.exceptions import ConfigurationError
from ssh_key_bootstrap.core.utils import expand_home_path

T = TypeVar("T")


def load_from_file(path: str, config_class: type[T]) -> T:
    """Load configuration from a HOCON or JSON file.

    Args:
        path: Path to the configuration file
        config_class: The configuration dataclass type to load into

    Returns:
        Instance of config_class populated with configuration from the file

    Example:
        >>> config = load_from_file("bootstrap.conf", FileConfig)
    """
    return cast(T, dataconf.file(path, config_class))


def load_from_string(hocon_str: str, config_class: type[T]) -> T:
    """Load configuration from a HOCON string.

    Example:
        >>> config = load_from_string('servers: "web1,web2"', FileConfig)
    """
    return cast(T, dataconf.string(hocon_str, config_class))


def load_from_dict(values: dict[str, Any], config_class: type[T]) -> T:
    """Load configuration from an already-typed mapping."""
    return cast(T, dataconf.dict(values, config_class))


def load_dotenv_file(path: str) -> FileConfig:
    """Load a ``.env`` file into a :class:`FileConfig`.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"read .env file: {exc}") from exc
    try:
        values = dotenv_to_config_dict(parse_dotenv(content))
    except DotEnvError as exc:
        raise ConfigurationError(f"parse .env file: {exc}") from exc
    try:
        return load_from_dict(values, FileConfig)
    except Exception as exc:
        raise ConfigurationError(f"parse .env file: {exc}") from exc


def load_hocon_file(path: str) -> FileConfig:
    """Load a HOCON or JSON config file into a :class:`FileConfig`.

    Raises:
        ConfigurationError: If the file is missing, malformed or holds
            unknown keys or wrongly typed values.
    """
    if not Path(path).is_file():
        raise ConfigurationError(f"read config file: {path} does not exist")
    try:
        return load_from_file(path, FileConfig)
    except Exception as exc:
        raise ConfigurationError(f"parse config file {path}: {exc}") from exc


def load_config_source(source_type: ConfigSourceType, path: str) -> FileConfig:
    """Load the config file at *path* (``~`` expanded) as *source_type*."""
    expanded = expand_home_path(path)
    if source_type == ConfigSourceType.DOTENV:
        return load_dotenv_file(expanded)
    return load_hocon_file(expanded)
