"""Configuration package for ssh-key-bootstrap.

This package provides the run options model, dataconf-based loading of
HOCON/JSON and ``.env`` configuration files, review of loaded values and
completion of missing inputs.
"""

from ssh_key_bootstrap.core.config.base import ConfigSourceType, LogLevel, OutputMode
from ssh_key_bootstrap.core.config.inputs import fill_missing_inputs, resolve_password
from ssh_key_bootstrap.core.config.loader import (
    load_config_source,
    load_dotenv_file,
    load_from_dict,
    load_from_file,
    load_from_string,
    load_hocon_file,
)
from ssh_key_bootstrap.core.config.options import BootstrapOptions, FileConfig, apply_file_config
from ssh_key_bootstrap.core.config.sources import ConfigSource, apply_config_sources, select_config_source

__all__ = [
    "BootstrapOptions",
    "ConfigSource",
    "ConfigSourceType",
    "FileConfig",
    "LogLevel",
    "OutputMode",
    "apply_config_sources",
    "apply_file_config",
    "fill_missing_inputs",
    "load_config_source",
    "load_dotenv_file",
    "load_from_dict",
    "load_from_file",
    "load_from_string",
    "load_hocon_file",
    "resolve_password",
    "select_config_source",
]
