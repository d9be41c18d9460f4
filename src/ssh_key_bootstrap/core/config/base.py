"""Base types and enums for configuration models."""

from enum import Enum


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class OutputMode(str, Enum):
    """How per-host outcomes are reported on stdout."""

    PLAIN = "plain"
    RECAP = "recap"


class ConfigSourceType(str, Enum):
    """Kinds of configuration file."""

    DOTENV = "dotenv"
    HOCON = "hocon"
