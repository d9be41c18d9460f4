"""Top-level exceptions shared across the bootstrap workflow."""


class BootstrapError(Exception):
    """Base exception for all bootstrap errors."""

    pass


class ConfigurationError(BootstrapError):
    """Invalid options, config files, host lists or key input.

    Raised before any network activity. The CLI maps it to exit code 2.
    """

    pass


class InputClosedError(ConfigurationError):
    """The interactive input stream ended while a value was required."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__("input closed")
