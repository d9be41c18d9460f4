"""Run options and the file-backed configuration model."""

from dataclasses import dataclass, fields

from ssh_key_bootstrap.core.config.base import OutputMode
from ssh_key_bootstrap.core.exceptions import ConfigurationError

DEFAULT_PORT = 22
DEFAULT_TIMEOUT = 10
DEFAULT_KNOWN_HOSTS = "~/.ssh/known_hosts"


@dataclass
class FileConfig:
    """Values read from a configuration file.

    Every field is optional; only fields present in the file are applied.
    HOCON and JSON files use these names directly, ``.env`` files use the
    upper-case forms (``SERVER``, ``PUBKEY_FILE``, ...).
    """

    server: str | None = None
    """Single host entry"""

    servers: str | None = None
    """Comma-separated host entries"""

    servers_file: str | None = None
    """File with one host entry per line"""

    user: str | None = None
    """Remote account name"""

    password: str | None = None
    """Password, kept exactly as written"""

    password_env: str | None = None
    """Name of an environment variable holding the password"""

    password_secret_ref: str | None = None
    """Secret reference resolved through the provider registry"""

    password_provider: str | None = None
    """Provider name used for the secret reference, or ``local``"""

    key: str | None = None
    """Public key text or key file path"""

    pubkey: str | None = None
    """Public key text"""

    pubkey_file: str | None = None
    """Public key file path"""

    port: int | None = None
    """Default SSH port"""

    timeout: int | None = None
    """Connection timeout in seconds"""

    insecure_ignore_host_key: bool | None = None
    """Disable host key verification"""

    known_hosts: str | None = None
    """Trust store path"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        key_sources = [v for v in (self.key, self.pubkey, self.pubkey_file) if v is not None and v.strip()]
        if len(key_sources) > 1:
            raise ValueError("config file must set only one of key/pubkey/pubkey_file")


@dataclass
class BootstrapOptions:
    """Everything a run needs, merged from flags, config file and prompts.

    The ``password`` field is masked in ``__repr__``.
    """

    server: str = ""
    servers: str = ""
    servers_file: str = ""
    user: str = ""
    password: str = ""
    password_env: str = ""
    password_secret_ref: str = ""
    password_provider: str = ""
    key_input: str = ""
    pubkey: str = ""
    pubkey_file: str = ""
    port: int = DEFAULT_PORT
    timeout: int = DEFAULT_TIMEOUT
    insecure_ignore_host_key: bool = False
    known_hosts: str = DEFAULT_KNOWN_HOSTS
    workers: int = 1
    output: OutputMode = OutputMode.PLAIN
    env_file: str = ""
    config_file: str = ""

    def __repr__(self) -> str:
        shown = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "password":
                shown.append(f"password={'***' if value else ''!r}")
            else:
                shown.append(f"{f.name}={value!r}")
        return f"BootstrapOptions({', '.join(shown)})"

    @property
    def has_host_source(self) -> bool:
        return any(v.strip() for v in (self.server, self.servers, self.servers_file))

    @property
    def has_key_source(self) -> bool:
        return any(v.strip() for v in (self.key_input, self.pubkey, self.pubkey_file))

    def validate(self) -> None:
        """Check static constraints before anything touches the network.

        Raises:
            ConfigurationError: If a numeric field is out of range or more
                than one password or key source is set.
        """
        if not 1 <= self.port <= 65535:
            raise ConfigurationError("port must be in range 1..65535")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be greater than zero")
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")

        password_sources = [self.password, self.password_env, self.password_secret_ref]
        if sum(1 for v in password_sources if v.strip()) > 1:
            raise ConfigurationError(
                "use either --password, --password-env or --password-secret-ref, not both"
            )

        key_sources = [self.key_input, self.pubkey, self.pubkey_file]
        if sum(1 for v in key_sources if v.strip()) > 1:
            raise ConfigurationError("use either --key, --pubkey or --pubkey-file, not both")


# Option field fed by each FileConfig field.
FILE_CONFIG_FIELDS: dict[str, str] = {
    "server": "server",
    "servers": "servers",
    "servers_file": "servers_file",
    "user": "user",
    "password": "password",
    "password_env": "password_env",
    "password_secret_ref": "password_secret_ref",
    "password_provider": "password_provider",
    "key": "key_input",
    "pubkey": "pubkey",
    "pubkey_file": "pubkey_file",
    "port": "port",
    "timeout": "timeout",
    "insecure_ignore_host_key": "insecure_ignore_host_key",
    "known_hosts": "known_hosts",
}

_UNTRIMMED = frozenset({"password"})

# A flag for any member of a group overrides the whole group from the file.
_EXCLUSIVE_GROUPS = (
    frozenset({"password", "password_env", "password_secret_ref"}),
    frozenset({"key_input", "pubkey", "pubkey_file"}),
)


def apply_file_config(
    options: BootstrapOptions,
    file_config: FileConfig,
    explicit: set[str] | frozenset[str] = frozenset(),
) -> list[str]:
    """Copy values present in *file_config* onto *options*.

    Fields named in *explicit* were given on the command line and win
    over the file. String values are trimmed, except the password.
    ``password_provider`` is lower-cased.

    Returns:
        Names of the option fields that were loaded, in model order.
    """
    overridden = set(explicit)
    for group in _EXCLUSIVE_GROUPS:
        if group & overridden:
            overridden |= group

    loaded: list[str] = []
    for source_name, option_name in FILE_CONFIG_FIELDS.items():
        value = getattr(file_config, source_name)
        if value is None or option_name in overridden:
            continue
        if isinstance(value, str) and source_name not in _UNTRIMMED:
            value = value.strip()
        if option_name == "password_provider":
            value = value.lower()
        setattr(options, option_name, value)
        loaded.append(option_name)
    return loaded
