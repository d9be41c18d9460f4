"""Command-line interface for provisioning authorized keys."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from ssh_key_bootstrap import __version__
from ssh_key_bootstrap.core.config.base import LogLevel, OutputMode
from ssh_key_bootstrap.core.config.inputs import fill_missing_inputs, resolve_password
from ssh_key_bootstrap.core.config.options import BootstrapOptions
from ssh_key_bootstrap.core.config.sources import apply_config_sources
from ssh_key_bootstrap.core.console import Console, TerminalConsole
from ssh_key_bootstrap.core.exceptions import BootstrapError
from ssh_key_bootstrap.core.hosts import resolve_hosts
from ssh_key_bootstrap.core.keys import parse_public_key, read_public_key_file, resolve_public_key
from ssh_key_bootstrap.core.secrets import ProviderRegistry, default_registry
from ssh_key_bootstrap.core.utils import expand_home_path
from ssh_key_bootstrap.runner.bootstrap_runner import BootstrapRunner
from ssh_key_bootstrap.runner.executor import ClientSettings
from ssh_key_bootstrap.runner.hooks import CompositeHooks, RunHooks
from ssh_key_bootstrap.runner.hooks_builtin import LoggingHooks, PlainReportHooks, RecapReportHooks
from ssh_key_bootstrap.runner.result import RunResultStatus
from ssh_key_bootstrap.trust import ConsoleTrustPrompt, HostKeyError, build_host_key_policy

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_HOST_FAILURES = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# argparse dest -> BootstrapOptions field
_OPTION_DESTS = {
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
    "workers": "workers",
    "output": "output",
    "env_file": "env_file",
    "config_file": "config_file",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssh-key-bootstrap",
        description="Add an SSH public key to ~/.ssh/authorized_keys on one or more hosts using password auth.",
    )
    hosts = parser.add_argument_group("hosts")
    hosts.add_argument("--server", help="Single server (host or host:port).")
    hosts.add_argument("--servers", help="Comma-separated servers (host or host:port).")
    hosts.add_argument("--servers-file", help="File with one server per line.")
    hosts.add_argument("--port", type=int, help="Default SSH port when an entry has none (default: 22).")

    auth = parser.add_argument_group("authentication")
    auth.add_argument("--user", help="SSH username.")
    auth.add_argument("--password", help="SSH password (less secure than the prompt).")
    auth.add_argument("--password-env", help="Environment variable containing the SSH password.")
    auth.add_argument(
        "--password-secret-ref",
        help="Secret reference for the password, e.g. bw://<id> or infisical://<name>.",
    )
    auth.add_argument(
        "--password-provider",
        help="Provider that resolves --password-secret-ref, or 'local' to read PASSWORD.",
    )

    key = parser.add_argument_group("public key")
    key.add_argument("--key", help="Public key text or path to a public key file.")
    key.add_argument("--pubkey", help="Public key text (e.g. 'ssh-ed25519 AAAA...').")
    key.add_argument("--pubkey-file", help="Path to a public key file.")

    trust = parser.add_argument_group("host key verification")
    trust.add_argument("--known-hosts", help="Path to the known_hosts file (default: ~/.ssh/known_hosts).")
    trust.add_argument(
        "--insecure-ignore-host-key",
        action="store_true",
        default=None,
        help="Disable host key verification (unsafe).",
    )

    config = parser.add_argument_group("configuration files")
    config.add_argument("--env-file", help="Path to a .env config file.")
    config.add_argument("--config-file", "--json-file", dest="config_file", help="Path to a HOCON or JSON config file.")

    run = parser.add_argument_group("run")
    run.add_argument("--timeout", type=int, help="SSH timeout in seconds (default: 10).")
    run.add_argument("--workers", type=int, help="Hosts provisioned concurrently (default: 1).")
    run.add_argument(
        "--output",
        choices=[m.value for m in OutputMode],
        help="Report style: plain [OK]/[FAIL] lines or an Ansible-style recap (default: plain).",
    )
    run.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=LogLevel.WARNING.value,
        help="Set the logging level (default: WARNING).",
    )
    run.add_argument("--log-file", help="Also write log records to this file.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(level: str, log_file: str | None) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)
    if log_file:
        handler = logging.FileHandler(expand_home_path(log_file), encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(getattr(logging, level))
        logging.getLogger().addHandler(handler)


def options_from_args(args: argparse.Namespace) -> tuple[BootstrapOptions, set[str]]:
    """Build options from parsed flags.

    Returns:
        The options and the names of the fields set explicitly on the
        command line.
    """
    options = BootstrapOptions()
    explicit: set[str] = set()
    for dest, field_name in _OPTION_DESTS.items():
        value = getattr(args, dest, None)
        if value is None:
            continue
        if field_name == "output":
            value = OutputMode(value)
        elif field_name == "password_provider":
            value = value.strip().lower()
        setattr(options, field_name, value)
        explicit.add(field_name)
    return options, explicit


def resolve_key_line(options: BootstrapOptions) -> str:
    """Return the single validated key line from the configured key source."""
    if options.key_input.strip():
        return resolve_public_key(options.key_input)
    if options.pubkey_file.strip():
        return read_public_key_file(options.pubkey_file)
    return parse_public_key(options.pubkey)


def build_report_hooks(output: OutputMode) -> RunHooks:
    """Return the stdout report hooks for *output*."""
    if output == OutputMode.RECAP:
        return RecapReportHooks()
    return PlainReportHooks()


def run(
    options: BootstrapOptions,
    explicit: set[str],
    console: Console,
    env: Mapping[str, str],
    registry: ProviderRegistry | None = None,
    runner: BootstrapRunner | None = None,
) -> int:
    """Execute one provisioning run and return its exit code.

    Configuration, credential and trust-store errors end the run with
    exit code 2 before any host is attempted.
    """
    try:
        apply_config_sources(options, console, explicit)
        options.validate()
        fill_missing_inputs(options, console)
        options.validate()

        hosts = resolve_hosts(options.server, options.servers, options.servers_file, options.port)
        public_key = resolve_key_line(options)

        registry = registry if registry is not None else default_registry(env)
        password = resolve_password(options, registry.providers(), console, env)

        known_hosts = Path(expand_home_path(options.known_hosts) or expand_home_path("~/.ssh/known_hosts"))
        policy = build_host_key_policy(
            options.insecure_ignore_host_key,
            known_hosts,
            ConsoleTrustPrompt(console),
        )
    except (BootstrapError, HostKeyError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    finally:
        if registry is not None:
            for provider in registry.providers():
                close = getattr(provider, "close", None)
                if callable(close):
                    close()

    settings = ClientSettings(
        username=options.user.strip(),
        password=password,
        host_key_policy=policy,
        timeout=float(options.timeout),
    )
    if runner is None:
        runner = BootstrapRunner(
            hooks=CompositeHooks(LoggingHooks(), build_report_hooks(options.output)),
            workers=options.workers,
        )
    result = runner.run(hosts, public_key, settings)

    if result.status is RunResultStatus.SUCCESS:
        return EXIT_OK
    print(f"Error: {result.failure_count} host(s) failed", file=sys.stderr)
    return EXIT_HOST_FAILURES


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint.

    Args:
        argv: Command-line arguments. Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 for success, 1 if any host failed, 2 for configuration
        or credential errors before any host was attempted, 130 when
        interrupted.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _configure_logging(args.log_level, args.log_file)
    except OSError as exc:
        print(f"Error: open log file: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    options, explicit = options_from_args(args)
    try:
        return run(options, explicit, TerminalConsole(), os.environ)
    except KeyboardInterrupt:
        print("", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
