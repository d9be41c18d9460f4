"""Provision SSH public-key access across a fleet of hosts."""

__version__ = "0.1.0"
