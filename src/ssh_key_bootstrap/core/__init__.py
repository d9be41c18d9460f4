"""Core building blocks: configuration, secrets, hosts and keys."""
