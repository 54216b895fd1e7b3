"""CLI command implementations."""

from zkpp_cli.commands import claim, oracle, serve

__all__ = ["claim", "oracle", "serve"]
