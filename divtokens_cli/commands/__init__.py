"""
CLI command modules.
"""

from divtokens_cli.commands import demo, inspect, keygen

__all__ = ["demo", "inspect", "keygen"]
