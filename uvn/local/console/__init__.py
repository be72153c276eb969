"""
This module initializes the console package, exposing argument parsing
and the help and version output.
"""

from .handler import Arguments, parse_arguments, print_usage, print_version

__all__ = ["Arguments", "parse_arguments", "print_usage", "print_version"]
