"""
Command-line interface for Countify.

This package provides the CLI commands for creating count sessions and
changing their counts.
"""

from .main import cli

__all__ = ["cli"]
