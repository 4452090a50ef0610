"""
BeamDAO command line tools.
"""

from .deploy import cli, main

__all__ = ["cli", "main"]
