"""Developer workflow automation commands."""

__version__ = "0.1.0"
