"""Scry Keys - project-scoped API keys for the Scry upload service."""

__version__ = "0.1.0"


__all__ = ["__version__"]
