"""Core utilities shared across Scry Keys."""

from scry_keys.core.logging import setup_logging


__all__ = ["setup_logging"]
