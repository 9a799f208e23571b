"""API layer for Scry Keys."""

from scry_keys.api.app import create_app


__all__ = ["create_app"]
