"""Relational storage for the reference API key backend."""

from scry_keys.db.engine import Database, get_db_url, init_db
from scry_keys.db.models import ApiKeyRow


__all__ = ["ApiKeyRow", "Database", "get_db_url", "init_db"]
