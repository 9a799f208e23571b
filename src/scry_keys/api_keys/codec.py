"""Project API key format: generation, parsing and hashing.

Key format: ``scry_proj_{projectId}_{secret}``

- ``scry_proj_`` identifies the key scheme and version
- ``projectId`` scopes the key to one project and can be read without a lookup
- ``secret`` is 32 random bytes, base62 encoded

Nothing in this module performs I/O, and parsing helpers report bad input
through their return values instead of raising.
"""

import hashlib
import secrets
import string


KEY_SCHEME_PREFIX = "scry_proj_"
KEY_PREFIX_LENGTH = 12
SECRET_BYTES = 32
MIN_SECRET_LENGTH = 16
KEY_ID_LENGTH = 20

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
_KEY_ID_ALPHABET = string.ascii_letters + string.digits


def _base62_width(num_bytes: int) -> int:
    """Number of base62 digits needed to represent any value of num_bytes."""
    width = 0
    capacity = 1
    limit = 256**num_bytes
    while capacity < limit:
        capacity *= 62
        width += 1
    return width


def encode_base62(data: bytes) -> str:
    """Encode bytes as a fixed-width base62 string.

    The width only depends on ``len(data)``, so leading zero bytes do not
    shorten the output.
    """
    value = int.from_bytes(data, "big")
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 62)
        digits.append(BASE62_ALPHABET[remainder])
    width = _base62_width(len(data))
    return "".join(reversed(digits)).rjust(width, BASE62_ALPHABET[0])


def generate_random_string(num_bytes: int = SECRET_BYTES) -> str:
    """Generate a base62 string from ``num_bytes`` of secure random data."""
    return encode_base62(secrets.token_bytes(num_bytes))


def generate_api_key(project_id: str) -> str:
    """Generate a new raw API key for a project.

    Args:
        project_id: Project the key is scoped to

    Returns:
        The raw key. Callers must hand it to the user once and discard it.

    Raises:
        ValueError: If the project id is empty or contains the delimiter

    """
    if not project_id:
        raise ValueError("project_id must not be empty")
    if "_" in project_id:
        raise ValueError("project_id must not contain '_'")
    return f"{KEY_SCHEME_PREFIX}{project_id}_{generate_random_string(SECRET_BYTES)}"


def extract_project_id(raw_key: str) -> str | None:
    """Read the project id embedded in a raw key.

    The project id ends at the first underscore after the scheme prefix. Keys
    that fail `is_well_formed` yield None, so a short secret is rejected here
    as well.

    Returns:
        The project id, or None if the key is not in the project key format

    """
    if not is_well_formed(raw_key):
        return None

    project_id, _, _ = raw_key[len(KEY_SCHEME_PREFIX) :].partition("_")
    return project_id


def key_prefix(raw_key: str) -> str:
    """Return the display prefix of a key (safe to show and log)."""
    return raw_key[:KEY_PREFIX_LENGTH]


def hash_api_key(raw_key: str) -> str:
    """Hash a raw key with SHA-256 and return the hex digest."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def is_well_formed(raw_key: str) -> bool:
    """Check a raw key's format without touching any store."""
    if not raw_key or not isinstance(raw_key, str):
        return False
    if not raw_key.startswith(KEY_SCHEME_PREFIX):
        return False

    parts = raw_key[len(KEY_SCHEME_PREFIX) :].split("_")
    if len(parts) < 2 or not parts[0]:
        return False

    secret = "_".join(parts[1:])
    return len(secret) >= MIN_SECRET_LENGTH


def generate_key_id() -> str:
    """Generate a random 20 character document id."""
    return "".join(secrets.choice(_KEY_ID_ALPHABET) for _ in range(KEY_ID_LENGTH))
