"""Firestore REST protocol: service-account tokens, typed values and documents."""

from scry_keys.firestore.client import FirestoreDocument, FirestoreRestClient
from scry_keys.firestore.query import Direction, FieldFilter, Order, StructuredQuery
from scry_keys.firestore.service_account import (
    AccessTokenProvider,
    ServiceAccount,
    TokenState,
)


__all__ = [
    "AccessTokenProvider",
    "Direction",
    "FieldFilter",
    "FirestoreDocument",
    "FirestoreRestClient",
    "Order",
    "ServiceAccount",
    "StructuredQuery",
    "TokenState",
]
