from sources.backend import BackendClient
from sources.base import (
    CatalogEntry,
    EmptyCatalog,
    InterestSource,
    ItemCatalog,
    SubscriptionSource,
)
from sources.catalog import ValorantCatalog

__all__ = [
    "BackendClient",
    "CatalogEntry",
    "EmptyCatalog",
    "InterestSource",
    "ItemCatalog",
    "SubscriptionSource",
    "ValorantCatalog",
]
