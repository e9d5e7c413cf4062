"""Persisted identity facts and the read-time merge used for prompt injection."""

from .merge import MergedContext, MergedContextBuilder, merge_facts_for_injection
from .models import ContextEvent, IdentityFact, IdentityRecord, PageVisit
from .similarity import similarity
from .sources import FactSourceBase, LocalFactSource, RemoteFactSource
from .storage import ContextStorage, IdentityStorage, PersistenceError

__all__ = [
    "ContextEvent",
    "ContextStorage",
    "FactSourceBase",
    "IdentityFact",
    "IdentityRecord",
    "IdentityStorage",
    "LocalFactSource",
    "MergedContext",
    "MergedContextBuilder",
    "PageVisit",
    "PersistenceError",
    "RemoteFactSource",
    "merge_facts_for_injection",
    "similarity",
]
