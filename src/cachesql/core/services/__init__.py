"""Domain services for cachesql."""

from cachesql.core.services.cache_orchestrator import CacheOrchestrator
from cachesql.core.services.cache_policy import CachePolicy

__all__ = [
    "CacheOrchestrator",
    "CachePolicy",
]
