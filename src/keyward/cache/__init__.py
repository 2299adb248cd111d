from .store import CacheStore

__all__ = ["CacheStore"]
