from .pg_repositoryMulticast import MulticastGroupRepository

__all__ = [
    "MulticastGroupRepository",
]
