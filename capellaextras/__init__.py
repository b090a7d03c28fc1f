"""Client for the Capella v4 API and a helper that builds deferred indexes."""

__version__ = "0.1.0"
__all__ = ["actions", "client", "indexes"]