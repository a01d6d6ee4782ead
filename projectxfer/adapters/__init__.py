"""Adapters for external systems: BAW repository REST API, in-memory dependency graph."""

from projectxfer.adapters.dependency_graph import DependencyGraph
from projectxfer.adapters.repository_client import (
    RepositoryApiError,
    RepositoryAuthError,
    RepositoryClient,
    RepositoryGateway,
)

__all__ = [
    "DependencyGraph",
    "RepositoryApiError",
    "RepositoryAuthError",
    "RepositoryClient",
    "RepositoryGateway",
]
