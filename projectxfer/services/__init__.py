"""Dependency resolution and migration services."""

from projectxfer.services.dependency_resolver import DependencyResolver
from projectxfer.services.migration_service import MigrationError, MigrationService

__all__ = ["DependencyResolver", "MigrationError", "MigrationService"]
