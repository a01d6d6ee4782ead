"""Pydantic models."""

from projectxfer.models.migration import DependencyRecord, MigrationStats
from projectxfer.models.project import (
    Branch,
    BooleanProperty,
    Project,
    Property,
    Version,
)

__all__ = [
    "Branch",
    "BooleanProperty",
    "DependencyRecord",
    "MigrationStats",
    "Project",
    "Property",
    "Version",
]
