"""Migration models: dependency records and run statistics."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from projectxfer.models.project import Project, Version


class DependencyRecord(BaseModel):
    """Toolkit discovered while resolving a project's dependencies.

    Identity is the project id; depth, branch versions and edges are mutable
    state attached to that key. Higher depth means migrate earlier.
    """

    project: Project
    depth: int = Field(default=0, ge=0)
    branch_versions: dict[str, list[Version]] = Field(
        default_factory=dict,
        description="Branch name -> versions, oldest first",
    )
    dependency_ids: set[str] = Field(
        default_factory=set,
        description="Project ids of toolkits this toolkit depends on",
    )

    @property
    def project_id(self) -> Optional[str]:
        return self.project.id

    def raise_depth(self, depth: int) -> bool:
        """Raise depth to ``depth`` if deeper. Returns True when it changed."""
        if depth > self.depth:
            self.depth = depth
            return True
        return False

    def total_versions(self) -> int:
        return sum(len(v) for v in self.branch_versions.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyRecord):
            return NotImplemented
        return self.project.id == other.project.id

    def __hash__(self) -> int:
        return hash(self.project.id)


class MigrationStats(BaseModel):
    """Counters for one migration run."""

    total_projects: int = 0
    successful_projects: int = 0
    failed_projects: int = 0
    total_snapshots: int = Field(default=0, description="Snapshot export/import attempts, failed ones included")
    failed_snapshots: int = 0
    skipped_toolkits: int = 0
