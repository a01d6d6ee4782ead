"""In-memory toolkit dependency graph.

Records are keyed by project id. Each record carries its own mutable depth,
per-branch version lists and outgoing edges (ids of toolkits it depends on).
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from projectxfer.models.migration import DependencyRecord
from projectxfer.models.project import Project

log = logging.getLogger(__name__)

MAX_RELAX_ITERATIONS = 100


class DependencyGraph:
    def __init__(self) -> None:
        # Insertion order = discovery order; the final sort is stable on it.
        self._records: dict[str, DependencyRecord] = {}

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DependencyRecord]:
        return iter(self._records.values())

    def get(self, project_id: str) -> Optional[DependencyRecord]:
        return self._records.get(project_id)

    def upsert(self, project: Project, depth: int) -> DependencyRecord:
        """Track ``project`` at ``depth``; an existing record only ever gets deeper."""
        if not project.id:
            raise ValueError(f"Cannot track dependency without a project id: {project.label}")
        record = self._records.get(project.id)
        if record is None:
            record = DependencyRecord(project=project, depth=depth)
            self._records[project.id] = record
            log.debug("Added toolkit dependency: %s at depth: %d", project.label, depth)
        elif record.raise_depth(depth):
            log.debug("Updated depth for toolkit: %s to %d", project.label, depth)
        return record

    def add_edge(self, parent_id: str, child_id: str) -> None:
        parent = self._records.get(parent_id)
        if parent is None or child_id not in self._records or parent_id == child_id:
            return
        parent.dependency_ids.add(child_id)

    def dependencies_of(self, project_id: str) -> list[DependencyRecord]:
        record = self._records.get(project_id)
        if record is None:
            return []
        return [self._records[i] for i in sorted(record.dependency_ids) if i in self._records]

    def relax_depths(self, max_iterations: int = MAX_RELAX_ITERATIONS) -> int:
        """Push every dependency at least one level below each toolkit that needs it.

        Repeats full passes until nothing changes or ``max_iterations`` is hit.
        Assumes an acyclic graph; on a cycle the cap ends the loop and the
        resulting order may not honour every edge. Returns the passes run.
        """
        iteration = 0
        changed = True
        while changed and iteration < max_iterations:
            changed = False
            iteration += 1
            for record in self._records.values():
                for child in self.dependencies_of(record.project.id or ""):
                    if child.raise_depth(record.depth + 1):
                        changed = True
        if changed:
            log.warning(
                "Depth calculation stopped at the %d iteration cap; toolkits depending on each other "
                "end up with inflated depths and their relative order is arbitrary",
                max_iterations,
            )
        log.debug("Calculated depths in %d iterations", iteration)
        return iteration

    def ordered(self) -> list[DependencyRecord]:
        """Deepest first, so leaf toolkits are migrated before anything using them."""
        return sorted(self._records.values(), key=lambda r: r.depth, reverse=True)
