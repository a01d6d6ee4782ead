"""Toolkit dependency resolution for a process app.

Walks every version on every processed branch of the root project, asks the
artifact-management API for each version's direct dependencies and recurses
into toolkits. Output is ordered leaf-first (deepest toolkit first) so that a
toolkit is always imported before anything that needs it.

Remote lookups are memoised per resolver instance:
- project by id
- version list by (project id, branch name)
- short code (acronym) -> project id, built once from the full project list

Failures for a single project, branch or version are logged and skipped;
only listing all projects and listing branches propagate.
"""

from __future__ import annotations

import logging
from typing import Optional

from projectxfer.adapters.dependency_graph import DependencyGraph
from projectxfer.adapters.repository_client import RepositoryApiError, RepositoryGateway
from projectxfer.models.migration import DependencyRecord
from projectxfer.models.project import Project, Version
from projectxfer.services.ordering import branches_to_process, sort_versions_by_creation

log = logging.getLogger(__name__)


class DependencyResolver:
    def __init__(self, gateway: RepositoryGateway, default_branch_only: bool = False) -> None:
        self._gateway = gateway
        self._default_branch_only = default_branch_only

        self._project_cache: dict[str, Project] = {}
        self._version_cache: dict[tuple[str, str], list[Version]] = {}
        self._acronym_to_id: dict[str, str] = {}
        self._acronym_map_loaded = False

    def resolve(self, project: Project) -> list[DependencyRecord]:
        """All toolkit dependencies of ``project`` across its history, deepest first."""
        log.info("Resolving dependencies for project: %s", project.label)
        graph = DependencyGraph()

        for branch in branches_to_process(self._gateway, project, self._default_branch_only):
            if not branch.name:
                log.warning("Skipping unnamed branch for project: %s", project.label)
                continue
            log.info("Processing dependencies from branch: %s for project: %s", branch.name, project.label)
            versions = self._versions(project, branch.name)
            if not versions:
                log.warning("No snapshots found for project: %s on branch: %s", project.label, branch.name)
                continue
            for version in versions:
                self._process_root_version(project, version, graph)

        graph.relax_depths()
        ordered = graph.ordered()
        log.info("Found %d toolkit dependencies for project: %s", len(ordered), project.label)
        return ordered

    def clear_cache(self) -> None:
        self._project_cache.clear()
        self._version_cache.clear()
        self._acronym_to_id.clear()
        self._acronym_map_loaded = False

    def _process_root_version(self, project: Project, version: Version, graph: DependencyGraph) -> None:
        container, version_name = project.short_code, version.name
        if not container or not version_name:
            log.warning("Invalid project or snapshot name: project=%s, snapshot=%s", container, version_name)
            return
        for dependency in self._direct_dependencies(container, version_name):
            self._process_dependency(dependency, graph, 1, frozenset())

    def _process_dependency(
        self,
        stub: Project,
        graph: DependencyGraph,
        depth: int,
        path: frozenset[str],
    ) -> Optional[str]:
        """Track one toolkit and recurse into its dependencies.

        ``stub`` only carries a short code. ``path`` holds the short codes
        being processed further up this recursion; they are not re-entered.
        Returns the project id when the dependency is tracked.
        """
        code = stub.short_code
        if not code:
            log.warning("Dependency project has no acronym")
            return None
        if code in path:
            log.debug("Toolkit %s is already being processed on this path, not descending again", code)
            return self._acronym_to_id.get(code)

        log.debug("Processing dependency: %s at depth: %d", code, depth)
        toolkit = self._project_for_acronym(code)
        if toolkit is None:
            log.warning("Could not fetch project details for dependency: %s", code)
            return None
        if not toolkit.is_toolkit:
            log.debug("Skipping non-toolkit dependency: %s", toolkit.label)
            return None
        if toolkit.is_system_toolkit:
            log.debug("Skipping system toolkit: %s", toolkit.label)
            return None

        record = graph.upsert(toolkit, depth)
        toolkit_id = record.project.id or ""
        inner_path = path | {code}
        # Nested toolkits already recursed into from this call.
        queued: set[str] = set()

        for branch in branches_to_process(self._gateway, toolkit, self._default_branch_only):
            if not branch.name:
                continue
            versions = self._versions(toolkit, branch.name)
            if not versions:
                log.warning("No snapshots found for toolkit: %s on branch: %s", toolkit.label, branch.name)
                continue

            named = [v for v in versions if v.name]
            if len(named) < len(versions):
                log.warning(
                    "Skipping %d snapshots without a name/acronym for toolkit: %s on branch: %s",
                    len(versions) - len(named),
                    code,
                    branch.name,
                )
            if not named:
                continue

            record.branch_versions[branch.name] = sort_versions_by_creation(named)
            log.debug("Added %d snapshots from branch: %s for toolkit: %s", len(named), branch.name, toolkit.label)

            for version in named:
                for nested in self._direct_dependencies(code, version.name or ""):
                    nested_code = nested.short_code
                    if not nested_code or nested_code in queued:
                        continue
                    queued.add(nested_code)
                    child_id = self._process_dependency(nested, graph, depth + 1, inner_path)
                    if child_id:
                        graph.add_edge(toolkit_id, child_id)

        return toolkit_id

    def _direct_dependencies(self, container: str, version_name: str) -> list[Project]:
        try:
            version = self._gateway.get_version_with_dependencies(container, version_name)
        except RepositoryApiError as e:
            log.warning("Failed to get dependencies for snapshot: container=%s, version=%s: %s", container, version_name, e)
            return []
        dependencies = version.dependencies or []
        if dependencies:
            log.debug("Snapshot %s of %s has %d dependencies", version_name, container, len(dependencies))
        return dependencies

    def _load_acronym_map(self) -> None:
        log.info("Initializing acronym-to-ID map by fetching all projects...")
        for project in self._gateway.list_projects():
            if project.short_code and project.id:
                self._acronym_to_id[project.short_code] = project.id
        self._acronym_map_loaded = True
        log.info("Initialized acronym map with %d projects", len(self._acronym_to_id))

    def _project_for_acronym(self, code: str) -> Optional[Project]:
        if not self._acronym_map_loaded:
            self._load_acronym_map()

        project_id = self._acronym_to_id.get(code)
        if project_id is None:
            log.warning("No project ID found for acronym: %s", code)
            return None

        cached = self._project_cache.get(project_id)
        if cached is not None:
            return cached
        try:
            project = self._gateway.get_project(project_id)
        except RepositoryApiError as e:
            log.error("Failed to fetch project with ID: %s: %s", project_id, e)
            return None
        if not project.id:
            project = project.model_copy(update={"id": project_id})
        self._project_cache[project_id] = project
        return project

    def _versions(self, project: Project, branch_name: str) -> Optional[list[Version]]:
        key = (project.id or "", branch_name)
        if key in self._version_cache:
            return self._version_cache[key]
        try:
            versions = self._gateway.list_versions(project.id or "", branch_name)
        except RepositoryApiError as e:
            log.warning("Failed to list snapshots for project: %s on branch: %s: %s", project.label, branch_name, e)
            return None
        self._version_cache[key] = versions
        return versions
