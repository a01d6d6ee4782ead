"""Migrate process apps and their toolkit dependencies between BAW instances.

Order of work for one process app:
1. resolve toolkit dependencies on the source (deepest first)
2. export/import every version of each toolkit not already on the target;
   any failure here aborts the app, later imports would need the toolkit
3. export/import the app's own versions; a failed version is logged and skipped

Nothing is rolled back: whatever was imported before a failure stays on the target.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from projectxfer.adapters.repository_client import RepositoryApiError, RepositoryGateway
from projectxfer.models.migration import DependencyRecord, MigrationStats
from projectxfer.models.project import Project, Version
from projectxfer.services.dependency_resolver import DependencyResolver
from projectxfer.services.ordering import (
    branches_to_process,
    order_branch_names,
    sort_versions_by_creation,
)

log = logging.getLogger(__name__)

PROCESS_APP_TYPE = "processapp"


class MigrationError(RuntimeError):
    """A required toolkit could not be migrated; the process app was not imported."""

    def __init__(self, message: str, toolkit: Optional[Project] = None) -> None:
        super().__init__(message)
        self.toolkit = toolkit


class MigrationService:
    def __init__(
        self,
        source: RepositoryGateway,
        target: RepositoryGateway,
        export_dir: Path | str,
        default_branch_only: bool = False,
        resolver: Optional[DependencyResolver] = None,
    ) -> None:
        self._source = source
        self._target = target
        self._export_dir = Path(export_dir)
        self._default_branch_only = default_branch_only
        self._resolver = resolver or DependencyResolver(source, default_branch_only=default_branch_only)
        self.stats = MigrationStats()

        self._export_dir.mkdir(parents=True, exist_ok=True)

    @property
    def export_dir(self) -> Path:
        return self._export_dir

    def migrate_all_process_apps(self) -> None:
        """Migrate every process app on the source. One failure does not stop the batch."""
        log.info("Starting migration of all Process Apps")
        apps = [
            p for p in self._source.list_projects()
            if p.type == PROCESS_APP_TYPE and not p.is_toolkit
        ]
        log.info("Found %d Process Apps to migrate", len(apps))
        for app in apps:
            self._migrate_in_batch(app)
        log.info("Migration completed")

    def migrate_projects_by_acronym(self, acronyms: Iterable[str]) -> None:
        """Migrate the process apps with the given short codes; unknown codes are logged and skipped."""
        codes = [a.strip() for a in acronyms if a and a.strip()]
        log.info("Starting migration of %d Process Apps by acronym", len(codes))
        for code in codes:
            log.info("Migrating Process App with acronym: %s", code)
            project = self._source.find_project_by_acronym(code)
            if project is None:
                log.error("Process App not found with acronym: %s", code)
                continue
            self._migrate_in_batch(project)

    def _migrate_in_batch(self, project: Project) -> None:
        try:
            self.migrate_project(project)
        except Exception:
            log.exception("Failed to migrate Process App: %s", project.label)

    def migrate_project(self, project: Project) -> dict[str, Project]:
        """Migrate ``project`` and its toolkits.

        Returns the imported (or already present) target project for each
        toolkit, keyed by source project id. Raises MigrationError when a
        toolkit fails, and RepositoryApiError when resolution cannot proceed.
        """
        log.info("Migrating Process App: %s", project.label)
        self.stats.total_projects += 1
        try:
            imported = self._migrate_toolkits(self._resolver.resolve(project))
            self._migrate_own_versions(project)
        except Exception:
            self.stats.failed_projects += 1
            raise
        self.stats.successful_projects += 1
        log.info("Successfully migrated Process App: %s", project.label)
        return imported

    def get_migration_stats(self) -> MigrationStats:
        return self.stats.model_copy()

    def _migrate_toolkits(self, dependencies: list[DependencyRecord]) -> dict[str, Project]:
        imported: dict[str, Project] = {}
        for record in dependencies:
            toolkit = record.project
            try:
                result = self._migrate_toolkit(record)
            except (RepositoryApiError, OSError) as e:
                log.error("Failed to migrate toolkit: %s", toolkit.label)
                raise MigrationError(f"Failed to migrate required toolkit: {toolkit.label}", toolkit) from e
            if result is not None and toolkit.id:
                imported[toolkit.id] = result
        return imported

    def _migrate_toolkit(self, record: DependencyRecord) -> Optional[Project]:
        toolkit = record.project
        log.info(
            "Migrating toolkit: %s with snapshots from %d branches",
            toolkit.label,
            len(record.branch_versions),
        )

        existing = self._find_on_target(toolkit)
        if existing is not None:
            log.info("Toolkit already exists on target: %s", toolkit.label)
            self.stats.skipped_toolkits += 1
            return existing

        imported: Optional[Project] = None
        for branch_name in order_branch_names(record.branch_versions, toolkit.default_branch_name):
            versions = record.branch_versions[branch_name]
            log.info(
                "Processing %d snapshots from branch: %s for toolkit: %s (default: %s)",
                len(versions),
                branch_name,
                toolkit.label,
                toolkit.default_branch_name,
            )
            for version in versions:
                try:
                    imported = self._export_and_import(toolkit, version, branch_name)
                except (RepositoryApiError, OSError):
                    self.stats.failed_snapshots += 1
                    log.error(
                        "Failed to migrate snapshot: %s of toolkit: %s on branch: %s",
                        version.label,
                        toolkit.label,
                        branch_name,
                    )
                    raise
        return imported

    def _migrate_own_versions(self, project: Project) -> None:
        log.info("Migrating Process App snapshots: %s", project.label)
        for branch in branches_to_process(self._source, project, self._default_branch_only):
            if not branch.name:
                continue
            log.info("Processing branch: %s for Process App: %s", branch.name, project.label)
            try:
                versions = self._source.list_versions(project.id or "", branch.name)
            except RepositoryApiError as e:
                log.error("Failed to list snapshots for Process App: %s on branch: %s: %s", project.label, branch.name, e)
                continue
            if not versions:
                log.warning("No snapshots found for Process App: %s on branch: %s", project.label, branch.name)
                continue

            for version in sort_versions_by_creation(versions):
                try:
                    self._export_and_import(project, version, branch.name)
                except (RepositoryApiError, OSError):
                    self.stats.failed_snapshots += 1
                    log.exception(
                        "Failed to migrate snapshot: %s of Process App: %s on branch: %s",
                        version.label,
                        project.label,
                        branch.name,
                    )

    def _export_and_import(self, project: Project, version: Version, branch_name: str) -> Project:
        # Counts attempts; failures are also counted in failed_snapshots by the caller.
        self.stats.total_snapshots += 1
        if not project.id or not version.name:
            raise RepositoryApiError(f"Cannot export snapshot {version.label} of {project.label}: missing id or name")
        log.info("Exporting snapshot: %s from project: %s on branch: %s", version.label, project.label, branch_name)
        artifact = self._source.export_version(project.id, branch_name, version.name, self._export_dir)

        log.info("Importing snapshot: %s to target system", version.label)
        imported = self._target.import_artifact(artifact)
        log.info("Successfully imported snapshot: %s as project: %s", version.label, imported.label)
        return imported

    def _find_on_target(self, toolkit: Project) -> Optional[Project]:
        name = toolkit.full_name
        if not name:
            return None
        try:
            candidates = self._target.list_projects()
        except RepositoryApiError as e:
            log.warning("Failed to check for existing project on target: %s: %s", name, e)
            return None
        for candidate in candidates:
            if candidate.full_name == name:
                return candidate
        return None
