"""Branch selection and version ordering shared by the resolver and the migration service."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from projectxfer.adapters.repository_client import RepositoryGateway
from projectxfer.models.project import Branch, Project, Version

log = logging.getLogger(__name__)


def default_branch(project: Project) -> Branch:
    """Synthetic branch record for the project's declared default branch."""
    return Branch(name=project.default_branch_name, is_default=True)


def _is_default(name: Optional[str], default_name: Optional[str]) -> bool:
    return default_name is not None and name == default_name


def branches_to_process(gateway: RepositoryGateway, project: Project, default_only: bool = False) -> list[Branch]:
    """Branches whose versions should be walked, default branch first.

    ``default_only`` skips the remote call entirely. When the instance reports
    no branches the declared default branch is used. Otherwise the remote
    order is kept apart from the default branch moving to the front.
    """
    if default_only:
        return [default_branch(project)]

    branches = gateway.list_branches(project.id or "")
    if not branches:
        log.warning("No branches found for project: %s, using default branch", project.label)
        return [default_branch(project)]

    default_name = project.default_branch_name
    ordered = sorted(branches, key=lambda b: not _is_default(b.name, default_name))
    log.debug(
        "Processing %d branches for project: %s (default branch: %s first)",
        len(ordered),
        project.label,
        default_name,
    )
    return ordered


def order_branch_names(names: Iterable[str], default_name: Optional[str]) -> list[str]:
    """Default branch first, then the rest alphabetically."""
    return sorted(names, key=lambda n: (not _is_default(n, default_name), n))


def sort_versions_by_creation(versions: Iterable[Version]) -> list[Version]:
    """Oldest first by raw ``creation_date`` string; versions without one go last."""
    return sorted(versions, key=lambda v: (v.creation_date is None, v.creation_date or ""))
