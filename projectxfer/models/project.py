"""Repository models: projects, branches and versions (snapshots) as returned by the BAW REST APIs."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Boolean property names that mark a toolkit as shipped by the platform itself.
SYSTEM_TOOLKIT_FLAGS = ("system_toolkit", "system", "system_data")


class Property(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: Optional[str] = None
    value: Optional[str] = None


class BooleanProperty(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: Optional[str] = None
    value: bool = False


class Project(BaseModel):
    """Process app or toolkit container.

    Different endpoints populate different fields. The studio repository API
    sends the short code as ``name``; the artifact-management API sends it as
    ``container`` and, for dependency stubs, nothing else.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    id: Optional[str] = None
    acronym: Optional[str] = Field(default=None, alias="name")
    container: Optional[str] = None
    container_name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    toolkit: bool = False
    default_branch_id: Optional[str] = None
    default_branch_name: Optional[str] = None
    properties: list[Property] = Field(default_factory=list)
    boolean_properties: list[BooleanProperty] = Field(default_factory=list)

    @property
    def short_code(self) -> Optional[str]:
        return self.acronym if self.acronym is not None else self.container

    @property
    def full_name(self) -> Optional[str]:
        return self.container_name if self.container_name is not None else self.display_name

    @property
    def is_toolkit(self) -> bool:
        return self.toolkit

    @property
    def is_system_toolkit(self) -> bool:
        """First matching system flag wins; absent flags mean a user toolkit."""
        for prop in self.boolean_properties:
            if prop.name in SYSTEM_TOOLKIT_FLAGS:
                return prop.value
        return False

    @property
    def label(self) -> str:
        """Human-readable name for log lines."""
        return self.display_name or self.full_name or self.short_code or self.id or "<unknown>"


class Branch(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: Optional[str] = None
    is_default: bool = Field(default=False, alias="default")


class Version(BaseModel):
    """Snapshot of a project on one branch.

    ``name`` doubles as the version acronym in artifact-management queries.
    ``creation_date`` is kept as the raw string and compared lexicographically.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    branch_name: Optional[str] = None
    creation_date: Optional[str] = None
    properties: list[Property] = Field(default_factory=list)
    boolean_properties: list[BooleanProperty] = Field(default_factory=list)
    dependencies: Optional[list[Project]] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.id or "<unknown>"


class ProjectsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    projects: Optional[list[Project]] = None


class BranchesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    branches: Optional[list[Branch]] = None


class VersionsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    snapshots: Optional[list[Version]] = None


class LoginRequest(BaseModel):
    """Body for POST /bpm/system/login."""

    refresh_groups: bool = False
    requested_lifetime: Optional[int] = Field(default=7200, description="Token lifetime in seconds")


class CsrfTokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    csrf_token: Optional[str] = None
    expiration: Optional[int] = None
