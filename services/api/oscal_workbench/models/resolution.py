"""Result models for profile, SSP and source resolution."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from oscal_workbench.models.oscal import Control, DocumentType, Merge, Modify


class ImportStatus(str, Enum):
    LOADED = "loaded"
    CACHED = "cached"
    ERROR = "error"


class ImportSource(BaseModel):
    """Outcome of resolving one profile import."""

    href: str = Field(description="Href as written in the import")
    resolved_url: Optional[str] = Field(default=None, description="URL actually fetched")
    status: ImportStatus = Field(description="Resolution status")
    control_count: int = Field(default=0, description="Controls contributed by this import")
    error: Optional[str] = Field(default=None, description="Failure message when status is error")


class ResolvedProfile(BaseModel):
    controls: List[Control] = Field(default_factory=list, description="Selected and modified controls")
    sources: List[ImportSource] = Field(default_factory=list, description="One entry per import, in import order")
    errors: List[str] = Field(default_factory=list, description="Unexpected per-import failures")


class ProfileMeta(BaseModel):
    title: str
    version: str
    import_count: int


class ResolvedSsp(BaseModel):
    """Outcome of resolving an SSP through its profile down to catalogs."""

    profile_meta: Optional[ProfileMeta] = Field(default=None, description="Resolved profile summary")
    catalog_sources: List[ImportSource] = Field(default_factory=list, description="The profile's import sources")
    controls: List[Control] = Field(default_factory=list, description="Controls from the full chain")
    merge: Optional[Merge] = Field(default=None, description="Profile merge block, passed through")
    modify: Optional[Modify] = Field(default=None, description="Profile modify block, passed through")
    errors: List[str] = Field(default_factory=list, description="Errors from both resolution levels")


class ResolvedSource(BaseModel):
    """Summary of the document behind a single href."""

    href: str
    resolved_url: Optional[str] = None
    title: str
    document_type: Optional[DocumentType] = None
    version: str = ""
    status: ImportStatus
    error: Optional[str] = None
