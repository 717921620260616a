"""Result models for structural document comparison."""

from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from oscal_workbench.models.oscal import DocumentType

T = TypeVar("T")


class DiffStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


class DiffEntry(BaseModel, Generic[T]):
    """One compared element, matched across both sides by a stable key."""

    status: DiffStatus = Field(description="Comparison outcome")
    key: str = Field(description="Stable identifier the sides were matched on")
    label: str = Field(description="Human-readable label")
    left: Optional[T] = Field(default=None, description="Left-side element")
    right: Optional[T] = Field(default=None, description="Right-side element")
    changes: Optional[List[str]] = Field(default=None, description="Change descriptions for modified entries")


class DiffSummary(BaseModel):
    added: int = 0
    removed: int = 0
    modified: int = 0
    unchanged: int = 0
    total: int = 0


class MetadataSnapshot(BaseModel):
    title: str
    version: str
    oscal_version: str
    last_modified: str


class MetadataDiff(BaseModel):
    title_changed: bool
    version_changed: bool
    oscal_version_changed: bool
    last_modified_changed: bool
    left: MetadataSnapshot
    right: MetadataSnapshot


class DiffSection(BaseModel):
    """A named group of entries, such as "Controls" or "Findings"."""

    title: str
    summary: DiffSummary
    # Entries keep their concrete DiffEntry[...] type; Any avoids revalidation.
    entries: List[Any] = Field(default_factory=list)


class DocumentDiffResult(BaseModel):
    type: DocumentType
    metadata: MetadataDiff
    summary: DiffSummary
    sections: List[DiffSection] = Field(default_factory=list)
