"""Data models for the OSCAL Workbench."""

from .oscal import (
    AssessmentResults,
    Catalog,
    ComponentDefinition,
    Control,
    DocumentType,
    Group,
    Metadata,
    OscalDocument,
    Parameter,
    PlanOfActionAndMilestones,
    Profile,
    SystemSecurityPlan,
)
from .resolution import ImportSource, ImportStatus, ResolvedProfile, ResolvedSource, ResolvedSsp
from .diff import DiffEntry, DiffSection, DiffStatus, DiffSummary, DocumentDiffResult, MetadataDiff

__all__ = [
    "AssessmentResults",
    "Catalog",
    "ComponentDefinition",
    "Control",
    "DocumentType",
    "Group",
    "Metadata",
    "OscalDocument",
    "Parameter",
    "PlanOfActionAndMilestones",
    "Profile",
    "SystemSecurityPlan",
    "ImportSource",
    "ImportStatus",
    "ResolvedProfile",
    "ResolvedSource",
    "ResolvedSsp",
    "DiffEntry",
    "DiffSection",
    "DiffStatus",
    "DiffSummary",
    "DocumentDiffResult",
    "MetadataDiff",
]
