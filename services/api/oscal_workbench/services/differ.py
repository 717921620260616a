"""
Structural comparison of two OSCAL documents of the same type.

Elements are matched by stable identifiers (control id, parameter id, uuid,
href) rather than position, then compared field by field into readable
change descriptions.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog

from oscal_workbench.models.diff import (
    DiffEntry,
    DiffSection,
    DiffStatus,
    DiffSummary,
    DocumentDiffResult,
    MetadataDiff,
    MetadataSnapshot,
)
from oscal_workbench.models.oscal import (
    Alter,
    AssessmentResults,
    Capability,
    Catalog,
    ComponentDefinition,
    Control,
    DefinedComponent,
    DocumentType,
    Finding,
    Group,
    ImplementedRequirement,
    Metadata,
    Observation,
    OscalModel,
    Parameter,
    PlanOfActionAndMilestones,
    PoamItem,
    Profile,
    ProfileImport,
    Risk,
    SetParameter,
    SystemComponent,
    SystemSecurityPlan,
)
from oscal_workbench.services.controls import get_all_controls

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_STATUS_ORDER = (
    DiffStatus.ADDED,
    DiffStatus.REMOVED,
    DiffStatus.MODIFIED,
    DiffStatus.UNCHANGED,
)


def diff_by_key(
    left_items: Sequence[T],
    right_items: Sequence[T],
    key_fn: Callable[[T], str],
    label_fn: Callable[[T], str],
    compare_fn: Callable[[T, T], List[str]],
) -> List[DiffEntry]:
    """
    Match items on both sides by key and classify each key.

    Keys only on the left are ``removed``, only on the right ``added``, and on
    both sides ``modified`` or ``unchanged`` depending on ``compare_fn``. When
    a side repeats a key the last item wins. Entries come back grouped as
    added, removed, modified, unchanged; left-side order inside each group,
    right-side order for added keys.
    """
    left_map: Dict[str, T] = {}
    for item in left_items:
        left_map[key_fn(item)] = item
    right_map: Dict[str, T] = {}
    for item in right_items:
        right_map[key_fn(item)] = item

    grouped: Dict[DiffStatus, List[DiffEntry]] = {status: [] for status in _STATUS_ORDER}

    for key, left in left_map.items():
        right = right_map.get(key)
        if key not in right_map:
            grouped[DiffStatus.REMOVED].append(
                DiffEntry(status=DiffStatus.REMOVED, key=key, label=label_fn(left), left=left)
            )
            continue
        changes = compare_fn(left, right)
        status = DiffStatus.MODIFIED if changes else DiffStatus.UNCHANGED
        grouped[status].append(DiffEntry(
            status=status,
            key=key,
            label=label_fn(left),
            left=left,
            right=right,
            changes=changes or None,
        ))

    for key, right in right_map.items():
        if key not in left_map:
            grouped[DiffStatus.ADDED].append(
                DiffEntry(status=DiffStatus.ADDED, key=key, label=label_fn(right), right=right)
            )

    return [entry for status in _STATUS_ORDER for entry in grouped[status]]


def build_summary(entries: Iterable[DiffEntry]) -> DiffSummary:
    summary = DiffSummary()
    for entry in entries:
        setattr(summary, entry.status.value, getattr(summary, entry.status.value) + 1)
        summary.total += 1
    return summary


def merge_summaries(summaries: Iterable[DiffSummary]) -> DiffSummary:
    merged = DiffSummary()
    for s in summaries:
        merged.added += s.added
        merged.removed += s.removed
        merged.modified += s.modified
        merged.unchanged += s.unchanged
        merged.total += s.total
    return merged


def _snapshot(metadata: Metadata) -> MetadataSnapshot:
    return MetadataSnapshot(
        title=metadata.title,
        version=metadata.version,
        oscal_version=metadata.oscal_version,
        last_modified=metadata.last_modified,
    )


def diff_metadata(left: Metadata, right: Metadata) -> MetadataDiff:
    return MetadataDiff(
        title_changed=left.title != right.title,
        version_changed=left.version != right.version,
        oscal_version_changed=left.oscal_version != right.oscal_version,
        last_modified_changed=left.last_modified != right.last_modified,
        left=_snapshot(left),
        right=_snapshot(right),
    )


# ============================================================
# Field comparators
# ============================================================

def _count(items: Optional[list]) -> int:
    return len(items) if items else 0


def _count_change(name: str, left: Optional[list], right: Optional[list], changes: List[str]) -> None:
    if _count(left) != _count(right):
        changes.append(f"{name}: {_count(left)} → {_count(right)}")


def _value_change(name: str, left: Optional[str], right: Optional[str], changes: List[str]) -> None:
    if left != right:
        changes.append(f'{name}: "{left}" → "{right}"')


def _dump(model: Optional[object]) -> object:
    if isinstance(model, OscalModel):
        return model.model_dump(by_alias=True, exclude_none=True)
    if isinstance(model, list):
        return [_dump(item) for item in model]
    return model


def _control_prose(control: Control) -> str:
    return "\n".join(p.prose for p in control.parts or [] if p.prose)


def compare_controls(left: Control, right: Control) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    if (left.class_ or "") != (right.class_ or ""):
        changes.append(f'Class: "{left.class_ or "none"}" → "{right.class_ or "none"}"')
    _count_change("Parameters", left.params, right.params, changes)
    _count_change("Properties", left.props, right.props, changes)
    if _control_prose(left) != _control_prose(right):
        changes.append("Prose content changed")
    _count_change("Links", left.links, right.links, changes)
    _count_change("Sub-controls", left.controls, right.controls, changes)
    return changes


def compare_groups(left: Group, right: Group) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    _count_change("Controls", left.controls, right.controls, changes)
    _count_change("Sub-groups", left.groups, right.groups, changes)
    return changes


def _label_and_values(left, right, changes: List[str]) -> None:
    _value_change("Label", left.label or "", right.label or "", changes)
    _value_change(
        "Values",
        ", ".join(left.values or []),
        ", ".join(right.values or []),
        changes,
    )


def compare_parameters(left: Parameter, right: Parameter) -> List[str]:
    changes: List[str] = []
    _label_and_values(left, right, changes)
    return changes


def compare_imports(left: ProfileImport, right: ProfileImport) -> List[str]:
    changes: List[str] = []
    left_inc = _dump(left.include_controls if left.include_controls is not None else left.include_all)
    right_inc = _dump(right.include_controls if right.include_controls is not None else right.include_all)
    if (left_inc or {}) != (right_inc or {}):
        changes.append("Include selections changed")
    if (_dump(left.exclude_controls) or {}) != (_dump(right.exclude_controls) or {}):
        changes.append("Exclude selections changed")
    return changes


def compare_set_parameters(left: SetParameter, right: SetParameter) -> List[str]:
    changes: List[str] = []
    _label_and_values(left, right, changes)
    if _dump(left.select) != _dump(right.select):
        changes.append("Selection changed")
    return changes


def compare_alters(left: Alter, right: Alter) -> List[str]:
    changes: List[str] = []
    _count_change("Removes", left.removes, right.removes, changes)
    _count_change("Adds", left.adds, right.adds, changes)
    return changes


def compare_components(left: DefinedComponent, right: DefinedComponent) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    _value_change("Type", left.type, right.type, changes)
    if left.description != right.description:
        changes.append("Description changed")
    _count_change(
        "Control implementations",
        left.control_implementations,
        right.control_implementations,
        changes,
    )
    return changes


def compare_capabilities(left: Capability, right: Capability) -> List[str]:
    changes: List[str] = []
    _value_change("Name", left.name, right.name, changes)
    if left.description != right.description:
        changes.append("Description changed")
    _count_change(
        "Incorporated components",
        left.incorporates_components,
        right.incorporates_components,
        changes,
    )
    _count_change(
        "Control implementations",
        left.control_implementations,
        right.control_implementations,
        changes,
    )
    return changes


def compare_implemented_requirements(
    left: ImplementedRequirement, right: ImplementedRequirement
) -> List[str]:
    changes: List[str] = []
    _count_change("By-components", left.by_components, right.by_components, changes)
    _count_change("Statements", left.statements, right.statements, changes)
    if (left.remarks or "") != (right.remarks or ""):
        changes.append("Remarks changed")
    return changes


def _state(status) -> Optional[str]:
    return status.state if status is not None else None


def compare_system_components(left: SystemComponent, right: SystemComponent) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    _value_change("Type", left.type, right.type, changes)
    _value_change("Status", _state(left.status), _state(right.status), changes)
    if left.description != right.description:
        changes.append("Description changed")
    return changes


def compare_findings(left: Finding, right: Finding) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    left_target = left.target
    right_target = right.target
    _value_change(
        "Status",
        _state(left_target.status) if left_target else None,
        _state(right_target.status) if right_target else None,
        changes,
    )
    _value_change(
        "Target",
        left_target.target_id if left_target else None,
        right_target.target_id if right_target else None,
        changes,
    )
    if left.description != right.description:
        changes.append("Description changed")
    return changes


def compare_observations(left: Observation, right: Observation) -> List[str]:
    changes: List[str] = []
    if left.description != right.description:
        changes.append("Description changed")
    _value_change(
        "Methods",
        ", ".join(left.methods or []),
        ", ".join(right.methods or []),
        changes,
    )
    _value_change("Collected", left.collected, right.collected, changes)
    return changes


def compare_risks(left: Risk, right: Risk) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    _value_change("Status", left.status, right.status, changes)
    if left.description != right.description:
        changes.append("Description changed")
    return changes


def compare_poam_items(left: PoamItem, right: PoamItem) -> List[str]:
    changes: List[str] = []
    _value_change("Title", left.title, right.title, changes)
    if left.description != right.description:
        changes.append("Description changed")
    _count_change("Milestones", left.milestones, right.milestones, changes)
    return changes


# ============================================================
# Document-type diffs
# ============================================================

def _section(title: str, entries: List[DiffEntry]) -> DiffSection:
    return DiffSection(title=title, summary=build_summary(entries), entries=entries)


def _result(
    doc_type: DocumentType,
    left: Metadata,
    right: Metadata,
    sections: List[DiffSection],
) -> DocumentDiffResult:
    kept = [s for s in sections if s.entries]
    return DocumentDiffResult(
        type=doc_type,
        metadata=diff_metadata(left, right),
        summary=merge_summaries(s.summary for s in kept),
        sections=kept,
    )


def _control_label(control: Control) -> str:
    return f"{control.id} - {control.title}"


def _group_label(group: Group) -> str:
    return f"{group.id} - {group.title}" if group.id else group.title


def diff_catalog(left: Catalog, right: Catalog) -> DocumentDiffResult:
    """Sections: Controls, Groups (top-level), Parameters (catalog-level)."""
    return _result(DocumentType.CATALOG, left.metadata, right.metadata, [
        _section("Controls", diff_by_key(
            get_all_controls(left), get_all_controls(right),
            lambda c: c.id, _control_label, compare_controls,
        )),
        _section("Groups", diff_by_key(
            left.groups or [], right.groups or [],
            lambda g: g.id or g.title, _group_label, compare_groups,
        )),
        _section("Parameters", diff_by_key(
            left.params or [], right.params or [],
            lambda p: p.id, lambda p: p.id, compare_parameters,
        )),
    ])


def diff_profile(left: Profile, right: Profile) -> DocumentDiffResult:
    """Sections: Imports, Set-Parameters, Alterations."""
    left_modify = left.modify
    right_modify = right.modify
    return _result(DocumentType.PROFILE, left.metadata, right.metadata, [
        _section("Imports", diff_by_key(
            left.imports, right.imports,
            lambda i: i.href, lambda i: i.href, compare_imports,
        )),
        _section("Set-Parameters", diff_by_key(
            (left_modify.set_parameters if left_modify else None) or [],
            (right_modify.set_parameters if right_modify else None) or [],
            lambda sp: sp.param_id, lambda sp: sp.param_id, compare_set_parameters,
        )),
        _section("Alterations", diff_by_key(
            (left_modify.alters if left_modify else None) or [],
            (right_modify.alters if right_modify else None) or [],
            lambda a: a.control_id, lambda a: a.control_id, compare_alters,
        )),
    ])


def diff_component_definition(
    left: ComponentDefinition, right: ComponentDefinition
) -> DocumentDiffResult:
    """Sections: Components, Capabilities."""
    return _result(DocumentType.COMPONENT_DEFINITION, left.metadata, right.metadata, [
        _section("Components", diff_by_key(
            left.components or [], right.components or [],
            lambda c: c.uuid, lambda c: c.title, compare_components,
        )),
        _section("Capabilities", diff_by_key(
            left.capabilities or [], right.capabilities or [],
            lambda c: c.uuid, lambda c: c.name, compare_capabilities,
        )),
    ])


def diff_ssp(left: SystemSecurityPlan, right: SystemSecurityPlan) -> DocumentDiffResult:
    """Sections: Implemented Requirements, System Components."""
    return _result(DocumentType.SYSTEM_SECURITY_PLAN, left.metadata, right.metadata, [
        _section("Implemented Requirements", diff_by_key(
            left.control_implementation.implemented_requirements or [],
            right.control_implementation.implemented_requirements or [],
            lambda r: r.control_id, lambda r: r.control_id,
            compare_implemented_requirements,
        )),
        _section("System Components", diff_by_key(
            left.system_implementation.components or [],
            right.system_implementation.components or [],
            lambda c: c.uuid, lambda c: c.title, compare_system_components,
        )),
    ])


def _collect(results, attr: str) -> list:
    return [item for result in results for item in getattr(result, attr) or []]


def diff_assessment_results(
    left: AssessmentResults, right: AssessmentResults
) -> DocumentDiffResult:
    """Sections: Findings, Observations, Risks, gathered across all results."""
    return _result(DocumentType.ASSESSMENT_RESULTS, left.metadata, right.metadata, [
        _section("Findings", diff_by_key(
            _collect(left.results, "findings"), _collect(right.results, "findings"),
            lambda f: f.uuid, lambda f: f.title, compare_findings,
        )),
        _section("Observations", diff_by_key(
            _collect(left.results, "observations"), _collect(right.results, "observations"),
            lambda o: o.uuid, lambda o: o.title or o.uuid[:8], compare_observations,
        )),
        _section("Risks", diff_by_key(
            _collect(left.results, "risks"), _collect(right.results, "risks"),
            lambda r: r.uuid, lambda r: r.title, compare_risks,
        )),
    ])


def diff_poam(
    left: PlanOfActionAndMilestones, right: PlanOfActionAndMilestones
) -> DocumentDiffResult:
    """Section: POA&M Items."""
    return _result(DocumentType.PLAN_OF_ACTION_AND_MILESTONES, left.metadata, right.metadata, [
        _section("POA&M Items", diff_by_key(
            left.poam_items, right.poam_items,
            lambda i: i.uuid, lambda i: i.title, compare_poam_items,
        )),
    ])


_DIFFERS = {
    DocumentType.CATALOG: diff_catalog,
    DocumentType.PROFILE: diff_profile,
    DocumentType.COMPONENT_DEFINITION: diff_component_definition,
    DocumentType.SYSTEM_SECURITY_PLAN: diff_ssp,
    DocumentType.ASSESSMENT_RESULTS: diff_assessment_results,
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES: diff_poam,
}


def diff_documents(doc_type: DocumentType, left, right) -> DocumentDiffResult:
    """Compare two document bodies that share ``doc_type``."""
    result = _DIFFERS[DocumentType(doc_type)](left, right)
    logger.debug(
        "Documents compared",
        document_type=result.type.value,
        sections=len(result.sections),
        total=result.summary.total,
    )
    return result
