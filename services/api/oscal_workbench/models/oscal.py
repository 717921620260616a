"""
Pydantic models for the six OSCAL document types.

Field names are snake_case; the OSCAL JSON kebab-case names are the aliases,
so ``Control.model_validate({"id": "ac-1", "class": "SP800-53"})`` and
``model_dump(by_alias=True)`` both speak plain OSCAL JSON. Unknown keys are
kept on the model. Nested content is deliberately lenient: only the document
envelopes enforce required fields (see ``services.parser``).
"""

from enum import Enum
from typing import Any, Annotated, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _to_kebab(name: str) -> str:
    return name.replace("_", "-")


def _coerce_text(value: Any) -> Any:
    """Accept the XML adapter's ``{"_text": ...}`` leaves and bare numbers as text."""
    if isinstance(value, dict) and "_text" in value:
        return value["_text"]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


Text = Annotated[str, BeforeValidator(_coerce_text)]


class DocumentType(str, Enum):
    """OSCAL document types, valued by their JSON envelope key."""

    CATALOG = "catalog"
    PROFILE = "profile"
    COMPONENT_DEFINITION = "component-definition"
    SYSTEM_SECURITY_PLAN = "system-security-plan"
    ASSESSMENT_RESULTS = "assessment-results"
    PLAN_OF_ACTION_AND_MILESTONES = "plan-of-action-and-milestones"


class OscalModel(BaseModel):
    """Base for OSCAL content models."""

    model_config = ConfigDict(
        alias_generator=_to_kebab,
        populate_by_name=True,
        extra="allow",
    )


# ============================================================
# Common / shared
# ============================================================

class Property(OscalModel):
    name: str = ""
    value: Text = ""
    uuid: Optional[str] = None
    ns: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    group: Optional[str] = None
    remarks: Optional[Text] = None


class Link(OscalModel):
    href: str = ""
    rel: Optional[str] = None
    media_type: Optional[str] = None
    text: Optional[Text] = None
    resource_fragment: Optional[str] = None


class Role(OscalModel):
    id: str = ""
    title: Text = ""
    short_name: Optional[str] = None
    description: Optional[Text] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class Party(OscalModel):
    uuid: str = ""
    type: Optional[str] = None
    name: Optional[Text] = None
    short_name: Optional[str] = None
    email_addresses: Optional[List[str]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class ResponsibleParty(OscalModel):
    role_id: str = ""
    party_uuids: Optional[List[str]] = None
    remarks: Optional[Text] = None


class ResponsibleRole(OscalModel):
    role_id: str = ""
    party_uuids: Optional[List[str]] = None
    remarks: Optional[Text] = None


class Rlink(OscalModel):
    href: str = ""
    media_type: Optional[str] = None
    hashes: Optional[List[Dict[str, Any]]] = None


class Resource(OscalModel):
    uuid: str = ""
    title: Optional[Text] = None
    description: Optional[Text] = None
    props: Optional[List[Property]] = None
    rlinks: Optional[List[Rlink]] = None
    remarks: Optional[Text] = None


class BackMatter(OscalModel):
    resources: Optional[List[Resource]] = None


class Metadata(OscalModel):
    """Document metadata. ``title`` and ``oscal-version`` are mandatory."""

    title: Text
    oscal_version: str
    version: Text = ""
    last_modified: str = ""
    published: Optional[str] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    roles: Optional[List[Role]] = None
    parties: Optional[List[Party]] = None
    responsible_parties: Optional[List[ResponsibleParty]] = None
    remarks: Optional[Text] = None


# ============================================================
# Catalog
# ============================================================

class ParameterSelection(OscalModel):
    how_many: Optional[str] = None
    choice: Optional[List[Text]] = None


class Parameter(OscalModel):
    id: str = ""
    class_: Optional[str] = Field(default=None, alias="class")
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    label: Optional[Text] = None
    usage: Optional[Text] = None
    constraints: Optional[List[Any]] = None
    guidelines: Optional[List[Any]] = None
    values: Optional[List[Text]] = None
    select: Optional[ParameterSelection] = None
    remarks: Optional[Text] = None


class Part(OscalModel):
    name: str = ""
    id: Optional[str] = None
    ns: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    title: Optional[Text] = None
    props: Optional[List[Property]] = None
    prose: Optional[Text] = None
    parts: Optional[List["Part"]] = None
    links: Optional[List[Link]] = None


class Control(OscalModel):
    """A control; enhancements nest recursively under ``controls``."""

    id: str = ""
    title: Text = ""
    class_: Optional[str] = Field(default=None, alias="class")
    params: Optional[List[Parameter]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    parts: Optional[List[Part]] = None
    controls: Optional[List["Control"]] = None


class Group(OscalModel):
    id: Optional[str] = None
    title: Text = ""
    class_: Optional[str] = Field(default=None, alias="class")
    params: Optional[List[Parameter]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    parts: Optional[List[Part]] = None
    groups: Optional[List["Group"]] = None
    controls: Optional[List[Control]] = None


class Catalog(OscalModel):
    uuid: str
    metadata: Metadata
    params: Optional[List[Parameter]] = None
    controls: Optional[List[Control]] = None
    groups: Optional[List[Group]] = None
    back_matter: Optional[BackMatter] = None


# ============================================================
# Profile
# ============================================================

class SelectControlById(OscalModel):
    with_ids: Optional[List[str]] = None
    matching: Optional[List[Dict[str, Any]]] = None
    with_child_controls: Optional[str] = None


class ProfileImport(OscalModel):
    href: str = ""
    include_all: Optional[Dict[str, Any]] = None
    include_controls: Optional[List[SelectControlById]] = None
    exclude_controls: Optional[List[SelectControlById]] = None


class Merge(OscalModel):
    combine: Optional[Dict[str, Any]] = None
    flat: Optional[Dict[str, Any]] = None
    as_is: Optional[Union[bool, str]] = None
    custom: Optional[Dict[str, Any]] = None


class SetParameter(OscalModel):
    param_id: str = ""
    class_: Optional[str] = Field(default=None, alias="class")
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    label: Optional[Text] = None
    usage: Optional[Text] = None
    constraints: Optional[List[Any]] = None
    guidelines: Optional[List[Any]] = None
    values: Optional[List[Text]] = None
    select: Optional[ParameterSelection] = None


class Remove(OscalModel):
    by_name: Optional[str] = None
    by_class: Optional[str] = None
    by_id: Optional[str] = None
    by_item_name: Optional[str] = None
    by_ns: Optional[str] = None


class Add(OscalModel):
    position: Optional[str] = None
    by_id: Optional[str] = None
    title: Optional[Text] = None
    params: Optional[List[Parameter]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    parts: Optional[List[Part]] = None


class Alter(OscalModel):
    control_id: str = ""
    removes: Optional[List[Remove]] = None
    adds: Optional[List[Add]] = None


class Modify(OscalModel):
    set_parameters: Optional[List[SetParameter]] = None
    alters: Optional[List[Alter]] = None


class Profile(OscalModel):
    uuid: str
    metadata: Metadata
    imports: List[ProfileImport]
    merge: Optional[Merge] = None
    modify: Optional[Modify] = None
    back_matter: Optional[BackMatter] = None


# ============================================================
# Component Definition
# ============================================================

class ImplementedRequirement(OscalModel):
    """Implemented requirement, shared by component definitions and SSPs."""

    uuid: str = ""
    control_id: str = ""
    description: Optional[Text] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    set_parameters: Optional[List[SetParameter]] = None
    responsible_roles: Optional[List[ResponsibleRole]] = None
    statements: Optional[List[Dict[str, Any]]] = None
    by_components: Optional[List[Dict[str, Any]]] = None
    remarks: Optional[Text] = None


class ControlImplementation(OscalModel):
    uuid: str = ""
    source: str = ""
    description: Optional[Text] = None
    implemented_requirements: Optional[List[ImplementedRequirement]] = None
    set_parameters: Optional[List[SetParameter]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None


class DefinedComponent(OscalModel):
    uuid: str = ""
    type: str = ""
    title: Text = ""
    description: Optional[Text] = None
    purpose: Optional[Text] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    responsible_roles: Optional[List[ResponsibleRole]] = None
    control_implementations: Optional[List[ControlImplementation]] = None
    remarks: Optional[Text] = None


class Capability(OscalModel):
    uuid: str = ""
    name: str = ""
    description: Optional[Text] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    incorporates_components: Optional[List[Dict[str, Any]]] = None
    control_implementations: Optional[List[ControlImplementation]] = None
    remarks: Optional[Text] = None


class ComponentDefinition(OscalModel):
    uuid: str
    metadata: Metadata
    import_component_definitions: Optional[List[Dict[str, Any]]] = None
    components: Optional[List[DefinedComponent]] = None
    capabilities: Optional[List[Capability]] = None
    back_matter: Optional[BackMatter] = None


# ============================================================
# System Security Plan
# ============================================================

class SystemStatus(OscalModel):
    state: str = ""
    remarks: Optional[Text] = None


class SystemCharacteristics(OscalModel):
    system_ids: Optional[List[Dict[str, Any]]] = None
    system_name: Optional[Text] = None
    system_name_short: Optional[Text] = None
    description: Optional[Text] = None
    security_sensitivity_level: Optional[str] = None
    system_information: Optional[Dict[str, Any]] = None
    security_impact_level: Optional[Dict[str, Any]] = None
    status: Optional[SystemStatus] = None
    authorization_boundary: Optional[Dict[str, Any]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class SystemComponent(OscalModel):
    uuid: str = ""
    type: str = ""
    title: Text = ""
    description: Optional[Text] = None
    status: Optional[SystemStatus] = None
    purpose: Optional[Text] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    responsible_roles: Optional[List[ResponsibleRole]] = None
    remarks: Optional[Text] = None


class SystemImplementation(OscalModel):
    users: Optional[List[Dict[str, Any]]] = None
    components: Optional[List[SystemComponent]] = None
    inventory_items: Optional[List[Dict[str, Any]]] = None
    leveraged_authorizations: Optional[List[Dict[str, Any]]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class SspControlImplementation(OscalModel):
    description: Optional[Text] = None
    set_parameters: Optional[List[SetParameter]] = None
    implemented_requirements: Optional[List[ImplementedRequirement]] = None


class ImportProfile(OscalModel):
    href: str = ""
    remarks: Optional[Text] = None


class SystemSecurityPlan(OscalModel):
    uuid: str
    metadata: Metadata
    import_profile: ImportProfile
    system_characteristics: SystemCharacteristics
    system_implementation: SystemImplementation
    control_implementation: SspControlImplementation
    back_matter: Optional[BackMatter] = None


# ============================================================
# Assessment Results
# ============================================================

class ObjectiveStatus(OscalModel):
    state: str = ""
    reason: Optional[str] = None
    remarks: Optional[Text] = None


class FindingTarget(OscalModel):
    type: Optional[str] = None
    target_id: str = ""
    title: Optional[Text] = None
    description: Optional[Text] = None
    status: Optional[ObjectiveStatus] = None


class Finding(OscalModel):
    uuid: str = ""
    title: Text = ""
    description: Optional[Text] = None
    target: Optional[FindingTarget] = None
    related_observations: Optional[List[Dict[str, Any]]] = None
    related_risks: Optional[List[Dict[str, Any]]] = None
    implementation_statement_uuid: Optional[str] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class Observation(OscalModel):
    uuid: str = ""
    title: Optional[Text] = None
    description: Optional[Text] = None
    methods: Optional[List[str]] = None
    types: Optional[List[str]] = None
    subjects: Optional[List[Dict[str, Any]]] = None
    relevant_evidence: Optional[List[Dict[str, Any]]] = None
    collected: Optional[str] = None
    expires: Optional[str] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class Risk(OscalModel):
    uuid: str = ""
    title: Text = ""
    description: Optional[Text] = None
    statement: Optional[Text] = None
    status: Optional[str] = None
    characterizations: Optional[List[Dict[str, Any]]] = None
    mitigating_factors: Optional[List[Dict[str, Any]]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class AssessmentResult(OscalModel):
    uuid: str = ""
    title: Text = ""
    description: Optional[Text] = None
    start: Optional[str] = None
    end: Optional[str] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    reviewed_controls: Optional[Dict[str, Any]] = None
    findings: Optional[List[Finding]] = None
    observations: Optional[List[Observation]] = None
    risks: Optional[List[Risk]] = None
    remarks: Optional[Text] = None


class AssessmentResults(OscalModel):
    uuid: str
    metadata: Metadata
    import_ap: Optional[Dict[str, Any]] = None
    local_definitions: Optional[Dict[str, Any]] = None
    results: List[AssessmentResult]
    back_matter: Optional[BackMatter] = None


# ============================================================
# Plan of Action and Milestones
# ============================================================

class PoamMilestone(OscalModel):
    uuid: str = ""
    title: Text = ""
    description: Optional[Text] = None
    schedule: Optional[Dict[str, Any]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class PoamItem(OscalModel):
    uuid: str = ""
    title: Text = ""
    description: Optional[Text] = None
    related_findings: Optional[List[Dict[str, Any]]] = None
    related_observations: Optional[List[Dict[str, Any]]] = None
    related_risks: Optional[List[Dict[str, Any]]] = None
    origins: Optional[List[Dict[str, Any]]] = None
    milestones: Optional[List[PoamMilestone]] = None
    props: Optional[List[Property]] = None
    links: Optional[List[Link]] = None
    remarks: Optional[Text] = None


class PlanOfActionAndMilestones(OscalModel):
    uuid: str
    metadata: Metadata
    import_ssp: Optional[Dict[str, Any]] = None
    local_definitions: Optional[Dict[str, Any]] = None
    findings: Optional[List[Finding]] = None
    observations: Optional[List[Observation]] = None
    risks: Optional[List[Risk]] = None
    poam_items: List[PoamItem]
    back_matter: Optional[BackMatter] = None


# ============================================================
# Tagged document wrapper
# ============================================================

AnyDocument = Union[
    Catalog,
    Profile,
    ComponentDefinition,
    SystemSecurityPlan,
    AssessmentResults,
    PlanOfActionAndMilestones,
]

DOCUMENT_MODELS: Dict[DocumentType, type] = {
    DocumentType.CATALOG: Catalog,
    DocumentType.PROFILE: Profile,
    DocumentType.COMPONENT_DEFINITION: ComponentDefinition,
    DocumentType.SYSTEM_SECURITY_PLAN: SystemSecurityPlan,
    DocumentType.ASSESSMENT_RESULTS: AssessmentResults,
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES: PlanOfActionAndMilestones,
}


class OscalDocument(BaseModel):
    """A parsed OSCAL document tagged with its type and detected OSCAL version."""

    model_config = ConfigDict(frozen=True)

    type: DocumentType = Field(description="Document type, fixed at parse time")
    version: str = Field(description="OSCAL version from metadata, or 'unknown'")
    document: AnyDocument = Field(description="The typed document body")

    @property
    def metadata(self) -> Metadata:
        return self.document.metadata

    @property
    def title(self) -> str:
        return self.document.metadata.title
