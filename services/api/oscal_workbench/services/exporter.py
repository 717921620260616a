"""
Export of parsed OSCAL documents as JSON, Markdown or CSV.

JSON keeps the standard envelope and kebab-case names. Markdown is rendered
from the Jinja2 templates under ``templates/markdown``, with parameter values
substituted into control prose. CSV is a per-type table with minimal quoting.
"""

import csv
import io
import json
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from oscal_workbench.models.oscal import (
    AssessmentResults,
    Catalog,
    ComponentDefinition,
    Control,
    DocumentType,
    OscalDocument,
    Part,
    PlanOfActionAndMilestones,
    Profile,
    ProfileImport,
    SystemSecurityPlan,
)
from oscal_workbench.services.controls import iter_groups
from oscal_workbench.services.param_substitutor import build_param_map, render_prose

logger = structlog.get_logger(__name__)


class ExportFormat(str, Enum):
    JSON = "json"
    MARKDOWN = "markdown"
    CSV = "csv"


MEDIA_TYPES: Dict[ExportFormat, str] = {
    ExportFormat.JSON: "application/json",
    ExportFormat.MARKDOWN: "text/markdown",
    ExportFormat.CSV: "text/csv",
}

FILE_EXTENSIONS: Dict[ExportFormat, str] = {
    ExportFormat.JSON: "json",
    ExportFormat.MARKDOWN: "md",
    ExportFormat.CSV: "csv",
}


# ============================================================
# JSON
# ============================================================

def export_to_json(doc: OscalDocument) -> str:
    body = doc.document.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps({doc.type.value: body}, indent=2, ensure_ascii=False)


# ============================================================
# Markdown
# ============================================================

class MarkdownTemplateEngine:
    """Renders the per-type Markdown templates.

    Each document type has a ``<type>.md.j2`` template extending
    ``document.md.j2``, which supplies the title and metadata section.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        if template_dir is None:
            template_dir = Path(__file__).parent.parent / "templates" / "markdown"

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["heading"] = self._heading_filter
        self.env.filters["format_list"] = self._format_list_filter

    def render(self, doc: OscalDocument) -> str:
        template_name = f"{doc.type.value}.md.j2"
        context = _MARKDOWN_CONTEXTS.get(doc.type, _no_context)(doc.document)
        try:
            template = self.env.get_template(template_name)
            return template.render(metadata=doc.metadata, document=doc.document, **context)
        except TemplateError as e:
            logger.error("Markdown template rendering failed", template=template_name, error=str(e))
            raise

    def _heading_filter(self, level: int) -> str:
        return "#" * min(level, 6)

    def _format_list_filter(self, items: List[Any], *attributes: str) -> str:
        """Join items by the first of ``attributes`` each one has set."""
        values = []
        for item in items or []:
            value = next((getattr(item, a) for a in attributes if getattr(item, a, None)), "")
            values.append(str(value))
        return ", ".join(values)


def _part_paragraphs(parts: Optional[List[Part]], param_map: Dict[str, str]) -> List[str]:
    paragraphs: List[str] = []
    for part in parts or []:
        if part.prose:
            paragraphs.append(render_prose(part.prose, param_map))
        paragraphs.extend(_part_paragraphs(part.parts, param_map))
    return paragraphs


def _control_sections(controls: Optional[List[Control]], level: int) -> List[Dict[str, Any]]:
    sections: List[Dict[str, Any]] = []
    for control in controls or []:
        sections.append({
            "level": level,
            "title": f"{control.id}: {control.title}",
            "paragraphs": _part_paragraphs(control.parts, build_param_map(control.params or [])),
        })
        sections.extend(_control_sections(control.controls, level + 1))
    return sections


def _catalog_context(catalog: Catalog) -> Dict[str, Any]:
    sections: List[Dict[str, Any]] = []
    for group, depth in iter_groups(catalog.groups):
        title = f"{group.id}: {group.title}" if group.id else group.title
        sections.append({"level": depth + 2, "title": title, "paragraphs": []})
        sections.extend(_control_sections(group.controls, depth + 3))
    sections.extend(_control_sections(catalog.controls, 3))
    return {"sections": sections}


def _included_ids(imp: ProfileImport) -> List[str]:
    return [cid for selector in imp.include_controls or [] for cid in selector.with_ids or []]


def _profile_context(profile: Profile) -> Dict[str, Any]:
    modify = profile.modify
    return {
        "imports": [{"href": imp.href, "ids": _included_ids(imp)} for imp in profile.imports],
        "alters": [alter.control_id for alter in (modify.alters if modify else None) or []],
        "parameters": [
            {"id": sp.param_id, "value": ", ".join(sp.values) if sp.values else "(no value)"}
            for sp in (modify.set_parameters if modify else None) or []
        ],
    }


def _requirement_description(req) -> str:
    if req.by_components:
        return "; ".join(str(bc.get("description", "")) for bc in req.by_components)
    return req.remarks or ""


def _ssp_context(ssp: SystemSecurityPlan) -> Dict[str, Any]:
    return {
        "requirements": [
            {"control_id": req.control_id, "description": _requirement_description(req)}
            for req in ssp.control_implementation.implemented_requirements or []
        ],
    }


def _target_fields(finding) -> tuple:
    target = finding.target
    if target is None:
        return "", ""
    return target.target_id, target.status.state if target.status else ""


def _assessment_results_context(ar: AssessmentResults) -> Dict[str, Any]:
    results = []
    for result in ar.results:
        findings = []
        for finding in result.findings or []:
            target_id, state = _target_fields(finding)
            findings.append({"target_id": target_id, "state": state, "title": finding.title})
        results.append({
            "title": result.title,
            "description": result.description or "",
            "findings": findings,
        })
    return {"results": results}


def _no_context(document: Any) -> Dict[str, Any]:
    return {}


_MARKDOWN_CONTEXTS: Dict[DocumentType, Callable[[Any], Dict[str, Any]]] = {
    DocumentType.CATALOG: _catalog_context,
    DocumentType.PROFILE: _profile_context,
    DocumentType.SYSTEM_SECURITY_PLAN: _ssp_context,
    DocumentType.ASSESSMENT_RESULTS: _assessment_results_context,
}

_template_engine: Optional[MarkdownTemplateEngine] = None


def get_markdown_engine() -> MarkdownTemplateEngine:
    """Get the shared Markdown template engine."""
    global _template_engine
    if _template_engine is None:
        _template_engine = MarkdownTemplateEngine()
    return _template_engine


def export_to_markdown(doc: OscalDocument) -> str:
    return get_markdown_engine().render(doc)


# ============================================================
# CSV
# ============================================================

def _write_csv(header: List[str], rows: List[List[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def _control_rows(controls: List[Control], group_title: str = "") -> List[List[str]]:
    rows: List[List[str]] = []
    for c in controls:
        prose = " ".join(p.prose for p in c.parts or [] if p.prose)
        rows.append([c.id, c.title, c.class_ or "", group_title, prose])
        if c.controls:
            rows.extend(_control_rows(c.controls, group_title))
    return rows


def _csv_catalog(catalog: Catalog) -> str:
    rows: List[List[str]] = []
    for group, _ in iter_groups(catalog.groups):
        rows.extend(_control_rows(group.controls or [], group.title))
    rows.extend(_control_rows(catalog.controls or []))
    return _write_csv(["control-id", "title", "class", "group", "prose"], rows)


def _csv_profile(profile: Profile) -> str:
    rows: List[List[str]] = []
    for imp in profile.imports:
        ids = _included_ids(imp)
        if not ids:
            rows.append([imp.href, "import", "", "include-all"])
        else:
            rows.extend([imp.href, "import", cid, "include"] for cid in ids)

    modify = profile.modify
    if modify:
        for alter in modify.alters or []:
            rows.append(["", "alteration", alter.control_id, "remove" if alter.removes else "add"])
        for sp in modify.set_parameters or []:
            rows.append(["", "parameter", sp.param_id, "; ".join(sp.values or [])])
    return _write_csv(["import-href", "type", "control-id", "action"], rows)


def _csv_component_definition(comp_def: ComponentDefinition) -> str:
    rows: List[List[str]] = []
    for comp in comp_def.components or []:
        if comp.control_implementations:
            for ci in comp.control_implementations:
                for req in ci.implemented_requirements or []:
                    rows.append([comp.title, comp.type, req.control_id, req.description or ""])
        else:
            rows.append([comp.title, comp.type, "", comp.description or ""])
    return _write_csv(["component-title", "type", "control-id", "description"], rows)


def _implementation_status(req) -> str:
    if not req.by_components:
        return ""
    status = req.by_components[0].get("implementation-status")
    if isinstance(status, dict):
        return str(status.get("state", ""))
    return ""


def _csv_ssp(ssp: SystemSecurityPlan) -> str:
    rows: List[List[str]] = []
    for req in ssp.control_implementation.implemented_requirements or []:
        roles = "; ".join(r.role_id for r in req.responsible_roles or [])
        rows.append([
            req.control_id,
            _implementation_status(req),
            roles,
            _requirement_description(req),
        ])
    return _write_csv(
        ["control-id", "implementation-status", "responsible-role", "description"], rows
    )


def _csv_assessment_results(ar: AssessmentResults) -> str:
    rows: List[List[str]] = []
    for result in ar.results:
        for finding in result.findings or []:
            target_id, state = _target_fields(finding)
            rows.append([finding.uuid, target_id, state, finding.title, finding.description or ""])
    return _write_csv(["finding-id", "target-id", "status", "title", "description"], rows)


def _milestone_due_date(milestone) -> str:
    tasks = (milestone.schedule or {}).get("tasks") or []
    if tasks and isinstance(tasks[0], dict):
        return str(tasks[0].get("end", ""))
    return ""


def _csv_poam(poam: PlanOfActionAndMilestones) -> str:
    rows: List[List[str]] = []
    for item in poam.poam_items:
        status = next((p.value for p in item.props or [] if p.name == "status"), "")
        description = item.description or ""
        if item.milestones:
            for m in item.milestones:
                rows.append([item.title, status, m.title, _milestone_due_date(m), description])
        else:
            rows.append([item.title, status, "", "", description])
    return _write_csv(["item-title", "status", "milestone", "due-date", "description"], rows)


_CSV_BODIES = {
    DocumentType.CATALOG: _csv_catalog,
    DocumentType.PROFILE: _csv_profile,
    DocumentType.COMPONENT_DEFINITION: _csv_component_definition,
    DocumentType.SYSTEM_SECURITY_PLAN: _csv_ssp,
    DocumentType.ASSESSMENT_RESULTS: _csv_assessment_results,
    DocumentType.PLAN_OF_ACTION_AND_MILESTONES: _csv_poam,
}


def export_to_csv(doc: OscalDocument) -> str:
    return _CSV_BODIES[doc.type](doc.document)


def export_document(doc: OscalDocument, fmt: ExportFormat) -> str:
    """Render a document in the requested export format."""
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.JSON:
        return export_to_json(doc)
    if fmt == ExportFormat.MARKDOWN:
        return export_to_markdown(doc)
    return export_to_csv(doc)
