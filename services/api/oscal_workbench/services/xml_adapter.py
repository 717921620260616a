"""
OSCAL XML to JSON-equivalent conversion.

The output of :func:`xml_to_json` is the same logical tree a JSON document
yields, so it feeds straight into the document parser.
"""

from html import escape
from typing import Any, Dict, List, Union
from xml.etree.ElementTree import Element, ParseError

import defusedxml
import structlog
from defusedxml import ElementTree

from oscal_workbench.core.exceptions import MalformedInputError

logger = structlog.get_logger(__name__)

# XML singular element name -> JSON plural property name. Always arrays.
ARRAY_ELEMENT_MAP: Dict[str, str] = {
    # Catalog / shared
    "control": "controls",
    "group": "groups",
    "param": "params",
    "part": "parts",
    "prop": "props",
    "link": "links",
    "resource": "resources",
    "rlink": "rlinks",
    "hash": "hashes",
    # Metadata
    "role": "roles",
    "party": "parties",
    "responsible-party": "responsible-parties",
    "location": "locations",
    "revision": "revisions",
    "document-id": "document-ids",
    "external-id": "external-ids",
    "email-address": "email-addresses",
    "telephone-number": "telephone-numbers",
    "member-of-organization": "member-of-organizations",
    "location-uuid": "location-uuids",
    "party-uuid": "party-uuids",
    "addr-line": "addr-lines",
    "url": "urls",
    # Parameter
    "value": "values",
    "guideline": "guidelines",
    "constraint": "constraints",
    "choice": "choice",
    # Profile
    "import": "imports",
    "include-controls": "include-controls",
    "exclude-controls": "exclude-controls",
    "with-id": "with-ids",
    "set-parameter": "set-parameters",
    "alter": "alters",
    "add": "adds",
    "remove": "removes",
    "matching": "matching",
    # SSP
    "user": "users",
    "component": "components",
    "inventory-item": "inventory-items",
    "implemented-requirement": "implemented-requirements",
    "statement": "statements",
    "by-component": "by-components",
    "system-id": "system-ids",
    "information-type": "information-types",
    "leveraged-authorization": "leveraged-authorizations",
    "diagram": "diagrams",
    # Component definition
    "control-implementation": "control-implementations",
    "capability": "capabilities",
    # Assessment results
    "result": "results",
    "finding": "findings",
    "observation": "observations",
    "risk": "risks",
    "origin": "origins",
    "assessment": "assessments",
    "assessment-subject": "assessment-subjects",
    "relevant-evidence": "relevant-evidence",
    "related-observation": "related-observations",
    "related-risk": "related-risks",
    # POA&M
    "poam-item": "poam-items",
    "milestone": "milestones",
    "related-finding": "related-findings",
    # Generic
    "test": "tests",
}

# Fields whose whole content is markup, serialized to an HTML-like string.
PROSE_FIELDS = frozenset({"prose", "description", "remarks"})

# Single-line markup fields. Inline children such as <insert> or <em> are
# serialized into the string rather than becoming structure.
MARKUP_LINE_FIELDS = frozenset({"title", "label", "choice", "text"})

XHTML_BLOCK_ELEMENTS = frozenset({
    "p", "ul", "ol", "pre", "table",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "img", "hr",
})

# A child node is either a text run or an element.
Node = Union[str, Element]


def xml_to_json(xml_text: str) -> Dict[str, Any]:
    """Convert OSCAL XML text into the JSON-shaped tree, keyed by the root name.

    Raises:
        MalformedInputError: if the XML cannot be parsed, including documents
            rejected for entity expansion or external entity references.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except (ParseError, defusedxml.DefusedXmlException) as e:
        logger.debug("XML parse failed", error=str(e))
        raise MalformedInputError(
            f"XML parse error: {e}",
            details={"format": "xml"},
        ) from e

    return {local_name(root.tag): element_to_json(root)}


def local_name(name: str) -> str:
    """Strip a ``{namespace}`` prefix from a tag or attribute name."""
    if name.startswith("{"):
        return name.rsplit("}", 1)[1]
    return name


def _attributes(element: Element) -> Dict[str, str]:
    return {
        local_name(key): value
        for key, value in element.attrib.items()
        if key != "xmlns" and not key.startswith("xmlns:")
    }


def _child_nodes(element: Element) -> List[Node]:
    """Children in document order: leading text, then each child and its tail."""
    nodes: List[Node] = []
    if element.text:
        nodes.append(element.text)
    for child in element:
        nodes.append(child)
        if child.tail:
            nodes.append(child.tail)
    return nodes


def _text_content(element: Element) -> str:
    return "".join(element.itertext()).strip()


def element_to_json(element: Element) -> Any:
    """Recursively convert one element to a plain dict, list or string."""
    result: Dict[str, Any] = dict(_attributes(element))

    structural_groups: Dict[str, List[Element]] = {}
    prose_nodes: List[Node] = []
    has_xhtml = False

    for node in _child_nodes(element):
        if isinstance(node, str):
            prose_nodes.append(node)
            continue
        name = local_name(node.tag)
        if name in XHTML_BLOCK_ELEMENTS:
            prose_nodes.append(node)
            has_xhtml = True
        else:
            structural_groups.setdefault(name, []).append(node)

    name = local_name(element.tag)

    if name in PROSE_FIELDS:
        if has_xhtml:
            return serialize_nodes(_child_nodes(element))
        text = _text_content(element)
        if not result:
            return text
        if text:
            result["_text"] = text
        return result

    if name in MARKUP_LINE_FIELDS and len(element):
        text = serialize_nodes(_child_nodes(element))
        if not result:
            return text
        result["_text"] = text
        return result

    # Leaf: <include-all/> -> {}, <title>T</title> -> "T"
    if not structural_groups and not has_xhtml:
        text = _text_content(element)
        if not result:
            return text or {}
        if text:
            result["_text"] = text
        return result

    if has_xhtml:
        result["prose"] = serialize_nodes(prose_nodes)

    for child_name, children in structural_groups.items():
        json_name = ARRAY_ELEMENT_MAP.get(child_name)
        if json_name:
            result[json_name] = [element_to_json(c) for c in children]
        elif len(children) > 1:
            result[child_name] = [element_to_json(c) for c in children]
        else:
            result[child_name] = element_to_json(children[0])

    return result


def serialize_nodes(nodes: List[Node]) -> str:
    """Serialize a run of nodes to an HTML string, dropping blank text runs."""
    html = ""
    for node in nodes:
        if isinstance(node, str):
            if node.strip():
                html += escape(node, quote=False)
        else:
            html += serialize_element(node)
    return html.strip()


def serialize_element(element: Element) -> str:
    """Serialize an element, turning ``<insert>`` into a ``{{ insert: ... }}`` token."""
    tag = local_name(element.tag)

    if tag == "insert":
        insert_type = element.get("type", "param")
        id_ref = element.get("id-ref", "")
        return f"{{{{ insert: {insert_type}, {id_ref} }}}}"

    attrs = "".join(
        f' {key}="{escape(value)}"' for key, value in _attributes(element).items()
    )

    children = _child_nodes(element)
    if not children:
        return f"<{tag}{attrs}/>"

    inner = ""
    for child in children:
        if isinstance(child, str):
            inner += escape(child, quote=False)
        else:
            inner += serialize_element(child)
    return f"<{tag}{attrs}>{inner}</{tag}>"
