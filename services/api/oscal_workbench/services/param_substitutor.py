"""Substitution of ``{{ insert: param, <id> }}`` placeholders in control prose."""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from oscal_workbench.models.oscal import Parameter

PARAM_PLACEHOLDER = re.compile(r"\{\{\s*insert:\s*param,\s*([^}\s]+)\s*\}\}")


@dataclass(frozen=True)
class ProseSegment:
    """A run of literal prose (``text``) or a substituted value (``param``)."""

    type: str
    content: str
    param_id: Optional[str] = None


def substitute_prose(prose: str, param_map: Dict[str, str]) -> List[ProseSegment]:
    """Split prose into segments, replacing mapped placeholders with their values.

    Placeholders whose id is not in ``param_map`` are kept verbatim as text,
    so concatenating the segment contents always covers the whole input.
    """
    segments: List[ProseSegment] = []
    last_index = 0

    for match in PARAM_PLACEHOLDER.finditer(prose):
        if match.start() > last_index:
            segments.append(ProseSegment("text", prose[last_index:match.start()]))

        param_id = match.group(1)
        resolved = param_map.get(param_id)
        if resolved is not None:
            segments.append(ProseSegment("param", resolved, param_id))
        else:
            segments.append(ProseSegment("text", match.group(0)))

        last_index = match.end()

    if last_index < len(prose):
        segments.append(ProseSegment("text", prose[last_index:]))

    return segments


def build_param_map(params: Iterable[Parameter]) -> Dict[str, str]:
    """Map each parameter id to one display value.

    Priority: first value, then the choices joined with ``" | "``, then the
    label, then ``[<id>]``.
    """
    param_map: Dict[str, str] = {}
    for param in params:
        if param.values:
            value = param.values[0]
        elif param.select and param.select.choice:
            value = " | ".join(param.select.choice)
        elif param.label:
            value = param.label
        else:
            value = f"[{param.id}]"
        param_map[param.id] = value
    return param_map


def render_prose(prose: str, param_map: Dict[str, str]) -> str:
    return "".join(segment.content for segment in substitute_prose(prose, param_map))
